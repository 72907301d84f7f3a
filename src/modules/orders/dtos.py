"""Order DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.  Input DTOs
are immutable and reject unknown fields, so a malformed request is
refused at the boundary instead of inside the placement transaction.

- ``ShippingAddressDTO``: address snapshot stored on the order.
- ``PlaceOrderDTO``: input of ``OrderService.place_order``.
- ``UpdateOrderDTO``: input of ``OrderService.update_order``.
- ``AddTrackingEventDTO``: carrier event recorded by staff.
- ``PlacementResult``: what a successful placement returns.
"""

from __future__ import annotations

import re
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from modules.payments.constants import PaymentMethod
from modules.payments.instruments import PaymentInstrument

_CEP_PATTERN = re.compile(r"^\d{8}$")


# ---------------------------------------------------------------------------
# Input DTOs
# ---------------------------------------------------------------------------


class ShippingAddressDTO(BaseModel):
    """Brazilian postal address, in the shape returned by CEP look-ups."""

    model_config = ConfigDict(frozen=True, extra="forbid", str_strip_whitespace=True)

    cep: str
    logradouro: str = Field(min_length=1, max_length=255)
    numero: str = Field(default="", max_length=20)
    complemento: str = Field(default="", max_length=255)
    bairro: str = Field(min_length=1, max_length=255)
    localidade: str = Field(min_length=1, max_length=255)
    uf: str = Field(min_length=2, max_length=2)
    estado: str = Field(default="", max_length=100)
    ddd: str = Field(default="", max_length=3)

    @field_validator("cep")
    @classmethod
    def cep_must_have_eight_digits(cls, v: str) -> str:
        digits = v.replace("-", "").replace(".", "")
        if not _CEP_PATTERN.match(digits):
            raise ValueError("CEP must have 8 digits.")
        return digits

    @field_validator("uf")
    @classmethod
    def uf_upper(cls, v: str) -> str:
        return v.upper()

    def snapshot(self) -> Dict[str, Any]:
        return self.model_dump()


class PlaceOrderDTO(BaseModel):
    """Immutable DTO for order placement.

    ``user_id`` is optional only so the service can reject anonymous
    calls itself.  ``shipping_cost`` overrides the store shipping policy
    when given.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    user_id: Optional[int]
    payment_method: PaymentMethod
    shipping_address: ShippingAddressDTO
    shipping_cost: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    notes: str = Field(default="", max_length=2000)


class UpdateOrderDTO(BaseModel):
    """Change the payment method and/or the notes of a pending order."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    payment_method: Optional[PaymentMethod] = None
    notes: Optional[str] = Field(default=None, max_length=2000)

    @model_validator(mode="after")
    def at_least_one_field(self):
        if self.payment_method is None and self.notes is None:
            raise ValueError("Provide payment_method or notes.")
        return self


class AddTrackingEventDTO(BaseModel):
    """Carrier event for a shipped order, e.g. ``Em Trânsito`` at a hub."""

    model_config = ConfigDict(frozen=True, extra="forbid", str_strip_whitespace=True)

    status: str = Field(min_length=1, max_length=100)
    description: str = Field(default="", max_length=2000)
    location: str = Field(default="", max_length=255)
    occurred_at: Optional[datetime] = None


# ---------------------------------------------------------------------------
# Output DTOs
# ---------------------------------------------------------------------------


class PlacementResult(BaseModel):
    """Immutable result of a committed placement."""

    model_config = ConfigDict(frozen=True)

    order_id: UUID
    order_number: str
    subtotal: Decimal
    shipping_cost: Decimal
    total: Decimal
    payment_method: PaymentMethod
    payment: PaymentInstrument
