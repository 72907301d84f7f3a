"""Cart DTOs passed from the API layer to ``CartService``."""

from __future__ import annotations

from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class AddCartItemDTO(BaseModel):
    """Add ``quantity`` units of a product; merges with an existing line."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    user_id: int
    product_id: UUID
    quantity: int = Field(ge=1)


class UpdateCartItemDTO(BaseModel):
    """Replace the quantity of an existing line."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    user_id: int
    product_id: UUID
    quantity: int = Field(ge=1)
