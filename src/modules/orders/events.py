"""Domain events for the Orders bounded context."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class OrderPlaced(DomainEvent):
    """Raised when a placement commits."""

    order_number: str = ""
    total: str = "0.00"
    payment_method: str = ""


@dataclass(frozen=True)
class OrderUpdated(DomainEvent):
    """Raised when the payment method or notes of a pending order change."""

    payment_method: str = ""


@dataclass(frozen=True)
class OrderPaymentConfirmed(DomainEvent):
    tracking_code: Optional[str] = None


@dataclass(frozen=True)
class OrderPaymentFailed(DomainEvent):
    reason: str = ""


@dataclass(frozen=True)
class OrderCancelled(DomainEvent):
    """Raised when an order is cancelled and its stock released."""

    reason: str = ""
