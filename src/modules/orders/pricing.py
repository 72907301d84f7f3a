"""Cart pricing and stock validation.

Pure functions over snapshots: no database access, so the order service
decides what is locked and when, and the rules can be unit-tested
without Django models.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Sequence, Tuple
from uuid import UUID

from modules.orders.exceptions import (
    EmptyCartError,
    InactiveProductError,
    InsufficientStockError,
)


@dataclass(frozen=True)
class CartLineSnapshot:
    """A cart line joined with the (locked) product row."""

    product_id: UUID
    product_name: str
    unit_price: Decimal
    stock_quantity: int
    is_active: bool
    quantity: int


@dataclass(frozen=True)
class PricedLine:
    product_id: UUID
    product_name: str
    quantity: int
    unit_price: Decimal
    total_price: Decimal


@dataclass(frozen=True)
class PricedCart:
    lines: Tuple[PricedLine, ...]
    subtotal: Decimal


class CartPricingValidator:
    """Validates a cart snapshot and prices it at current product prices.

    Lines are checked in cart order and the first offending line raises.
    """

    def validate(self, lines: Sequence[CartLineSnapshot]) -> PricedCart:
        if not lines:
            raise EmptyCartError("Cart is empty.")

        priced = []
        subtotal = Decimal("0.00")
        for line in lines:
            if not line.is_active:
                raise InactiveProductError(line.product_name)
            if line.quantity > line.stock_quantity:
                raise InsufficientStockError(
                    line.product_name, line.quantity, line.stock_quantity
                )
            total_price = line.unit_price * line.quantity
            subtotal += total_price
            priced.append(
                PricedLine(
                    product_id=line.product_id,
                    product_name=line.product_name,
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                    total_price=total_price,
                )
            )
        return PricedCart(lines=tuple(priced), subtotal=subtotal)


@dataclass(frozen=True)
class ShippingPolicy:
    """Flat-rate shipping, free from ``free_threshold`` upwards."""

    free_threshold: Decimal
    flat_rate: Decimal

    def cost_for(self, subtotal: Decimal) -> Decimal:
        if subtotal >= self.free_threshold:
            return Decimal("0.00")
        return self.flat_rate
