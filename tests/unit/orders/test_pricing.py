"""Unit tests for cart pricing validation and the shipping policy."""

from __future__ import annotations

from decimal import Decimal
from uuid import uuid4

import pytest

from modules.orders.exceptions import (
    EmptyCartError,
    InactiveProductError,
    InsufficientStockError,
)
from modules.orders.pricing import CartLineSnapshot, CartPricingValidator, ShippingPolicy

pytestmark = pytest.mark.unit


def _line(name="Anel", price="100.00", stock=5, quantity=1, active=True):
    return CartLineSnapshot(
        product_id=uuid4(),
        product_name=name,
        unit_price=Decimal(price),
        stock_quantity=stock,
        is_active=active,
        quantity=quantity,
    )


class TestCartPricingValidator:
    def test_prices_lines_and_subtotal(self):
        ring = _line(name="Anel", price="100.00", stock=5, quantity=2)
        chain = _line(name="Corrente", price="49.90", stock=3, quantity=3)

        priced = CartPricingValidator().validate([ring, chain])

        assert [line.total_price for line in priced.lines] == [
            Decimal("200.00"),
            Decimal("149.70"),
        ]
        assert priced.subtotal == Decimal("349.70")
        assert priced.lines[0].product_id == ring.product_id

    def test_quantity_equal_to_stock_is_allowed(self):
        priced = CartPricingValidator().validate([_line(stock=2, quantity=2)])

        assert priced.subtotal == Decimal("200.00")

    def test_empty_cart(self):
        with pytest.raises(EmptyCartError):
            CartPricingValidator().validate([])

    def test_inactive_product_names_product(self):
        with pytest.raises(InactiveProductError) as excinfo:
            CartPricingValidator().validate([_line(name="Pingente", active=False)])

        assert excinfo.value.product_name == "Pingente"
        assert "Pingente" in excinfo.value.public_message

    def test_insufficient_stock_reports_shortfall(self):
        with pytest.raises(InsufficientStockError) as excinfo:
            CartPricingValidator().validate([_line(name="Brinco", stock=1, quantity=3)])

        error = excinfo.value
        assert error.product_name == "Brinco"
        assert (error.requested, error.available, error.shortfall) == (3, 1, 2)

    def test_first_offending_line_wins(self):
        lines = [
            _line(name="Sem estoque", stock=0, quantity=1),
            _line(name="Inativo", active=False),
        ]

        with pytest.raises(InsufficientStockError) as excinfo:
            CartPricingValidator().validate(lines)
        assert excinfo.value.product_name == "Sem estoque"


class TestShippingPolicy:
    @pytest.fixture()
    def policy(self):
        return ShippingPolicy(free_threshold=Decimal("500.00"), flat_rate=Decimal("25.00"))

    def test_flat_rate_below_threshold(self, policy):
        assert policy.cost_for(Decimal("499.99")) == Decimal("25.00")

    def test_free_from_threshold(self, policy):
        assert policy.cost_for(Decimal("500.00")) == Decimal("0.00")
