"""Unit tests for Order identifiers, the status machine and OrderItem totals."""

from __future__ import annotations

import re
from decimal import Decimal

import pytest
from django.db import IntegrityError
from freezegun import freeze_time

from modules.orders.constants import OrderStatus
from modules.orders.models import Order, OrderItem
from modules.payments.constants import PaymentStatus

pytestmark = pytest.mark.unit


class TestIdentifiers:
    @freeze_time("2026-10-19 15:00:00")
    def test_order_number_format(self):
        number = Order.generate_order_number()

        assert re.fullmatch(r"EMU261019[0-9A-F]{6}", number)

    def test_tracking_code_format(self):
        assert re.fullmatch(r"BR[A-Z0-9]{13}", Order.generate_tracking_code())

    def test_order_number_assigned_on_save(self, user):
        order = Order.objects.create(user=user, payment_method="pix")

        assert order.order_number.startswith("EMU")

    def test_order_number_collision_retries_insert(self, user, monkeypatch):
        Order.objects.create(user=user, payment_method="pix", order_number="EMU261019AAAAAA")
        candidates = iter(["EMU261019AAAAAA", "EMU261019BBBBBB"])
        monkeypatch.setattr(Order, "generate_order_number", staticmethod(lambda: next(candidates)))

        order = Order.objects.create(user=user, payment_method="pix")

        assert order.order_number == "EMU261019BBBBBB"
        assert Order.objects.filter(order_number__startswith="EMU261019").count() == 2

    def test_order_number_gives_up_after_max_retries(self, user, monkeypatch):
        Order.objects.create(user=user, payment_method="pix", order_number="EMU261019AAAAAA")
        monkeypatch.setattr(Order, "generate_order_number", staticmethod(lambda: "EMU261019AAAAAA"))

        with pytest.raises(IntegrityError):
            Order.objects.create(user=user, payment_method="pix")

        assert Order.objects.count() == 1

    def test_assign_tracking_code_skips_taken_codes(self, user, monkeypatch):
        Order.objects.create(user=user, payment_method="pix", tracking_code="BRTAKEN000000001")
        candidates = iter(["BRTAKEN000000001", "BRFREE0000000001"])
        monkeypatch.setattr(Order, "generate_tracking_code", staticmethod(lambda: next(candidates)))
        order = Order(user=user, payment_method="pix")

        assert order.assign_tracking_code() == "BRFREE0000000001"
        assert order.tracking_code == "BRFREE0000000001"


class TestStatusMachine:
    @pytest.mark.parametrize(
        ("current", "target", "allowed"),
        [
            (OrderStatus.PENDING, OrderStatus.PAID, True),
            (OrderStatus.PENDING, OrderStatus.CANCELLED, True),
            (OrderStatus.PENDING, OrderStatus.SHIPPED, False),
            (OrderStatus.PAID, OrderStatus.PROCESSING, True),
            (OrderStatus.SHIPPED, OrderStatus.DELIVERED, True),
            (OrderStatus.DELIVERED, OrderStatus.CANCELLED, False),
            (OrderStatus.CANCELLED, OrderStatus.PENDING, False),
        ],
    )
    def test_can_transition_to(self, current, target, allowed):
        assert Order(status=current).can_transition_to(target) is allowed

    def test_terminal_states(self):
        assert Order(status=OrderStatus.DELIVERED).is_terminal
        assert Order(status=OrderStatus.CANCELLED).is_terminal
        assert not Order(status=OrderStatus.PAID).is_terminal

    def test_payment_pending(self):
        assert Order(payment_status=PaymentStatus.PENDING).is_payment_pending
        assert not Order(payment_status=PaymentStatus.PAID).is_payment_pending


class TestOrderItem:
    def test_total_price_computed_on_save(self, user, ring):
        order = Order.objects.create(user=user, payment_method="pix")

        item = OrderItem.objects.create(
            order=order, product=ring, quantity=3, unit_price=Decimal("100.00")
        )

        assert item.total_price == Decimal("300.00")
