"""Integration tests for the ``payments.expire_pending_pix`` Celery task."""

from __future__ import annotations

from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest
from freezegun import freeze_time

from modules.orders.dependencies import get_order_service
from modules.orders.dtos import PlaceOrderDTO
from modules.orders.exceptions import InvalidOrderStatus
from modules.orders.models import Order
from modules.payments.constants import PaymentMethod
from modules.payments.models import Payment
from modules.payments.tasks import expire_pending_pix

pytestmark = pytest.mark.integration


def _place(user, shipping_address) -> Order:
    result = get_order_service().place_order(
        PlaceOrderDTO(
            user_id=user.id,
            payment_method=PaymentMethod.PIX,
            shipping_address=shipping_address,
            shipping_cost=Decimal("25.00"),
        )
    )
    return Order.objects.get(id=result.order_id)


class TestExpirePendingPix:
    def test_expired_order_cancelled_and_stock_released(
        self, user, make_product, fill_cart, shipping_address
    ):
        product = make_product(sku="EXP-1", stock=5)
        fill_cart(user, (product, 2))
        with freeze_time("2026-10-19 12:00:00"):
            order = _place(user, shipping_address)

        with freeze_time("2026-10-19 12:31:00"):
            result = expire_pending_pix.delay().get()

        assert result == {"cancelled": 1, "skipped": 0}
        order.refresh_from_db()
        assert order.status == "cancelled"
        assert order.payment_status == "failed"
        assert Payment.objects.get(order=order).status == "failed"
        product.refresh_from_db()
        assert product.stock_quantity == 5
        assert order.status_history.last().notes == "PIX payment expired"

    def test_code_still_valid_is_kept(self, user, make_product, fill_cart, shipping_address):
        fill_cart(user, (make_product(sku="EXP-2", stock=5), 1))
        with freeze_time("2026-10-19 12:00:00"):
            order = _place(user, shipping_address)

        with freeze_time("2026-10-19 12:29:00"):
            result = expire_pending_pix()

        assert result == {"cancelled": 0, "skipped": 0}
        order.refresh_from_db()
        assert order.status == "pending"

    def test_paid_order_is_not_expired(self, user, make_product, fill_cart, shipping_address):
        fill_cart(user, (make_product(sku="EXP-3", stock=5), 1))
        with freeze_time("2026-10-19 12:00:00"):
            order = _place(user, shipping_address)
            get_order_service().confirm_payment(order.id)

        with freeze_time("2026-10-19 13:00:00"):
            result = expire_pending_pix()

        assert result == {"cancelled": 0, "skipped": 0}
        order.refresh_from_db()
        assert order.status == "paid"

    def test_order_changed_concurrently_is_skipped(
        self, user, make_product, fill_cart, shipping_address
    ):
        fill_cart(user, (make_product(sku="EXP-4", stock=5), 1))
        with freeze_time("2026-10-19 12:00:00"):
            _place(user, shipping_address)
        service = MagicMock()
        service.cancel_order.side_effect = InvalidOrderStatus("already paid")

        with freeze_time("2026-10-19 12:45:00"), patch(
            "modules.payments.tasks.get_order_service", return_value=service
        ):
            result = expire_pending_pix()

        assert result == {"cancelled": 0, "skipped": 1}
