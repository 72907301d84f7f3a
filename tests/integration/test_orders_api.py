"""Integration tests for the order endpoints after placement.

Read access, payment-method changes, payment confirmation, cancellation,
the staff fulfilment flow and public tracking.
"""

from __future__ import annotations

from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import MagicMock, patch
from uuid import uuid4

import pytest

from modules.orders.dependencies import get_order_service
from modules.orders.dtos import PlaceOrderDTO
from modules.orders.models import Order, OrderStatusHistory
from modules.payments.constants import PaymentMethod
from modules.payments.models import Payment

pytestmark = pytest.mark.integration


@pytest.fixture()
def place(make_product, fill_cart, shipping_address):
    """Place a PIX order for *user* through the real service."""
    counter = {"n": 0}

    def _place(user, price="100.00", quantity=2, stock=10):
        counter["n"] += 1
        product = make_product(sku=f"ORD-{counter['n']:03d}", price=price, stock=stock)
        fill_cart(user, (product, quantity))
        result = get_order_service().place_order(
            PlaceOrderDTO(
                user_id=user.id,
                payment_method=PaymentMethod.PIX,
                shipping_address=shipping_address,
                shipping_cost=Decimal("25.00"),
            )
        )
        return Order.objects.get(id=result.order_id), product

    return _place


def _stripe_client():
    client = MagicMock()
    client.v1.payment_intents.create.return_value = SimpleNamespace(
        id="pi_switch_1", client_secret="pi_switch_1_secret"
    )
    return client


class TestRead:
    def test_list_only_own_orders(self, auth_client, user, other_user, place):
        mine, _ = place(user)
        place(other_user)

        response = auth_client.get("/api/v1/orders/")

        assert response.status_code == 200
        results = response.json()["results"]
        assert [row["id"] for row in results] == [str(mine.id)]
        assert results[0]["total"] == "225.00"

    def test_filter_by_status(self, auth_client, user, place):
        order, _ = place(user)
        place(user)
        get_order_service().confirm_payment(order.id)

        response = auth_client.get("/api/v1/orders/", {"status": "paid"})

        assert [row["id"] for row in response.json()["results"]] == [str(order.id)]

    def test_retrieve_includes_items_payment_and_history(self, auth_client, user, place):
        order, product = place(user)

        response = auth_client.get(f"/api/v1/orders/{order.id}/")

        assert response.status_code == 200
        data = response.json()
        assert data["items"][0]["product_sku"] == product.sku
        assert data["items"][0]["total_price"] == "200.00"
        assert data["payment"]["payment_method"] == "pix"
        assert data["payment"]["amount"] == "225.00"
        assert data["status_history"][0]["new_status"] == "pending"

    def test_other_users_order_is_not_found(self, auth_client, other_user, place):
        order, _ = place(other_user)

        response = auth_client.get(f"/api/v1/orders/{order.id}/")

        assert response.status_code == 404
        assert response.json()["errors"][0]["code"] == "order_not_found"

    def test_invalid_id_is_not_found(self, auth_client):
        response = auth_client.get("/api/v1/orders/not-a-uuid/")

        assert response.status_code == 404


class TestUpdate:
    def test_scenario_d_switch_pix_to_card(self, auth_client, user, place):
        order, _ = place(user)

        with patch(
            "modules.payments.factory.build_stripe_client", return_value=_stripe_client()
        ):
            response = auth_client.patch(
                f"/api/v1/orders/{order.id}/",
                {"payment_method": "credit_card"},
                format="json",
            )

        assert response.status_code == 200
        data = response.json()
        assert data["order"]["payment_method"] == "credit_card"
        assert data["payment"]["client_secret"] == "pi_switch_1_secret"
        assert data["payment"]["pix_code"] is None

        payment = Payment.objects.get(order=order)
        assert payment.payment_method == "credit_card"
        assert payment.pix_code == ""
        assert payment.pix_qr_code == ""
        assert payment.pix_transaction_id == ""
        assert payment.expires_at is None
        assert payment.provider_payment_id == "pi_switch_1"
        assert payment.amount == Decimal("225.00")

    def test_notes_only_keeps_payment(self, auth_client, user, place):
        order, _ = place(user)
        pix_code = Payment.objects.get(order=order).pix_code

        response = auth_client.patch(
            f"/api/v1/orders/{order.id}/", {"notes": "Presente"}, format="json"
        )

        assert response.status_code == 200
        assert response.json()["payment"] is None
        assert response.json()["order"]["notes"] == "Presente"
        assert Payment.objects.get(order=order).pix_code == pix_code

    def test_paid_order_cannot_change(self, auth_client, user, place):
        order, _ = place(user)
        get_order_service().confirm_payment(order.id)

        response = auth_client.patch(
            f"/api/v1/orders/{order.id}/", {"payment_method": "pix"}, format="json"
        )

        assert response.status_code == 409
        assert response.json()["errors"][0]["code"] == "order_not_updatable"

    def test_empty_body_rejected(self, auth_client, user, place):
        order, _ = place(user)

        response = auth_client.patch(f"/api/v1/orders/{order.id}/", {}, format="json")

        assert response.status_code == 400


class TestConfirmPayment:
    def test_requires_staff(self, auth_client, user, place):
        order, _ = place(user)

        response = auth_client.post(f"/api/v1/orders/{order.id}/confirm-payment/")

        assert response.status_code == 403

    def test_scenario_e_confirm_is_idempotent(self, staff_client, user, place):
        order, _ = place(user)
        url = f"/api/v1/orders/{order.id}/confirm-payment/"

        first = staff_client.post(url)
        second = staff_client.post(url)

        assert first.status_code == 200
        assert second.status_code == 200
        tracking_code = first.json()["tracking_code"]
        assert tracking_code.startswith("BR")
        assert second.json()["tracking_code"] == tracking_code

        order.refresh_from_db()
        assert order.status == "paid"
        assert order.payment_status == "paid"
        payment = Payment.objects.get(order=order)
        assert payment.status == "paid"
        assert payment.paid_at is not None
        assert OrderStatusHistory.objects.filter(order=order, new_status="paid").count() == 1

    def test_failed_payment_cannot_be_confirmed(self, staff_client, user, place):
        order, _ = place(user)
        get_order_service().fail_payment(order.id, reason="card_declined")

        response = staff_client.post(f"/api/v1/orders/{order.id}/confirm-payment/")

        assert response.status_code == 409
        assert response.json()["errors"][0]["code"] == "payment_not_confirmable"

    def test_unknown_order(self, staff_client):
        response = staff_client.post(f"/api/v1/orders/{uuid4()}/confirm-payment/")

        assert response.status_code == 404


class TestCancel:
    def test_cancel_releases_stock(self, auth_client, user, place):
        order, product = place(user, quantity=3, stock=5)
        product.refresh_from_db()
        assert product.stock_quantity == 2

        response = auth_client.post(
            f"/api/v1/orders/{order.id}/cancel/", {"notes": "Desisti"}, format="json"
        )

        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"
        product.refresh_from_db()
        assert product.stock_quantity == 5
        assert Payment.objects.get(order=order).status == "failed"
        history = OrderStatusHistory.objects.filter(order=order).last()
        assert (history.old_status, history.new_status, history.notes) == (
            "pending",
            "cancelled",
            "Desisti",
        )

    def test_cannot_cancel_paid_order(self, auth_client, user, place):
        order, _ = place(user)
        get_order_service().confirm_payment(order.id)

        response = auth_client.post(f"/api/v1/orders/{order.id}/cancel/")

        assert response.status_code == 409

    def test_cannot_cancel_someone_elses_order(self, auth_client, other_user, place):
        order, _ = place(other_user)

        response = auth_client.post(f"/api/v1/orders/{order.id}/cancel/")

        assert response.status_code == 404
        order.refresh_from_db()
        assert order.status == "pending"


class TestFulfilment:
    def test_staff_moves_paid_order_to_delivered(self, staff_client, user, place):
        order, _ = place(user)
        get_order_service().confirm_payment(order.id)
        url = f"/api/v1/orders/{order.id}/status/"

        for target in ("processing", "shipped", "delivered"):
            response = staff_client.post(url, {"status": target}, format="json")
            assert response.status_code == 200
            assert response.json()["status"] == target

    def test_skipping_a_step_is_rejected(self, staff_client, user, place):
        order, _ = place(user)
        get_order_service().confirm_payment(order.id)

        response = staff_client.post(
            f"/api/v1/orders/{order.id}/status/", {"status": "delivered"}, format="json"
        )

        assert response.status_code == 409
        assert response.json()["errors"][0]["code"] == "invalid_order_status"

    def test_pending_order_cannot_be_processed(self, staff_client, user, place):
        order, _ = place(user)

        response = staff_client.post(
            f"/api/v1/orders/{order.id}/status/", {"status": "processing"}, format="json"
        )

        assert response.status_code == 409


class TestTracking:
    def test_public_timeline(self, api_client, user, place):
        order, _ = place(user)
        order = get_order_service().confirm_payment(order.id)

        response = api_client.get(f"/api/v1/tracking/{order.tracking_code.lower()}/")

        assert response.status_code == 200
        data = response.json()
        assert data["order_number"] == order.order_number
        assert [entry["new_status"] for entry in data["timeline"]] == ["pending", "paid"]
        assert "total" not in data
        assert "shipping_address" not in data

    def test_unknown_code(self, api_client):
        response = api_client.get("/api/v1/tracking/BRNOPE/")

        assert response.status_code == 404
