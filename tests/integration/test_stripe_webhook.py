"""Integration tests for ``POST /api/v1/payments/stripe/webhook/``."""

from __future__ import annotations

import hashlib
import hmac
import json
import time
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from modules.orders.dependencies import get_order_service
from modules.orders.dtos import PlaceOrderDTO
from modules.orders.models import Order
from modules.payments.constants import PaymentMethod
from modules.payments.models import Payment

pytestmark = pytest.mark.integration

URL = "/api/v1/payments/stripe/webhook/"


def _signed_header(payload: str, secret: str) -> str:
    timestamp = int(time.time())
    digest = hmac.new(
        secret.encode("utf-8"), f"{timestamp}.{payload}".encode("utf-8"), hashlib.sha256
    ).hexdigest()
    return f"t={timestamp},v1={digest}"


def _event(event_type: str, intent: dict) -> dict:
    return {"id": "evt_test", "type": event_type, "data": {"object": intent}}


@pytest.fixture()
def pending_order(user, ring, fill_cart, shipping_address):
    """A pending card order whose current intent is ``pi_1``."""
    fill_cart(user, (ring, 1))
    client = MagicMock()
    client.v1.payment_intents.create.return_value = SimpleNamespace(
        id="pi_1", client_secret="pi_1_secret"
    )
    with patch("modules.payments.factory.build_stripe_client", return_value=client):
        result = get_order_service().place_order(
            PlaceOrderDTO(
                user_id=user.id,
                payment_method=PaymentMethod.CREDIT_CARD,
                shipping_address=shipping_address,
                shipping_cost=Decimal("0.00"),
            )
        )
    return Order.objects.get(id=result.order_id)


def _post_event(api_client, event: dict):
    with patch(
        "modules.payments.providers.StripePaymentProvider.construct_event",
        return_value=event,
    ):
        return api_client.post(
            URL,
            data=json.dumps(event),
            content_type="application/json",
            HTTP_STRIPE_SIGNATURE="t=1,v1=ignored",
        )


class TestSignature:
    def test_real_signature_accepted(self, api_client, pending_order, settings):
        payload = json.dumps(
            _event(
                "payment_intent.succeeded",
                {"id": "pi_1", "metadata": {"order_id": str(pending_order.id)}},
            )
        )

        response = api_client.post(
            URL,
            data=payload,
            content_type="application/json",
            HTTP_STRIPE_SIGNATURE=_signed_header(payload, settings.STRIPE_WEBHOOK_SECRET),
        )

        assert response.status_code == 200
        pending_order.refresh_from_db()
        assert pending_order.payment_status == "paid"

    def test_bad_signature_rejected(self, api_client, pending_order):
        payload = json.dumps(_event("payment_intent.succeeded", {"id": "pi_1"}))

        response = api_client.post(
            URL,
            data=payload,
            content_type="application/json",
            HTTP_STRIPE_SIGNATURE=_signed_header(payload, "whsec_wrong"),
        )

        assert response.status_code == 400
        assert response.json()["errors"][0]["code"] == "invalid_signature"
        pending_order.refresh_from_db()
        assert pending_order.payment_status == "pending"

    def test_disabled_without_stripe(self, api_client, settings):
        settings.STRIPE_SECRET_KEY = ""

        response = api_client.post(URL, data="{}", content_type="application/json")

        assert response.status_code == 404


class TestEvents:
    def test_succeeded_confirms_payment(self, api_client, pending_order):
        event = _event(
            "payment_intent.succeeded",
            {"id": "pi_1", "metadata": {"order_id": str(pending_order.id)}},
        )

        response = _post_event(api_client, event)

        assert response.json() == {"received": True}
        pending_order.refresh_from_db()
        assert pending_order.status == "paid"
        assert pending_order.tracking_code is not None

    def test_redelivered_success_keeps_tracking_code(self, api_client, pending_order):
        event = _event(
            "payment_intent.succeeded",
            {"id": "pi_1", "metadata": {"order_id": str(pending_order.id)}},
        )

        _post_event(api_client, event)
        pending_order.refresh_from_db()
        tracking_code = pending_order.tracking_code
        _post_event(api_client, event)
        pending_order.refresh_from_db()

        assert pending_order.tracking_code == tracking_code

    def test_failed_marks_payment_failed(self, api_client, pending_order):
        event = _event(
            "payment_intent.payment_failed",
            {
                "id": "pi_1",
                "metadata": {"order_id": str(pending_order.id)},
                "last_payment_error": {"code": "card_declined"},
            },
        )

        _post_event(api_client, event)

        pending_order.refresh_from_db()
        assert pending_order.payment_status == "failed"
        assert pending_order.status == "pending"
        assert Payment.objects.get(order=pending_order).status == "failed"

    def test_order_found_by_intent_id(self, api_client, pending_order):
        Payment.objects.filter(order=pending_order).update(provider_payment_id="pi_lookup")
        event = _event("payment_intent.succeeded", {"id": "pi_lookup", "metadata": {}})

        _post_event(api_client, event)

        pending_order.refresh_from_db()
        assert pending_order.payment_status == "paid"

    def test_unhandled_type_ignored(self, api_client, pending_order):
        response = _post_event(api_client, _event("charge.refunded", {"id": "ch_1"}))

        assert response.status_code == 200
        pending_order.refresh_from_db()
        assert pending_order.payment_status == "pending"

    def test_unknown_intent_acknowledged(self, api_client):
        event = _event("payment_intent.succeeded", {"id": "pi_none", "metadata": {}})

        response = _post_event(api_client, event)

        assert response.json() == {"received": True}


class TestStaleIntents:
    def test_failure_for_replaced_intent_is_ignored(self, api_client, pending_order):
        event = _event(
            "payment_intent.payment_failed",
            {"id": "pi_previous_attempt", "metadata": {"order_id": str(pending_order.id)}},
        )

        response = _post_event(api_client, event)

        assert response.json() == {"received": True}
        pending_order.refresh_from_db()
        assert pending_order.payment_status == "pending"
        assert Payment.objects.get(order=pending_order).status == "pending"

    def test_card_event_for_pix_order_is_ignored(
        self, api_client, user, chain, fill_cart, shipping_address
    ):
        fill_cart(user, (chain, 1))
        result = get_order_service().place_order(
            PlaceOrderDTO(
                user_id=user.id,
                payment_method=PaymentMethod.PIX,
                shipping_address=shipping_address,
                shipping_cost=Decimal("0.00"),
            )
        )
        event = _event(
            "payment_intent.succeeded",
            {"id": "pi_card_before_switch", "metadata": {"order_id": str(result.order_id)}},
        )

        response = _post_event(api_client, event)

        assert response.status_code == 200
        order = Order.objects.get(id=result.order_id)
        assert order.payment_status == "pending"
        assert order.tracking_code is None


class TestUnreconcilableEvents:
    def test_success_for_cancelled_order_is_acknowledged(self, api_client, pending_order):
        get_order_service().cancel_order(pending_order.id, notes="Desistência")
        event = _event(
            "payment_intent.succeeded",
            {"id": "pi_1", "metadata": {"order_id": str(pending_order.id)}},
        )

        response = _post_event(api_client, event)

        assert response.status_code == 200
        assert response.json() == {"received": True}
        pending_order.refresh_from_db()
        assert pending_order.status == "cancelled"
        assert pending_order.tracking_code is None

    def test_failure_after_confirmation_is_acknowledged(self, api_client, pending_order):
        get_order_service().confirm_payment(pending_order.id)
        event = _event(
            "payment_intent.payment_failed",
            {"id": "pi_1", "metadata": {"order_id": str(pending_order.id)}},
        )

        response = _post_event(api_client, event)

        assert response.status_code == 200
        pending_order.refresh_from_db()
        assert pending_order.status == "paid"
        assert pending_order.payment_status == "paid"
        assert Payment.objects.get(order=pending_order).status == "paid"
