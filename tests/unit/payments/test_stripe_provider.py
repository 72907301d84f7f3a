"""Unit tests for ``StripePaymentProvider`` with a mocked ``StripeClient``."""

from __future__ import annotations

import hashlib
import hmac
import json
import time
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
import stripe

from modules.payments.exceptions import PaymentProviderError
from modules.payments.providers import StripePaymentProvider

pytestmark = pytest.mark.unit

WEBHOOK_SECRET = "whsec_unit"


def _signature(payload: str, secret: str = WEBHOOK_SECRET) -> str:
    timestamp = int(time.time())
    signed = f"{timestamp}.{payload}".encode("utf-8")
    digest = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


@pytest.fixture()
def client():
    client = MagicMock()
    client.v1.payment_intents.create.return_value = SimpleNamespace(
        id="pi_123", client_secret="pi_123_secret_abc"
    )
    return client


class TestCreateIntent:
    def test_sends_params_and_idempotency_key(self, client):
        provider = StripePaymentProvider(client)

        result = provider.create_intent(
            amount_minor_units=22500,
            currency="BRL",
            metadata={"order_id": "abc", "attempt": 1},
            idempotency_key="order-abc-225.00",
        )

        client.v1.payment_intents.create.assert_called_once_with(
            params={
                "amount": 22500,
                "currency": "brl",
                "metadata": {"order_id": "abc", "attempt": "1"},
                "automatic_payment_methods": {"enabled": True},
            },
            options={"idempotency_key": "order-abc-225.00"},
        )
        assert result.intent_id == "pi_123"
        assert result.client_secret == "pi_123_secret_abc"

    def test_no_idempotency_key_sends_empty_options(self, client):
        StripePaymentProvider(client).create_intent(100, "brl", {})

        _, kwargs = client.v1.payment_intents.create.call_args
        assert kwargs["options"] == {}

    def test_rejects_non_positive_amount_without_calling_stripe(self, client):
        with pytest.raises(PaymentProviderError) as excinfo:
            StripePaymentProvider(client).create_intent(0, "brl", {})

        assert excinfo.value.provider_code == "invalid_amount"
        client.v1.payment_intents.create.assert_not_called()

    def test_card_error_mapped_with_provider_code(self, client):
        client.v1.payment_intents.create.side_effect = stripe.CardError(
            "Your card was declined.", None, "card_declined"
        )

        with pytest.raises(PaymentProviderError) as excinfo:
            StripePaymentProvider(client).create_intent(1000, "brl", {})

        error = excinfo.value
        assert error.provider_code == "card_declined"
        assert "card_declined" in str(error)
        assert error.public_message == PaymentProviderError.default_public_message
        assert isinstance(error.__cause__, stripe.CardError)

    def test_connection_error_mapped_to_generic_code(self, client):
        client.v1.payment_intents.create.side_effect = stripe.APIConnectionError(
            "Request timed out"
        )

        with pytest.raises(PaymentProviderError) as excinfo:
            StripePaymentProvider(client).create_intent(1000, "brl", {})

        assert excinfo.value.provider_code == "provider_error"


class TestConstructEvent:
    def test_valid_signature_returns_event_dict(self, client):
        payload = json.dumps(
            {"id": "evt_1", "type": "payment_intent.succeeded", "data": {"object": {}}}
        )
        provider = StripePaymentProvider(client, webhook_secret=WEBHOOK_SECRET)

        event = provider.construct_event(payload.encode("utf-8"), _signature(payload))

        assert event["id"] == "evt_1"
        assert event["type"] == "payment_intent.succeeded"

    def test_wrong_secret_rejected(self, client):
        payload = json.dumps({"id": "evt_1"})
        provider = StripePaymentProvider(client, webhook_secret=WEBHOOK_SECRET)

        with pytest.raises(stripe.SignatureVerificationError):
            provider.construct_event(
                payload.encode("utf-8"), _signature(payload, secret="whsec_other")
            )

    def test_missing_signature_rejected(self, client):
        provider = StripePaymentProvider(client, webhook_secret=WEBHOOK_SECRET)

        with pytest.raises(stripe.SignatureVerificationError):
            provider.construct_event(b"{}", "")
