"""Unit tests for payment instrument generators and the registry."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

import pytest
from freezegun import freeze_time

from modules.payments.constants import PaymentMethod
from modules.payments.exceptions import (
    PaymentProviderError,
    PixGenerationError,
    UnsupportedPaymentMethod,
)
from modules.payments.instruments import (
    CardInstrumentGenerator,
    InstrumentRequest,
    PaymentInstrumentRegistry,
    PixInstrumentGenerator,
)
from modules.payments.providers import IPaymentProvider, PaymentIntentResult

pytestmark = pytest.mark.unit


class FakeProvider(IPaymentProvider):
    name = "fake"

    def __init__(self, error: Exception | None = None) -> None:
        self.calls: list[dict] = []
        self._error = error

    def create_intent(self, amount_minor_units, currency, metadata, idempotency_key=None):
        self.calls.append(
            {
                "amount_minor_units": amount_minor_units,
                "currency": currency,
                "metadata": dict(metadata),
                "idempotency_key": idempotency_key,
            }
        )
        if self._error is not None:
            raise self._error
        return PaymentIntentResult(client_secret="pi_1_secret_x", intent_id="pi_1")


@pytest.fixture()
def request_225():
    return InstrumentRequest(
        order_id=uuid4(), order_number="EMU261019ABC123", amount=Decimal("225.00")
    )


@pytest.fixture()
def pix_generator():
    return PixInstrumentGenerator(
        pix_key="+5562998130462",
        merchant_name="EMUNAH GOLD 18K",
        merchant_city="GOIANIA",
        expiration_minutes=30,
        transaction_id_factory=lambda: "TXFIXED0001",
    )


class TestPixInstrumentGenerator:
    @freeze_time("2026-10-19 12:00:00")
    def test_generates_code_image_and_expiry(self, pix_generator, request_225):
        instrument = pix_generator.generate(request_225)

        assert instrument.method == PaymentMethod.PIX
        assert instrument.amount == Decimal("225.00")
        assert instrument.pix_transaction_id == "TXFIXED0001"
        assert "5406225.00" in instrument.pix_code
        assert "Pedido EMU261019ABC123" in instrument.pix_code
        assert instrument.pix_qr_code.startswith("data:image/png;base64,")
        assert instrument.expires_at == datetime(
            2026, 10, 19, 12, 0, tzinfo=timezone.utc
        ) + timedelta(minutes=30)
        assert instrument.client_secret is None
        assert instrument.provider is None

    def test_non_positive_amount_raises(self, pix_generator):
        request = InstrumentRequest(
            order_id=uuid4(), order_number="EMU1", amount=Decimal("0.00")
        )

        with pytest.raises(PixGenerationError):
            pix_generator.generate(request)

    def test_missing_key_raises(self, request_225):
        generator = PixInstrumentGenerator(
            pix_key="", merchant_name="EMUNAH", merchant_city="GOIANIA"
        )

        with pytest.raises(PixGenerationError):
            generator.generate(request_225)


class TestCardInstrumentGenerator:
    def test_creates_intent_in_cents(self, request_225):
        provider = FakeProvider()
        generator = CardInstrumentGenerator(provider, currency="brl")

        instrument = generator.generate(request_225)

        call = provider.calls[0]
        assert call["amount_minor_units"] == 22500
        assert call["currency"] == "brl"
        assert call["metadata"] == {
            "order_id": str(request_225.order_id),
            "order_number": "EMU261019ABC123",
        }
        assert call["idempotency_key"] == f"order-{request_225.order_id}-225.00"
        assert instrument.method == PaymentMethod.CREDIT_CARD
        assert instrument.provider == "fake"
        assert instrument.provider_payment_id == "pi_1"
        assert instrument.client_secret == "pi_1_secret_x"
        assert instrument.pix_code is None
        assert instrument.expires_at is None

    def test_client_secret_not_in_repr(self, request_225):
        instrument = CardInstrumentGenerator(FakeProvider()).generate(request_225)

        assert "pi_1_secret_x" not in repr(instrument)

    def test_zero_amount_never_reaches_provider(self):
        provider = FakeProvider()
        request = InstrumentRequest(order_id=uuid4(), order_number="EMU1", amount=Decimal("0"))

        with pytest.raises(PaymentProviderError):
            CardInstrumentGenerator(provider).generate(request)
        assert provider.calls == []

    def test_provider_error_propagates(self, request_225):
        error = PaymentProviderError("card_declined", "Your card was declined.")
        generator = CardInstrumentGenerator(FakeProvider(error=error))

        with pytest.raises(PaymentProviderError) as excinfo:
            generator.generate(request_225)
        assert excinfo.value.provider_code == "card_declined"


class TestPaymentInstrumentRegistry:
    def test_dispatches_by_method(self, pix_generator, request_225):
        registry = PaymentInstrumentRegistry()
        registry.register(pix_generator)
        registry.register(CardInstrumentGenerator(FakeProvider()))

        pix = registry.generate(PaymentMethod.PIX, request_225)
        card = registry.generate("credit_card", request_225)

        assert pix.method == PaymentMethod.PIX
        assert card.method == PaymentMethod.CREDIT_CARD
        assert registry.methods == ["credit_card", "pix"]

    def test_unknown_method_raises(self, pix_generator):
        registry = PaymentInstrumentRegistry()
        registry.register(pix_generator)

        with pytest.raises(UnsupportedPaymentMethod) as excinfo:
            registry.for_method(PaymentMethod.CREDIT_CARD)
        assert excinfo.value.method == "credit_card"
