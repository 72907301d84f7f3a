"""Card payment provider gateway.

``IPaymentProvider`` is the only thing the card instrument generator
knows about.  The production implementation wraps an injected
``stripe.StripeClient`` so tests can pass a mock client and the HTTP
timeout / retry policy is decided once, in ``modules.payments.factory``.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

import stripe
import structlog

from modules.payments.exceptions import PaymentProviderError

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class PaymentIntentResult:
    client_secret: str
    intent_id: str


class IPaymentProvider(ABC):
    """Contract for card payment providers."""

    name: str = "provider"

    @abstractmethod
    def create_intent(
        self,
        amount_minor_units: int,
        currency: str,
        metadata: Mapping[str, Any],
        idempotency_key: Optional[str] = None,
    ) -> PaymentIntentResult:
        """Create a payment intent for *amount_minor_units* (cents).

        Raises:
            PaymentProviderError: the provider rejected the request or could
                not be reached within the configured timeout.
        """


class StripePaymentProvider(IPaymentProvider):
    name = "stripe"

    def __init__(self, client: stripe.StripeClient, webhook_secret: str = "") -> None:
        self._client = client
        self._webhook_secret = webhook_secret

    def create_intent(
        self,
        amount_minor_units: int,
        currency: str,
        metadata: Mapping[str, Any],
        idempotency_key: Optional[str] = None,
    ) -> PaymentIntentResult:
        if amount_minor_units <= 0:
            raise PaymentProviderError(
                "invalid_amount", f"Amount must be positive, got {amount_minor_units}."
            )

        params: Dict[str, Any] = {
            "amount": amount_minor_units,
            "currency": currency.lower(),
            # Stripe metadata values must be strings
            "metadata": {key: str(value) for key, value in metadata.items()},
            "automatic_payment_methods": {"enabled": True},
        }
        options: Dict[str, Any] = {}
        if idempotency_key:
            options["idempotency_key"] = idempotency_key

        log = logger.bind(amount=amount_minor_units, currency=params["currency"])
        try:
            intent = self._client.v1.payment_intents.create(
                params=params, options=options
            )
        except stripe.StripeError as exc:
            code = getattr(exc, "code", None) or "provider_error"
            log.warning(
                "payment.provider.intent_failed",
                provider=self.name,
                provider_code=code,
                http_status=getattr(exc, "http_status", None),
            )
            raise PaymentProviderError(code, exc.user_message or str(exc)) from exc

        log.info("payment.provider.intent_created", intent_id=intent.id)
        return PaymentIntentResult(client_secret=intent.client_secret, intent_id=intent.id)

    def construct_event(self, payload: bytes, signature: str) -> Dict[str, Any]:
        """Verify a webhook signature and parse the event as a plain dict.

        Raises ``ValueError`` for malformed payloads and
        ``stripe.SignatureVerificationError`` for bad signatures.
        """
        text = payload.decode("utf-8") if isinstance(payload, bytes) else payload
        stripe.WebhookSignature.verify_header(text, signature, self._webhook_secret)
        return json.loads(text)
