"""Builds production payment collaborators from Django settings."""

from __future__ import annotations

from typing import Optional

import stripe
import structlog
from django.conf import settings

from modules.payments.instruments import (
    CardInstrumentGenerator,
    PaymentInstrumentRegistry,
    PixInstrumentGenerator,
)
from modules.payments.providers import StripePaymentProvider

logger = structlog.get_logger(__name__)


def build_stripe_client() -> Optional[stripe.StripeClient]:
    if not settings.STRIPE_SECRET_KEY:
        return None
    return stripe.StripeClient(
        settings.STRIPE_SECRET_KEY,
        http_client=stripe.RequestsClient(timeout=settings.STRIPE_TIMEOUT_SECONDS),
        max_network_retries=0,
    )


def build_stripe_provider() -> Optional[StripePaymentProvider]:
    client = build_stripe_client()
    if client is None:
        return None
    return StripePaymentProvider(client, webhook_secret=settings.STRIPE_WEBHOOK_SECRET)


def build_instrument_registry() -> PaymentInstrumentRegistry:
    """PIX is always available; card payments only when Stripe is configured."""
    registry = PaymentInstrumentRegistry()
    registry.register(
        PixInstrumentGenerator(
            pix_key=settings.PIX_KEY,
            merchant_name=settings.PIX_MERCHANT_NAME,
            merchant_city=settings.PIX_MERCHANT_CITY,
            expiration_minutes=settings.PIX_EXPIRATION_MINUTES,
        )
    )
    provider = build_stripe_provider()
    if provider is not None:
        registry.register(
            CardInstrumentGenerator(provider, currency=settings.STRIPE_CURRENCY)
        )
    else:
        logger.warning("payment.card.disabled", reason="STRIPE_SECRET_KEY not set")
    return registry
