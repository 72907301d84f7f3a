"""Payment provider webhook.

Stripe calls this endpoint unauthenticated; the request is trusted only
after its ``Stripe-Signature`` header verifies against the webhook secret.
Only events for the intent currently attached to an order change it; every
other well-signed event is acknowledged with 200 and logged.
"""

from __future__ import annotations

from uuid import UUID

import stripe
import structlog
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from modules.orders.dependencies import get_order_service
from modules.orders.exceptions import InvalidOrderStatus, PaymentNotConfirmableError
from modules.payments.constants import PaymentMethod
from modules.payments.factory import build_stripe_provider
from modules.payments.models import Payment
from modules.payments.repositories.django_repository import PaymentDjangoRepository

logger = structlog.get_logger(__name__)

HANDLED_EVENTS = ("payment_intent.succeeded", "payment_intent.payment_failed")


class StripeWebhookView(APIView):
    """POST /api/v1/payments/stripe/webhook/"""

    authentication_classes: list = []
    permission_classes = [AllowAny]
    throttle_classes: list = []

    def post(self, request: Request) -> Response:
        provider = build_stripe_provider()
        if provider is None:
            logger.warning("payment.webhook.disabled")
            return Response(status=status.HTTP_404_NOT_FOUND)

        signature = request.headers.get("Stripe-Signature", "")
        try:
            event = provider.construct_event(request.body, signature)
        except (ValueError, stripe.SignatureVerificationError) as exc:
            logger.warning("payment.webhook.rejected", error=str(exc))
            return Response(
                {
                    "type": "validation_error",
                    "errors": [
                        {
                            "code": "invalid_signature",
                            "detail": "Invalid webhook payload or signature.",
                            "attr": None,
                        }
                    ],
                },
                status=status.HTTP_400_BAD_REQUEST,
            )

        log = logger.bind(event_id=event["id"], event_type=event["type"])
        if event["type"] not in HANDLED_EVENTS:
            log.info("payment.webhook.ignored")
            return Response({"received": True})

        intent = event["data"]["object"]
        intent_id = intent.get("id", "")
        log = log.bind(intent_id=intent_id)
        payment = self._payment_for(intent)
        if payment is None:
            log.warning("payment.webhook.unknown_intent")
            return Response({"received": True})

        log = log.bind(order_id=str(payment.order_id))
        if (
            payment.payment_method != PaymentMethod.CREDIT_CARD
            or payment.provider_payment_id != intent_id
        ):
            # The order moved to another instrument since this intent was created.
            log.info(
                "payment.webhook.stale_intent",
                current_method=payment.payment_method,
                current_intent_id=payment.provider_payment_id,
            )
            return Response({"received": True})

        service = get_order_service()
        try:
            if event["type"] == "payment_intent.succeeded":
                service.confirm_payment(payment.order_id)
            else:
                error = intent.get("last_payment_error") or {}
                service.fail_payment(
                    payment.order_id, reason=error.get("code") or "payment_failed"
                )
        except (PaymentNotConfirmableError, InvalidOrderStatus) as exc:
            log.error("payment.webhook.unreconcilable", error=str(exc))
            return Response({"received": True})

        log.info("payment.webhook.processed")
        return Response({"received": True})

    @staticmethod
    def _payment_for(intent) -> Payment | None:
        repository = PaymentDjangoRepository()
        metadata = intent.get("metadata") or {}
        raw = metadata.get("order_id")
        if raw:
            try:
                return repository.get_for_order(UUID(str(raw)))
            except ValueError:
                return None
        return repository.get_by_provider_payment_id(intent.get("id", ""))
