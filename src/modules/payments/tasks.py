"""Celery tasks of the payments module."""

import structlog
from celery import shared_task
from django.utils import timezone

from modules.orders.dependencies import get_order_service
from modules.orders.exceptions import InvalidOrderStatus, OrderNotFound
from modules.payments.repositories.django_repository import PaymentDjangoRepository

logger = structlog.get_logger(__name__)


@shared_task(name="payments.expire_pending_pix")
def expire_pending_pix() -> dict:
    """Cancel pending PIX orders whose code expired, releasing their stock.

    Each order is cancelled in its own transaction; an order that changed
    state in the meantime (paid by a concurrent webhook) is skipped.
    """
    service = get_order_service()
    expired = PaymentDjangoRepository().expired_pending_pix_order_ids(timezone.now())
    cancelled = skipped = 0
    for order_id in expired:
        try:
            service.cancel_order(order_id, notes="PIX payment expired")
        except (InvalidOrderStatus, OrderNotFound) as exc:
            logger.info("payment.pix_expiry_skipped", order_id=str(order_id), reason=str(exc))
            skipped += 1
            continue
        cancelled += 1

    logger.info("payment.pix_expiry_completed", cancelled=cancelled, skipped=skipped)
    return {"cancelled": cancelled, "skipped": skipped}
