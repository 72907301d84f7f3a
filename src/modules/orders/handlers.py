"""Event handlers for Orders domain events.

Delivered by the outbox relay (``core.publish_outbox_events``), after
the transaction that produced the event has committed.
"""

from __future__ import annotations

import structlog

from modules.orders.events import (
    OrderCancelled,
    OrderPaymentConfirmed,
    OrderPaymentFailed,
    OrderPlaced,
    OrderUpdated,
)
from shared.domain.bus import IEventHandler

logger = structlog.get_logger(__name__)


class OrderPlacedHandler(IEventHandler[OrderPlaced]):
    def handle(self, event: OrderPlaced) -> None:
        logger.info(
            "order.event.placed",
            order_id=str(event.aggregate_id),
            order_number=event.order_number,
            total=event.total,
            payment_method=event.payment_method,
        )


class OrderUpdatedHandler(IEventHandler[OrderUpdated]):
    def handle(self, event: OrderUpdated) -> None:
        logger.info(
            "order.event.updated",
            order_id=str(event.aggregate_id),
            payment_method=event.payment_method,
        )


class OrderPaymentConfirmedHandler(IEventHandler[OrderPaymentConfirmed]):
    def handle(self, event: OrderPaymentConfirmed) -> None:
        logger.info(
            "order.event.payment_confirmed",
            order_id=str(event.aggregate_id),
            tracking_code=event.tracking_code,
        )


class OrderPaymentFailedHandler(IEventHandler[OrderPaymentFailed]):
    def handle(self, event: OrderPaymentFailed) -> None:
        logger.warning(
            "order.event.payment_failed",
            order_id=str(event.aggregate_id),
            reason=event.reason,
        )


class OrderCancelledHandler(IEventHandler[OrderCancelled]):
    def handle(self, event: OrderCancelled) -> None:
        logger.info(
            "order.event.cancelled",
            order_id=str(event.aggregate_id),
            reason=event.reason,
        )


order_placed_handler = OrderPlacedHandler()
order_updated_handler = OrderUpdatedHandler()
order_payment_confirmed_handler = OrderPaymentConfirmedHandler()
order_payment_failed_handler = OrderPaymentFailedHandler()
order_cancelled_handler = OrderCancelledHandler()
