"""Django ORM implementation of the Order repository.

Satisfies ``IOrderRepository`` using Django's QuerySet API.  Methods do
not open their own transactions: ``OrderService`` owns the unit of work
and every write here joins it.

``save`` drains the aggregate's pending domain events into the outbox,
so events are committed or rolled back together with the order row.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

import structlog
from django.core.exceptions import ValidationError
from django.db.models import QuerySet
from django.utils import timezone

from modules.core.models import OutboxEvent
from modules.orders.models import (
    Order,
    OrderItem,
    OrderStatusHistory,
    OrderTrackingEvent,
)
from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)

ORDERS_TOPIC = "orders"


class OrderDjangoRepository(IOrderRepository):
    """Concrete Order repository backed by Django ORM."""

    # ------------------------------------------------------------------
    # Create (aggregate root + children)
    # ------------------------------------------------------------------

    def create(self, data: Dict[str, Any]) -> Order:
        order = Order(
            user_id=data["user_id"],
            payment_method=data["payment_method"],
            subtotal=data["subtotal"],
            shipping_cost=data["shipping_cost"],
            total=data["total"],
            shipping_address=data["shipping_address"],
            notes=data.get("notes", ""),
        )
        order.save()

        items = data.get("items", [])
        for item_data in items:
            OrderItem(
                order=order,
                product_id=item_data["product_id"],
                quantity=item_data["quantity"],
                unit_price=item_data["unit_price"],
            ).save()

        logger.info(
            "order.created",
            order_id=str(order.id),
            order_number=order.order_number,
            item_count=len(items),
        )
        return order

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def _with_relations(self):
        return Order.objects.select_related("payment").prefetch_related(
            "items__product", "status_history", "tracking_events"
        )

    def get_by_id(self, id: str) -> Optional[Order]:
        """Retrieve an order with eager-loaded relations.

        Returns ``None`` for non-existent or invalid IDs.
        """
        try:
            return self._with_relations().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_for_user(self, id: str, user_id: int) -> Optional[Order]:
        try:
            return self._with_relations().filter(id=id, user_id=user_id).first()
        except (ValueError, ValidationError):
            return None

    def get_for_update(self, id: str) -> Optional[Order]:
        """Retrieve an order with a row-level lock (SELECT FOR UPDATE).

        Only the order row is locked; relations are loaded by later
        queries inside the same transaction.
        """
        try:
            return Order.objects.select_for_update().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_by_tracking_code(self, tracking_code: str) -> Optional[Order]:
        return (
            self._with_relations()
            .filter(tracking_code=tracking_code.strip().upper())
            .first()
        )

    def queryset(self, filters: Optional[Dict[str, Any]] = None) -> QuerySet[Order]:
        """Lazy, filterable queryset for the API list endpoint.

        Supported filter keys are any ``Order`` field look-ups, e.g.
        ``user_id``, ``status``, ``created_at__range``.
        """
        queryset = self._with_relations()
        if filters:
            queryset = queryset.filter(**filters)
        return queryset

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Order]:
        """List orders with optional filters and eager-loaded relations."""
        return list(self.queryset(filters))

    # ------------------------------------------------------------------
    # Save (IRepository contract)
    # ------------------------------------------------------------------

    def save(self, entity: Order) -> Order:
        """Persist an order and write its pending events to the outbox."""
        entity.save()

        events = entity.domain_events
        for event in events:
            OutboxEvent.record(event, topic=ORDERS_TOPIC)
        entity.clear_domain_events()

        logger.info("order.saved", order_id=str(entity.id), event_count=len(events))
        return entity

    # ------------------------------------------------------------------
    # Order-specific
    # ------------------------------------------------------------------

    def add_history(
        self,
        order_id: UUID,
        status: str,
        notes: str = "",
        old_status: Optional[str] = None,
        user_id: Optional[int] = None,
    ) -> OrderStatusHistory:
        history = OrderStatusHistory.objects.create(
            order_id=order_id,
            old_status=old_status,
            new_status=status,
            notes=notes,
            user_id=user_id,
        )
        logger.info(
            "order.history_added",
            order_id=str(order_id),
            old_status=old_status,
            new_status=status,
        )
        return history

    def add_tracking_event(
        self,
        order_id: UUID,
        status: str,
        description: str = "",
        location: str = "",
        occurred_at: Optional[datetime] = None,
        user_id: Optional[int] = None,
    ) -> OrderTrackingEvent:
        event = OrderTrackingEvent.objects.create(
            order_id=order_id,
            status=status,
            description=description,
            location=location,
            occurred_at=occurred_at or timezone.now(),
            user_id=user_id,
        )
        logger.info(
            "order.tracking_event_added",
            order_id=str(order_id),
            tracking_status=status,
            location=location,
        )
        return event

    def tracking_events(self, order_id: UUID) -> List[OrderTrackingEvent]:
        return list(OrderTrackingEvent.objects.filter(order_id=order_id))
