"""Order repository interface.

Extends ``IRepository[Order]`` with the methods the Order aggregate
needs: creation with its items, row locking, status history, carrier
tracking events and the tracking look-up.

The Service Layer depends exclusively on this contract (DIP).
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, List, Optional
from uuid import UUID

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from datetime import datetime

    from modules.orders.models import Order, OrderStatusHistory, OrderTrackingEvent


class IOrderRepository(IRepository["Order"]):
    """Repository contract for the Order aggregate root.

    The Order aggregate includes OrderItem children and
    OrderStatusHistory records.  Mutations must run inside the caller's
    transaction.
    """

    @abstractmethod
    def create(self, data: Dict[str, Any]) -> Order:
        """Create an order with its items.

        ``data`` must include ``user_id``, ``payment_method``,
        ``subtotal``, ``shipping_cost``, ``total``, ``shipping_address``,
        ``items`` (list of dicts with ``product_id``, ``quantity``,
        ``unit_price``) and optionally ``notes``.
        """

    @abstractmethod
    def get_by_id(self, id: str) -> Optional[Order]:
        """Retrieve an order with prefetched items, payment and history."""

    @abstractmethod
    def get_for_user(self, id: str, user_id: int) -> Optional[Order]:
        """Retrieve an order only if it belongs to *user_id*."""

    @abstractmethod
    def get_for_update(self, id: str) -> Optional[Order]:
        """Retrieve an order with a row-level lock."""

    @abstractmethod
    def get_by_tracking_code(self, tracking_code: str) -> Optional[Order]:
        """Retrieve an order by its tracking code."""

    @abstractmethod
    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Order]:
        """List orders with optional filters."""

    @abstractmethod
    def add_history(
        self,
        order_id: UUID,
        status: str,
        notes: str = "",
        old_status: Optional[str] = None,
        user_id: Optional[int] = None,
    ) -> OrderStatusHistory:
        """Record a status change in the order's audit trail."""

    @abstractmethod
    def add_tracking_event(
        self,
        order_id: UUID,
        status: str,
        description: str = "",
        location: str = "",
        occurred_at: Optional[datetime] = None,
        user_id: Optional[int] = None,
    ) -> OrderTrackingEvent:
        """Record a carrier event; ``occurred_at`` defaults to now."""

    @abstractmethod
    def tracking_events(self, order_id: UUID) -> List[OrderTrackingEvent]:
        """Carrier events of an order, oldest first."""
