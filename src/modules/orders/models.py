"""Order, OrderItem, OrderStatusHistory and OrderTrackingEvent models.

Business rules implemented:
- Orders are immutable price snapshots: ``OrderItem.unit_price`` is copied
  from the product when the order is placed and never re-read.
- ``total == subtotal + shipping_cost``, computed once by the order service.
- ``order_number`` (``EMU`` + ``YYMMDD`` + 6 hex) and ``tracking_code``
  (``BR`` + 13 alphanumerics) are unique; generation retries on collision.
- Each status change generates an append-only history record.  Together
  with the carrier events recorded by staff it forms the tracking page.
- ``shipping_address`` is a JSON snapshot taken at order time, not a FK.
"""

from __future__ import annotations

import secrets
import string
from decimal import Decimal
from typing import Any

import structlog
from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import IntegrityError, models, transaction
from django.utils import timezone

from modules.core.models import BaseModel
from modules.orders.constants import (
    ORDER_NUMBER_MAX_RETRIES,
    ORDER_NUMBER_PREFIX,
    TERMINAL_STATES,
    TRACKING_CODE_LENGTH,
    TRACKING_CODE_MAX_RETRIES,
    TRACKING_CODE_PREFIX,
    VALID_TRANSITIONS,
    OrderStatus,
)
from modules.payments.constants import PaymentMethod, PaymentStatus
from shared.domain.events import DomainEventMixin

logger = structlog.get_logger(__name__)

_TRACKING_ALPHABET = string.ascii_uppercase + string.digits


class Order(DomainEventMixin, BaseModel):
    """Order aggregate root.

    ``order_number`` is the customer-facing identifier; the UUIDv7 ``id``
    is used for internal references and API look-ups.
    """

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="orders",
    )
    order_number = models.CharField(max_length=20, unique=True, editable=False)
    status = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.PENDING,
    )
    payment_method = models.CharField(max_length=20, choices=PaymentMethod.choices)
    payment_status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
    )
    subtotal = models.DecimalField(
        max_digits=10, decimal_places=2, default=Decimal("0.00")
    )
    shipping_cost = models.DecimalField(
        max_digits=10, decimal_places=2, default=Decimal("0.00")
    )
    total = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    shipping_address = models.JSONField(default=dict)
    tracking_code = models.CharField(
        max_length=20, unique=True, null=True, blank=True, default=None
    )
    notes = models.TextField(blank=True, default="")

    class Meta:
        db_table = "orders"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"], name="orders_status_idx"),
            models.Index(fields=["user", "-created_at"], name="orders_user_created_idx"),
            models.Index(fields=["-created_at"], name="orders_created_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(shipping_cost__gte=0),
                name="orders_shipping_non_negative",
            ),
        ]

    # ------------------------------------------------------------------
    # State Machine helpers
    # ------------------------------------------------------------------

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATES

    @property
    def is_payment_pending(self) -> bool:
        return self.payment_status == PaymentStatus.PENDING

    def can_transition_to(self, new_status: str) -> bool:
        return new_status in VALID_TRANSITIONS.get(self.status, set())

    # ------------------------------------------------------------------
    # Identifier generation
    # ------------------------------------------------------------------

    @staticmethod
    def generate_order_number() -> str:
        """``EMU`` + ``YYMMDD`` + 6 random upper-case hex characters."""
        now = timezone.localtime()
        return f"{ORDER_NUMBER_PREFIX}{now:%y%m%d}{secrets.token_hex(3).upper()}"

    @staticmethod
    def generate_tracking_code() -> str:
        suffix = "".join(
            secrets.choice(_TRACKING_ALPHABET) for _ in range(TRACKING_CODE_LENGTH)
        )
        return f"{TRACKING_CODE_PREFIX}{suffix}"

    def assign_tracking_code(self) -> str:
        """Set a tracking code not used by any other order."""
        for _ in range(TRACKING_CODE_MAX_RETRIES):
            candidate = self.generate_tracking_code()
            if not Order.objects.filter(tracking_code=candidate).exists():
                self.tracking_code = candidate
                return candidate
        raise RuntimeError(
            f"Failed to generate unique tracking_code after "
            f"{TRACKING_CODE_MAX_RETRIES} attempts"
        )

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self, *args: Any, **kwargs: Any) -> None:
        """Insert with a fresh ``order_number``, retrying on a unique collision.

        Each attempt runs in its own savepoint so a collision with a
        concurrent writer does not break the caller's transaction.
        """
        if self.order_number:
            super().save(*args, **kwargs)
            return

        for attempt in range(1, ORDER_NUMBER_MAX_RETRIES + 1):
            self.order_number = self.generate_order_number()
            try:
                with transaction.atomic():
                    super().save(*args, **kwargs)
                return
            except IntegrityError as exc:
                if "order_number" not in str(exc) or attempt == ORDER_NUMBER_MAX_RETRIES:
                    self.order_number = ""
                    raise
                logger.warning(
                    "order.number_collision",
                    order_number=self.order_number,
                    attempt=attempt,
                )

    def __str__(self) -> str:
        return f"{self.order_number} ({self.status})"


class OrderItem(BaseModel):
    """Line item linking an Order to a Product.

    ``unit_price`` is a **snapshot** of the product price at the time of
    purchase.  ``total_price`` is always ``quantity * unit_price``,
    recalculated on every save.
    """

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="items",
    )
    product = models.ForeignKey(
        "products.Product",
        on_delete=models.PROTECT,
        related_name="order_items",
    )
    quantity = models.PositiveIntegerField(
        default=1,
        validators=[MinValueValidator(1)],
    )
    unit_price = models.DecimalField(max_digits=10, decimal_places=2)
    total_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        editable=False,
    )

    class Meta:
        db_table = "order_items"
        ordering = ["created_at", "id"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gte=1),
                name="order_items_quantity_positive",
            ),
        ]

    def clean(self) -> None:
        super().clean()
        if self.quantity is not None and self.quantity < 1:
            raise ValidationError({"quantity": "Quantity must be at least 1."})

    def save(self, *args: Any, **kwargs: Any) -> None:
        if self.unit_price is None:
            raise ValidationError({"unit_price": "Unit price is required."})
        self.total_price = self.quantity * self.unit_price
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.product_id} x{self.quantity} (R${self.total_price})"


class OrderStatusHistory(BaseModel):
    """Append-only audit trail for order status transitions.

    ``user`` is nullable: ``None`` means the change was performed by the
    system (payment webhook, PIX expiry job).
    """

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="status_history",
    )
    old_status = models.CharField(  # noqa: DJ01
        max_length=20,
        choices=OrderStatus.choices,
        null=True,
        blank=True,
    )
    new_status = models.CharField(max_length=20, choices=OrderStatus.choices)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )
    notes = models.TextField(blank=True, default="")

    class Meta:
        db_table = "order_status_history"
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(
                fields=["order", "created_at"],
                name="osh_order_created_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.order} : {self.old_status} -> {self.new_status}"


class OrderTrackingEvent(BaseModel):
    """Carrier shipment event ("Em Trânsito", "Saiu para entrega", ...).

    Free text reported by staff from the carrier; independent of the
    order status machine.  ``occurred_at`` is when the carrier saw it,
    ``created_at`` when it was recorded.
    """

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="tracking_events",
    )
    status = models.CharField(max_length=100)
    description = models.TextField(blank=True, default="")
    location = models.CharField(max_length=255, blank=True, default="")
    occurred_at = models.DateTimeField(default=timezone.now)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )

    class Meta:
        db_table = "order_tracking_events"
        ordering = ["occurred_at", "created_at", "id"]
        indexes = [
            models.Index(
                fields=["order", "occurred_at"],
                name="ote_order_occurred_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.order_id} : {self.status} @ {self.location or '-'}"
