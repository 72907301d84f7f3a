"""Order domain constants.

Status choices, the order status state machine and the placement
stages logged by ``OrderService.place_order``.
"""

from django.db import models


class OrderStatus(models.TextChoices):
    PENDING = "pending", "Pendente"
    PAID = "paid", "Pago"
    PROCESSING = "processing", "Em separação"
    SHIPPED = "shipped", "Enviado"
    DELIVERED = "delivered", "Entregue"
    CANCELLED = "cancelled", "Cancelado"


VALID_TRANSITIONS: dict[str, set[str]] = {
    OrderStatus.PENDING: {OrderStatus.PAID, OrderStatus.CANCELLED},
    OrderStatus.PAID: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),
    OrderStatus.CANCELLED: set(),
}

TERMINAL_STATES: set[str] = {OrderStatus.DELIVERED, OrderStatus.CANCELLED}


class PlacementStage(models.TextChoices):
    STARTED = "started"
    VALIDATED = "validated"
    STOCK_RESERVED = "stock_reserved"
    ORDER_PERSISTED = "order_persisted"
    PAYMENT_CREATED = "payment_created"
    CART_CLEARED = "cart_cleared"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


ORDER_NUMBER_PREFIX = "EMU"
ORDER_NUMBER_MAX_RETRIES = 5

TRACKING_CODE_PREFIX = "BR"
TRACKING_CODE_LENGTH = 13
TRACKING_CODE_MAX_RETRIES = 5
