from django.apps import AppConfig


class OrdersConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "modules.orders"
    label = "orders"
    verbose_name = "Pedidos"

    def ready(self) -> None:
        from modules.orders.events import (
            OrderCancelled,
            OrderPaymentConfirmed,
            OrderPaymentFailed,
            OrderPlaced,
            OrderUpdated,
        )
        from modules.orders.handlers import (
            order_cancelled_handler,
            order_payment_confirmed_handler,
            order_payment_failed_handler,
            order_placed_handler,
            order_updated_handler,
        )
        from shared.infrastructure.bus import event_bus

        event_bus.subscribe(OrderPlaced, order_placed_handler)
        event_bus.subscribe(OrderUpdated, order_updated_handler)
        event_bus.subscribe(OrderPaymentConfirmed, order_payment_confirmed_handler)
        event_bus.subscribe(OrderPaymentFailed, order_payment_failed_handler)
        event_bus.subscribe(OrderCancelled, order_cancelled_handler)
