"""Production wiring of ``OrderService``.

Views and Celery tasks call ``get_order_service()``; tests build the
service directly with fakes or override this function with ``mock.patch``.
"""

from __future__ import annotations

from modules.carts.repositories.django_repository import CartDjangoRepository
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import OrderService
from modules.payments.factory import build_instrument_registry
from modules.payments.repositories.django_repository import PaymentDjangoRepository
from modules.products.repositories.django_repository import ProductDjangoRepository


def get_order_service() -> OrderService:
    return OrderService(
        order_repository=OrderDjangoRepository(),
        product_repository=ProductDjangoRepository(),
        cart_repository=CartDjangoRepository(),
        payment_repository=PaymentDjangoRepository(),
        instrument_registry=build_instrument_registry(),
    )
