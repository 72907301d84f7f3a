"""Django ORM implementation of the Product repository.

Satisfies ``IProductRepository`` using Django's QuerySet API.
Look-ups follow the Null Object pattern: they return ``None`` instead of
raising HTTP-level exceptions; the service layer decides how to translate
a missing entity into an API response.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID

import structlog
from django.core.exceptions import ValidationError
from django.db.models import F
from django.utils import timezone

from modules.products.exceptions import InsufficientStockError, ProductNotFound
from modules.products.models import Product
from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


class ProductDjangoRepository(IProductRepository):
    """Concrete Product repository backed by Django ORM."""

    def get_by_id(self, id: str) -> Optional[Product]:
        """Retrieve a non-deleted product; ``None`` for missing or invalid IDs."""
        try:
            return Product.objects.alive().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Product]:
        """List active, non-deleted products.

        Examples of valid filters::

            {"featured": True}
            {"name__icontains": "anel"}
        """
        queryset = Product.objects.alive().filter(is_active=True)
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    def save(self, entity: Product) -> Product:
        entity.save()
        logger.info("product.saved", product_id=str(entity.id), sku=entity.sku)
        return entity

    def get_by_sku(self, sku: str) -> Optional[Product]:
        return Product.objects.alive().filter(sku=sku.strip().upper()).first()

    # ------------------------------------------------------------------
    # Stock primitives (must run inside the caller's transaction)
    # ------------------------------------------------------------------

    def lock_many(self, ids: Iterable[UUID]) -> Dict[UUID, Product]:
        products = (
            Product.objects.select_for_update()
            .filter(id__in=list(ids))
            .order_by("id")
        )
        return {product.id: product for product in products}

    def decrement_stock(self, product_id: UUID, amount: int) -> int:
        updated = Product.objects.filter(
            id=product_id, stock_quantity__gte=amount
        ).update(
            stock_quantity=F("stock_quantity") - amount,
            updated_at=timezone.now(),
        )
        if not updated:
            product = Product.objects.filter(id=product_id).first()
            if product is None:
                raise ProductNotFound(f"Product {product_id} not found.")
            logger.warning(
                "product.stock_guard_rejected",
                product_id=str(product_id),
                requested=amount,
                available=product.stock_quantity,
            )
            raise InsufficientStockError(product.name, amount, product.stock_quantity)
        return self._current_stock(product_id)

    def increment_stock(self, product_id: UUID, amount: int) -> int:
        updated = Product.objects.filter(id=product_id).update(
            stock_quantity=F("stock_quantity") + amount,
            updated_at=timezone.now(),
        )
        if not updated:
            raise ProductNotFound(f"Product {product_id} not found.")
        return self._current_stock(product_id)

    @staticmethod
    def _current_stock(product_id: UUID) -> int:
        return (
            Product.objects.filter(id=product_id)
            .values_list("stock_quantity", flat=True)
            .get()
        )
