"""Django ORM implementation of the Cart repository."""

from __future__ import annotations

from typing import Any, Dict, List, Optional
from uuid import UUID

import structlog
from django.core.exceptions import ValidationError

from modules.carts.models import CartItem
from modules.carts.repositories.interfaces import ICartRepository

logger = structlog.get_logger(__name__)


class CartDjangoRepository(ICartRepository):
    def get_by_id(self, id: str) -> Optional[CartItem]:
        try:
            return CartItem.objects.select_related("product").filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[CartItem]:
        queryset = CartItem.objects.select_related("product")
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset.order_by("created_at", "id"))

    def save(self, entity: CartItem) -> CartItem:
        entity.save()
        return entity

    def get_lines(self, user_id: int) -> List[CartItem]:
        return list(
            CartItem.objects.select_related("product")
            .filter(user_id=user_id)
            .order_by("created_at", "id")
        )

    def get_item(self, user_id: int, product_id: UUID) -> Optional[CartItem]:
        return (
            CartItem.objects.select_related("product")
            .filter(user_id=user_id, product_id=product_id)
            .first()
        )

    def add(self, user_id: int, product_id: UUID, quantity: int) -> CartItem:
        item = CartItem.objects.create(
            user_id=user_id, product_id=product_id, quantity=quantity
        )
        logger.info(
            "cart.item_added",
            user_id=user_id,
            product_id=str(product_id),
            quantity=quantity,
        )
        return item

    def remove(self, user_id: int, product_id: UUID) -> bool:
        deleted, _ = CartItem.objects.filter(
            user_id=user_id, product_id=product_id
        ).delete()
        return bool(deleted)

    def delete_for_user(self, user_id: int) -> int:
        deleted, _ = CartItem.objects.filter(user_id=user_id).delete()
        logger.info("cart.cleared", user_id=user_id, removed=deleted)
        return deleted
