"""Cart service layer.

Stock is checked when a line is added or changed so the customer finds
out early, but nothing is reserved here: the order service re-validates
the whole cart under row locks when the order is placed.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, List
from uuid import UUID

import structlog
from django.db import transaction

from modules.carts.exceptions import CartItemNotFound
from modules.products.exceptions import InsufficientStockError, ProductNotFound

if TYPE_CHECKING:
    from modules.carts.dtos import AddCartItemDTO, UpdateCartItemDTO
    from modules.carts.models import CartItem
    from modules.carts.repositories.interfaces import ICartRepository
    from modules.products.models import Product
    from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


class CartService:
    def __init__(
        self,
        cart_repository: ICartRepository,
        product_repository: IProductRepository,
    ) -> None:
        self._cart_repo = cart_repository
        self._product_repo = product_repository

    def list_items(self, user_id: int) -> List[CartItem]:
        """Cart lines whose product is still on sale."""
        return [
            item for item in self._cart_repo.get_lines(user_id)
            if item.product.is_sellable
        ]

    def subtotal(self, items: List[CartItem]) -> Decimal:
        return sum((item.line_total for item in items), Decimal("0.00"))

    @transaction.atomic
    def add_item(self, dto: AddCartItemDTO) -> CartItem:
        """Add units of a product, merging with the existing line.

        Raises:
            ProductNotFound: unknown, deleted or inactive product.
            InsufficientStockError: the merged quantity exceeds the stock.
        """
        product = self._sellable_product(dto.product_id)
        item = self._cart_repo.get_item(dto.user_id, dto.product_id)

        if item is None:
            self._check_stock(product, dto.quantity)
            return self._cart_repo.add(dto.user_id, dto.product_id, dto.quantity)

        new_quantity = item.quantity + dto.quantity
        self._check_stock(product, new_quantity)
        item.quantity = new_quantity
        self._cart_repo.save(item)
        logger.info(
            "cart.item_merged",
            user_id=dto.user_id,
            product_id=str(dto.product_id),
            quantity=new_quantity,
        )
        return item

    @transaction.atomic
    def update_quantity(self, dto: UpdateCartItemDTO) -> CartItem:
        item = self._cart_repo.get_item(dto.user_id, dto.product_id)
        if item is None:
            raise CartItemNotFound(
                f"Product {dto.product_id} is not in the cart of user {dto.user_id}."
            )
        product = self._sellable_product(dto.product_id)
        self._check_stock(product, dto.quantity)
        item.quantity = dto.quantity
        self._cart_repo.save(item)
        logger.info(
            "cart.item_updated",
            user_id=dto.user_id,
            product_id=str(dto.product_id),
            quantity=dto.quantity,
        )
        return item

    def remove_item(self, user_id: int, product_id: UUID) -> None:
        if not self._cart_repo.remove(user_id, product_id):
            raise CartItemNotFound(
                f"Product {product_id} is not in the cart of user {user_id}."
            )
        logger.info("cart.item_removed", user_id=user_id, product_id=str(product_id))

    def clear(self, user_id: int) -> int:
        return self._cart_repo.delete_for_user(user_id)

    # ------------------------------------------------------------------

    def _sellable_product(self, product_id: UUID) -> Product:
        product = self._product_repo.get_by_id(str(product_id))
        if product is None or not product.is_sellable:
            raise ProductNotFound(f"Product {product_id} not found.")
        return product

    @staticmethod
    def _check_stock(product: Product, quantity: int) -> None:
        if product.stock_quantity < quantity:
            raise InsufficientStockError(product.name, quantity, product.stock_quantity)
