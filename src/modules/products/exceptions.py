"""Catalog domain exceptions.

Raised by the catalog repository and by the order pricing validator.
All of them are rejections detected before (or instead of) a stock
write, so they are never retried automatically.
"""

from __future__ import annotations

from http import HTTPStatus

from shared.domain.errors import DomainError, ErrorCategory


class ProductNotFound(DomainError):
    """The requested product does not exist or has been soft-deleted."""

    category = ErrorCategory.NOT_FOUND
    code = "product_not_found"
    default_public_message = "Product not found."


class InactiveProductError(DomainError):
    """A product referenced by the cart is inactive or no longer sold."""

    code = "inactive_product"

    def __init__(self, product_name: str) -> None:
        self.product_name = product_name
        super().__init__(f"Product {product_name} is not active.")


class InsufficientStockError(DomainError):
    """Not enough stock to fulfil a line.

    Carries the shortfall so the caller can tell the user how many units
    are missing.
    """

    code = "insufficient_stock"
    http_status = HTTPStatus.CONFLICT

    def __init__(self, product_name: str, requested: int, available: int) -> None:
        self.product_name = product_name
        self.requested = requested
        self.available = available
        self.shortfall = requested - available
        super().__init__(
            f"Product {product_name} does not have enough stock: "
            f"requested {requested}, available {available} "
            f"(short by {self.shortfall})."
        )
