"""Cart domain exceptions."""

from __future__ import annotations

from shared.domain.errors import DomainError, ErrorCategory


class CartItemNotFound(DomainError):
    """The product is not in the user's cart."""

    category = ErrorCategory.NOT_FOUND
    code = "cart_item_not_found"
    default_public_message = "Item not found in cart."
