"""Order domain exceptions.

Raised by the service layer when business rules are violated.  They
propagate out of the views unchanged; the project's exception handler
maps each ``category`` to an HTTP status and returns only the
``public_message``.

The catalog and payment errors the order service can raise are
re-exported here so callers have one import site.
"""

from __future__ import annotations

from modules.payments.exceptions import (  # noqa: F401
    PaymentProviderError,
    PixGenerationError,
    UnsupportedPaymentMethod,
)
from modules.products.exceptions import (  # noqa: F401
    InactiveProductError,
    InsufficientStockError,
    ProductNotFound,
)
from shared.domain.errors import DomainError, ErrorCategory


class EmptyCartError(DomainError):
    """The user tried to place an order with an empty cart."""

    code = "empty_cart"
    default_public_message = "Your cart is empty."


class OrderNotFound(DomainError):
    """The order does not exist or does not belong to the caller."""

    category = ErrorCategory.NOT_FOUND
    code = "order_not_found"
    default_public_message = "Order not found."

    def __init__(self, message: str = "") -> None:
        super().__init__(message, public_message=self.default_public_message)


class OrderNotUpdatableError(DomainError):
    """Payment details can only change while the payment is pending."""

    category = ErrorCategory.CONFLICT
    code = "order_not_updatable"
    default_public_message = "This order can no longer be updated."


class PaymentNotConfirmableError(DomainError):
    """The payment is failed or refunded and cannot be confirmed."""

    category = ErrorCategory.CONFLICT
    code = "payment_not_confirmable"
    default_public_message = "The payment of this order cannot be confirmed."


class InvalidOrderStatus(DomainError):
    """An invalid status transition was attempted."""

    category = ErrorCategory.CONFLICT
    code = "invalid_order_status"


class AuthenticationRequired(DomainError):
    category = ErrorCategory.AUTHORIZATION
    code = "authentication_required"
    default_public_message = "Authentication is required to place an order."


class OrderPersistenceError(DomainError):
    """The database failed while the order was being written.

    The unit of work has been rolled back; the original error is chained.
    """

    category = ErrorCategory.PERSISTENCE
    code = "order_persistence_failed"
    default_public_message = "The order could not be saved. Please try again."

    def __init__(self, message: str = "") -> None:
        super().__init__(message, public_message=self.default_public_message)
