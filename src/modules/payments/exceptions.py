"""Payment domain exceptions.

Instrument-generation failures abort the surrounding order transaction:
an order must never be committed without a usable payment instrument.
"""

from __future__ import annotations

from shared.domain.errors import DomainError, ErrorCategory


class PixGenerationError(DomainError):
    """The PIX payload could not be built (invalid amount, key or txid)."""

    category = ErrorCategory.PAYMENT
    code = "pix_generation_failed"
    default_public_message = "Could not generate the PIX payment code."

    def __init__(self, message: str) -> None:
        super().__init__(message, public_message=self.default_public_message)


class PaymentProviderError(DomainError):
    """The card payment provider rejected the request or was unreachable.

    ``provider_code`` and the raw provider message are kept for logging;
    users only see the generic public message.
    """

    category = ErrorCategory.PAYMENT
    code = "payment_provider_error"
    default_public_message = "The payment provider could not process the payment."

    def __init__(self, provider_code: str, message: str) -> None:
        self.provider_code = provider_code
        super().__init__(
            f"[{provider_code}] {message}",
            public_message=self.default_public_message,
        )


class UnsupportedPaymentMethod(DomainError):
    code = "unsupported_payment_method"

    def __init__(self, method: str) -> None:
        self.method = method
        super().__init__(f"Payment method {method!r} is not available.")


class PaymentNotFound(DomainError):
    category = ErrorCategory.NOT_FOUND
    code = "payment_not_found"
    default_public_message = "Payment not found."
