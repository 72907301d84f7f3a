"""Base class for business-rule violations.

Every domain exception exposes a stable ``category`` (used by the API
layer to pick a status code and by logs to group failures) and a
``public_message`` that is safe to return to end users.  The full
exception text may contain internal details and is only logged.
"""

from __future__ import annotations

from typing import Optional


class ErrorCategory:
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    PAYMENT = "payment"
    PERSISTENCE = "persistence"
    AUTHORIZATION = "authorization"


class DomainError(Exception):
    category: str = ErrorCategory.VALIDATION
    code: str = "domain_error"
    default_public_message: str = "The request could not be processed."

    def __init__(self, message: str = "", public_message: Optional[str] = None) -> None:
        super().__init__(message or self.default_public_message)
        self._public_message = public_message

    @property
    def public_message(self) -> str:
        return self._public_message or str(self)
