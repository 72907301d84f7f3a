"""Cart repository interface.

``get_lines`` and ``delete_for_user`` are the two calls the order
service makes while placing an order; the rest back the cart API.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, List, Optional
from uuid import UUID

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.carts.models import CartItem


class ICartRepository(IRepository["CartItem"]):
    @abstractmethod
    def get_lines(self, user_id: int) -> List[CartItem]:
        """Return the user's cart lines in insertion order, products joined."""

    @abstractmethod
    def get_item(self, user_id: int, product_id: UUID) -> Optional[CartItem]:
        """Return the line for *product_id* or ``None``."""

    @abstractmethod
    def add(self, user_id: int, product_id: UUID, quantity: int) -> CartItem:
        """Create a new line."""

    @abstractmethod
    def remove(self, user_id: int, product_id: UUID) -> bool:
        """Delete one line; ``False`` if it did not exist."""

    @abstractmethod
    def delete_for_user(self, user_id: int) -> int:
        """Delete every line of the user's cart and return how many were removed."""
