"""Catalog repository interface.

Besides the read paths used by the catalog API, the contract exposes the
two stock primitives the order service needs: row-locking a set of
products and a guarded stock decrement/increment.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional
from uuid import UUID

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.products.models import Product


class IProductRepository(IRepository["Product"]):
    """Repository contract for the Product aggregate."""

    @abstractmethod
    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Product]:
        """List sellable products with optional filters."""

    @abstractmethod
    def get_by_sku(self, sku: str) -> Optional[Product]:
        """Retrieve a product by SKU."""

    @abstractmethod
    def lock_many(self, ids: Iterable[UUID]) -> Dict[UUID, Product]:
        """Lock the given product rows (SELECT FOR UPDATE) and return them by id.

        Rows are locked in primary-key order to avoid deadlocks between
        concurrent placements.  Soft-deleted rows are included so that
        callers can report them as inactive.
        """

    @abstractmethod
    def decrement_stock(self, product_id: UUID, amount: int) -> int:
        """Atomically subtract *amount* from the stock and return the new value.

        Raises ``InsufficientStockError`` if the stock would go negative.
        """

    @abstractmethod
    def increment_stock(self, product_id: UUID, amount: int) -> int:
        """Atomically add *amount* back to the stock and return the new value."""
