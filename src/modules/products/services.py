"""Catalog service layer.

The catalog is read-only from the API's point of view: products are
maintained through the Django admin, and stock is only ever written by
the order service through the repository's stock primitives.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional

import structlog

from modules.products.exceptions import ProductNotFound

if TYPE_CHECKING:
    from modules.products.models import Product
    from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


class ProductService:
    """Application service for catalog browsing.

    Receives an ``IProductRepository`` via constructor injection (DIP).
    """

    def __init__(self, repository: IProductRepository) -> None:
        self._repo = repository

    def list_products(self, filters: Optional[Dict[str, Any]] = None) -> List[Product]:
        """Return sellable products, optionally filtered."""
        return self._repo.list(filters)

    def get_product(self, id: str) -> Product:
        """Retrieve a single sellable product by ID.

        Raises:
            ProductNotFound: if the product does not exist, is deleted or inactive.
        """
        product = self._repo.get_by_id(id)
        if not product or not product.is_active:
            raise ProductNotFound(f"Product {id} not found.")
        logger.info("product.retrieved", product_id=str(id))
        return product
