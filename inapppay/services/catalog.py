"""
Product Catalog - Cache of purchasable products keyed by product ID.
"""

import asyncio
from collections.abc import Iterable

from structlog import get_logger

from inapppay.models.domain import ProductDescriptor
from inapppay.services.collaborators import PaymentQueue, ProductStore

logger = get_logger(__name__)


class ProductCatalog:
    """Last-fetched product descriptors from the platform catalog service."""

    def __init__(self, store: ProductStore, queue: PaymentQueue) -> None:
        self._store = store
        self._queue = queue
        self._products: dict[str, ProductDescriptor] = {}

    async def fetch(self, product_ids: Iterable[str]) -> list[ProductDescriptor]:
        """
        Fetch products and replace the cache.

        Args:
            product_ids: Product identifiers to request

        Returns:
            Products returned by the catalog service. Empty when the device
            cannot transact or the service knows none of the identifiers;
            an empty result leaves the previous cache untouched.
        """
        ids = set(product_ids)
        if not self._queue.can_make_payments():
            logger.warning("catalog_fetch_not_allowed", requested=len(ids))
            # Yield so the empty result is never delivered inline
            await asyncio.sleep(0)
            return []

        logger.info("fetching_catalog", requested=len(ids))
        products = await self._store.request_products(ids)

        if not products:
            logger.warning("catalog_empty_response", requested=len(ids))
            return []

        self._products = {product.product_id: product for product in products}
        logger.info(
            "catalog_fetched",
            requested=len(ids),
            received=len(products),
            missing=sorted(ids - self._products.keys()),
        )
        return list(products)

    def get(self, product_id: str) -> ProductDescriptor | None:
        """Look up a cached product."""
        return self._products.get(product_id)

    @property
    def products(self) -> list[ProductDescriptor]:
        return list(self._products.values())

    @property
    def is_empty(self) -> bool:
        return not self._products

    def __contains__(self, product_id: object) -> bool:
        return product_id in self._products

    def __len__(self) -> int:
        return len(self._products)
