"""
Product repository - catalog lookups used to label activity events.
"""
from collections.abc import Iterable
from typing import Any
from uuid import UUID

from storefront.models.product import Product
from storefront.repositories.base import BaseRepository


def parse_product_ids(raw_ids: Iterable[Any]) -> set[UUID]:
    """Parse payload product ids, skipping anything that is not a UUID."""
    parsed: set[UUID] = set()
    for raw in raw_ids:
        if raw is None:
            continue
        try:
            parsed.add(raw if isinstance(raw, UUID) else UUID(str(raw)))
        except ValueError:
            continue
    return parsed


class ProductRepository(BaseRepository[Product]):
    """Repository for Product model operations."""

    model = Product

    async def get_by_payload_ids(self, raw_ids: Iterable[Any]) -> dict[str, Product]:
        """
        Resolve product ids as they appear in activity payloads.

        Returns products keyed by the string form of their id.
        """
        products = await self.get_many(parse_product_ids(raw_ids))
        return {str(product_id): product for product_id, product in products.items()}
