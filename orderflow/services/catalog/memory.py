"""
In-Memory Catalog Gateway

Serves a fixed set of catalog items without touching the database.
Used by tests and local demos to exercise order pricing against a known
menu.

Example:
    >>> catalog = InMemoryCatalogGateway([
    ...     CatalogItem("burger", "biz-1", "Burger", Decimal("10.00")),
    ... ])
    >>> await catalog.find_item("biz-1", "burger")
"""

import logging
from typing import Iterable, Optional

from orderflow.services.catalog.base import CatalogGateway, CatalogItem

logger = logging.getLogger(__name__)


class InMemoryCatalogGateway(CatalogGateway):
    """Dictionary-backed catalog keyed by (business_id, item_id)."""

    def __init__(self, items: Iterable[CatalogItem] = ()):
        self._items: dict[tuple[str, str], CatalogItem] = {}
        for item in items:
            self.add(item)

    @property
    def provider_name(self) -> str:
        return "memory"

    def add(self, item: CatalogItem) -> None:
        self._items[(item.business_id, item.item_id)] = item

    async def find_item(self, business_id: str, item_id: str) -> Optional[CatalogItem]:
        item = self._items.get((business_id, item_id))
        if item is None:
            logger.debug(f"Memory catalog: {item_id} not found for {business_id}")
        return item
