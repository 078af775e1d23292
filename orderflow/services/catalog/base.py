"""
Catalog Gateway Abstract Base Class

Read-only view of a business's menu as the order engine needs it: item
name, price and availability, plus the options and variants that can be
selected. Menu editing lives elsewhere; the engine only ever reads.

Design Pattern: Strategy Pattern
    - SqlCatalogGateway reads the shared menu tables in the caller's transaction
    - InMemoryCatalogGateway serves fixed data (tests, demos)
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, Optional


@dataclass(frozen=True)
class CatalogVariant:
    variant_id: str
    name: str
    price: Decimal
    available: bool = True


@dataclass(frozen=True)
class CatalogOption:
    option_id: str
    name: str
    variants: tuple[CatalogVariant, ...] = ()

    def find_variant(self, variant_id: str) -> Optional[CatalogVariant]:
        for variant in self.variants:
            if variant.variant_id == variant_id:
                return variant
        return None


@dataclass(frozen=True)
class CatalogItem:
    """
    Authoritative item data at lookup time.

    Attributes:
        item_id: Menu item identifier
        business_id: Owning business
        name: Display name copied into the order snapshot
        price: Base price
        available: Whether the item can currently be ordered
        options: Selectable options with their variants
    """
    item_id: str
    business_id: str
    name: str
    price: Decimal
    available: bool = True
    options: tuple[CatalogOption, ...] = field(default_factory=tuple)

    def find_option(self, option_id: str) -> Optional[CatalogOption]:
        for option in self.options:
            if option.option_id == option_id:
                return option
        return None


class CatalogGateway(ABC):
    """
    Abstract base class for catalog lookups.

    Lookups are always scoped to a business: an item that exists but belongs
    to another business is reported as missing.
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the name of the catalog backend (e.g. "sql", "memory")."""
        pass

    @abstractmethod
    async def find_item(self, business_id: str, item_id: str) -> Optional[CatalogItem]:
        """
        Look up one item with its options and variants.

        Args:
            business_id: Business the item must belong to
            item_id: Menu item identifier

        Returns:
            CatalogItem, or None when the item does not exist for this business
        """
        pass

    async def find_items(
        self,
        business_id: str,
        item_ids: Iterable[str],
    ) -> dict[str, CatalogItem]:
        """
        Batch lookup keyed by item id; missing items are absent from the result.

        Implementations backed by a database should override this with a
        single query.
        """
        found = {}
        for item_id in dict.fromkeys(item_ids):
            item = await self.find_item(business_id, item_id)
            if item is not None:
                found[item_id] = item
        return found
