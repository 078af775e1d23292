"""
Catalog Gateway Package

Usage:
    from orderflow.services.catalog import SqlCatalogGateway

    catalog = SqlCatalogGateway(session)
    item = await catalog.find_item(business_id, item_id)
"""

from orderflow.services.catalog.base import (
    CatalogGateway,
    CatalogItem,
    CatalogOption,
    CatalogVariant,
)
from orderflow.services.catalog.memory import InMemoryCatalogGateway
from orderflow.services.catalog.sql import SqlCatalogGateway

__all__ = [
    "CatalogGateway",
    "CatalogItem",
    "CatalogOption",
    "CatalogVariant",
    "InMemoryCatalogGateway",
    "SqlCatalogGateway",
]
