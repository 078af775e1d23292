"""
SQL Catalog Gateway

Reads menu items, options and variants from the shared catalog tables
using the session of the transaction that is creating the order, so the
prices used are the ones visible to that transaction.
"""

import logging
from decimal import Decimal
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from orderflow.models import MenuItem, MenuItemOption
from orderflow.services.catalog.base import (
    CatalogGateway,
    CatalogItem,
    CatalogOption,
    CatalogVariant,
)

logger = logging.getLogger(__name__)


def _to_catalog_item(row: MenuItem) -> CatalogItem:
    return CatalogItem(
        item_id=row.id,
        business_id=row.business_id,
        name=row.name,
        price=Decimal(row.price),
        available=bool(row.is_available),
        options=tuple(
            CatalogOption(
                option_id=option.id,
                name=option.name,
                variants=tuple(
                    CatalogVariant(
                        variant_id=variant.id,
                        name=variant.name,
                        price=Decimal(variant.price),
                        available=bool(variant.is_available),
                    )
                    for variant in option.variants
                ),
            )
            for option in row.options
        ),
    )


class SqlCatalogGateway(CatalogGateway):
    """Catalog lookups against the menu tables."""

    def __init__(self, session: AsyncSession):
        self.session = session

    @property
    def provider_name(self) -> str:
        return "sql"

    def _query(self, business_id: str):
        return (
            select(MenuItem)
            .where(MenuItem.business_id == business_id)
            .options(
                selectinload(MenuItem.options).selectinload(MenuItemOption.variants)
            )
        )

    async def find_item(self, business_id: str, item_id: str) -> Optional[CatalogItem]:
        result = await self.session.execute(
            self._query(business_id).where(MenuItem.id == item_id)
        )
        row = result.scalar_one_or_none()
        return _to_catalog_item(row) if row is not None else None

    async def find_items(
        self,
        business_id: str,
        item_ids: Iterable[str],
    ) -> dict[str, CatalogItem]:
        wanted = list(dict.fromkeys(item_ids))
        if not wanted:
            return {}

        result = await self.session.execute(
            self._query(business_id).where(MenuItem.id.in_(wanted))
        )
        rows = result.scalars().all()
        logger.debug(f"Catalog lookup for {business_id}: {len(rows)}/{len(wanted)} items found")
        return {row.id: _to_catalog_item(row) for row in rows}
