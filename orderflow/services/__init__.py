"""
                        Services Module

Order processing services and the factories that wire them from settings.

Services:
    - catalog: read-only menu lookups (SQL / in-memory)
    - ledger: business tax rate and order counter
    - pricing, numbering, state_machine, payments: engine components
    - engine: the order engine orchestrator
    - stats: reporting aggregates
"""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from orderflow.core.config import Settings, get_settings
from orderflow.services.engine import OrderEngine
from orderflow.services.numbering import OrderNumberGenerator
from orderflow.services.payments import PaymentLedger
from orderflow.services.pricing import PricingCalculator, flat_delivery_fee
from orderflow.services.stats import StatsAggregator

logger = logging.getLogger(__name__)


def build_order_engine(
    session_maker: async_sessionmaker[AsyncSession],
    settings: Optional[Settings] = None,
) -> OrderEngine:
    """
    Build an OrderEngine configured from settings.

    Catalog and ledger gateways default to the SQL implementations bound to
    each operation's session.
    """
    settings = settings or get_settings()
    logger.info(
        f"Order engine: numbering {settings.order_number_prefix}"
        f"{'N' * settings.order_number_width}, "
        f"catalog policy {settings.catalog_selection_policy.value}"
    )
    return OrderEngine(
        session_maker,
        pricing=PricingCalculator(flat_delivery_fee(settings.delivery_fee)),
        numbering=OrderNumberGenerator(settings.order_number_prefix, settings.order_number_width),
        payments=PaymentLedger(settings.payment_tolerance),
        selection_policy=settings.catalog_selection_policy,
        default_page_size=settings.default_page_size,
        max_page_size=settings.max_page_size,
    )


def build_stats_aggregator(
    session_maker: async_sessionmaker[AsyncSession],
    settings: Optional[Settings] = None,
) -> StatsAggregator:
    settings = settings or get_settings()
    return StatsAggregator(session_maker, top_items_limit=settings.top_items_limit)


__all__ = [
    "build_order_engine",
    "build_stats_aggregator",
    "OrderEngine",
    "StatsAggregator",
]
