"""
Shared fixtures: a throwaway SQLite database per test, seeded with two
businesses and a small menu, plus engine/stats/HTTP client wiring.
"""

from __future__ import annotations

from decimal import Decimal

import httpx
import pytest

from orderflow.core.config import CatalogSelectionPolicy
from orderflow.database import build_engine, build_session_maker, init_db
from orderflow.models import Business, MenuItem, MenuItemOption, MenuItemOptionVariant
from orderflow.schemas import OptionSelection, OrderCreate, OrderItemCreate, VariantSelection
from orderflow.services import OrderEngine, StatsAggregator
from orderflow.services.numbering import OrderNumberGenerator
from orderflow.services.payments import PaymentLedger
from orderflow.services.pricing import PricingCalculator, flat_delivery_fee

BIZ = "biz-1"
OTHER_BIZ = "biz-2"


async def seed_catalog(session_maker) -> None:
    async with session_maker() as session:
        async with session.begin():
            session.add_all([
                Business(id=BIZ, name="Burger Barn", tax_rate=Decimal("0.08"), order_counter=0),
                Business(id=OTHER_BIZ, name="Pasta Place", tax_rate=Decimal("0.10"), order_counter=0),
                MenuItem(
                    id="burger", business_id=BIZ, name="Burger", price=Decimal("10.00"),
                    options=[
                        MenuItemOption(id="opt-size", name="Size", variants=[
                            MenuItemOptionVariant(id="var-large", name="Large", price=Decimal("1.50")),
                            MenuItemOptionVariant(
                                id="var-xl", name="XL", price=Decimal("3.00"), is_available=False
                            ),
                        ]),
                        MenuItemOption(id="opt-sauce", name="Sauce", variants=[
                            MenuItemOptionVariant(id="var-bbq", name="BBQ", price=Decimal("0.50")),
                            MenuItemOptionVariant(id="var-mayo", name="Mayo", price=Decimal("0.00")),
                        ]),
                    ],
                ),
                MenuItem(id="fries", business_id=BIZ, name="Fries", price=Decimal("3.25")),
                MenuItem(
                    id="soup", business_id=BIZ, name="Soup", price=Decimal("6.00"), is_available=False
                ),
                MenuItem(id="pasta", business_id=OTHER_BIZ, name="Pasta", price=Decimal("12.00")),
            ])


@pytest.fixture
async def session_maker(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'orders.db'}")
    await init_db(engine)
    maker = build_session_maker(engine)
    await seed_catalog(maker)
    yield maker
    await engine.dispose()


def make_engine(session_maker, policy=CatalogSelectionPolicy.LENIENT) -> OrderEngine:
    return OrderEngine(
        session_maker,
        pricing=PricingCalculator(flat_delivery_fee(Decimal("5.00"))),
        numbering=OrderNumberGenerator("#", 4),
        payments=PaymentLedger(Decimal("0.01")),
        selection_policy=policy,
    )


@pytest.fixture
def order_engine(session_maker) -> OrderEngine:
    return make_engine(session_maker)


@pytest.fixture
def strict_engine(session_maker) -> OrderEngine:
    return make_engine(session_maker, CatalogSelectionPolicy.STRICT)


@pytest.fixture
def stats(session_maker) -> StatsAggregator:
    return StatsAggregator(session_maker, top_items_limit=5)


@pytest.fixture
async def client(order_engine, stats):
    from orderflow.main import app, get_order_engine, get_stats_aggregator

    app.dependency_overrides[get_order_engine] = lambda: order_engine
    app.dependency_overrides[get_stats_aggregator] = lambda: stats
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
        yield http
    app.dependency_overrides.clear()


def burger_order(**overrides) -> OrderCreate:
    """Two burgers with the Large size: (10.00 + 1.50) × 2 = 23.00."""
    data = dict(
        business_id=BIZ,
        type="dine_in",
        order_items=[
            OrderItemCreate(
                item_id="burger",
                quantity=2,
                options=[OptionSelection(
                    option_id="opt-size",
                    variants=[VariantSelection(variant_id="var-large")],
                )],
            )
        ],
        tip_amount=Decimal("2.00"),
    )
    data.update(overrides)
    return OrderCreate(**data)
