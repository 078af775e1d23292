from decimal import Decimal

from orderflow.services.catalog import (
    CatalogItem,
    CatalogOption,
    CatalogVariant,
    InMemoryCatalogGateway,
    SqlCatalogGateway,
)

from .conftest import BIZ, OTHER_BIZ


async def test_sql_lookup_is_scoped_to_business(session_maker):
    async with session_maker() as session:
        catalog = SqlCatalogGateway(session)

        burger = await catalog.find_item(BIZ, "burger")
        assert burger.price == Decimal("10.00")
        assert {o.name for o in burger.options} == {"Size", "Sauce"}
        xl = burger.find_option("opt-size").find_variant("var-xl")
        assert xl.available is False

        assert await catalog.find_item(OTHER_BIZ, "burger") is None
        assert await catalog.find_item(BIZ, "pasta") is None


async def test_sql_batch_lookup(session_maker):
    async with session_maker() as session:
        found = await SqlCatalogGateway(session).find_items(BIZ, ["fries", "soup", "ghost", "fries"])

    assert set(found) == {"fries", "soup"}
    assert found["soup"].available is False


async def test_memory_catalog():
    catalog = InMemoryCatalogGateway([
        CatalogItem("tea", BIZ, "Tea", Decimal("2.00"), options=(
            CatalogOption("milk", "Milk", (CatalogVariant("oat", "Oat", Decimal("0.40")),)),
        )),
    ])

    found = await catalog.find_items(BIZ, ["tea", "coffee"])
    assert list(found) == ["tea"]
    assert found["tea"].find_option("milk").find_variant("oat").price == Decimal("0.40")
    assert found["tea"].find_option("sugar") is None
    assert await catalog.find_item(OTHER_BIZ, "tea") is None
