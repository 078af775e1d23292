from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import update

from orderflow.models import Order, OrderStatus, utcnow
from orderflow.schemas import OrderItemCreate, OrderUpdate

from .conftest import BIZ, OTHER_BIZ, burger_order


async def set_created_at(session_maker, order_id: str, created_at: datetime) -> None:
    async with session_maker() as session:
        async with session.begin():
            await session.execute(update(Order).where(Order.id == order_id).values(created_at=created_at))


async def complete(order_engine, order_id: str) -> None:
    for status in (OrderStatus.CONFIRMED, OrderStatus.PREPARING, OrderStatus.READY, OrderStatus.COMPLETED):
        await order_engine.update(order_id, OrderUpdate(status=status))


@pytest.fixture
async def three_orders(order_engine):
    """26.84 pending, 7.02 completed, 26.84 cancelled."""
    pending = await order_engine.create(burger_order())
    completed = await order_engine.create(burger_order(
        order_items=[OrderItemCreate(item_id="fries", quantity=2)],
        tip_amount=Decimal("0"),
    ))
    await complete(order_engine, completed.id)
    cancelled = await order_engine.create(burger_order())
    await order_engine.cancel(cancelled.id, "duplicate")
    return pending, completed, cancelled


async def test_business_stats(stats, three_orders):
    result = await stats.business_stats(BIZ)

    assert result.total_orders == 3
    assert result.pending_orders == 1
    assert result.completed_orders == 1
    assert result.cancelled_orders == 1
    assert result.orders_by_status[OrderStatus.CONFIRMED] == 0
    assert set(result.orders_by_status) == set(OrderStatus)

    assert result.total_revenue == Decimal("33.86")
    # Cancelled orders count in the denominator: 33.86 / 3
    assert result.average_order_value == Decimal("11.29")

    assert [(i.item_id, i.quantity, i.revenue) for i in result.top_selling_items] == [
        ("burger", 2, Decimal("23.00")),
        ("fries", 2, Decimal("6.50")),
    ]


async def test_stats_for_business_without_orders(stats, three_orders):
    result = await stats.business_stats(OTHER_BIZ)

    assert result.total_orders == 0
    assert result.total_revenue == Decimal("0")
    assert result.average_order_value == Decimal("0")
    assert result.top_selling_items == []


async def test_stats_date_window(stats, session_maker, three_orders):
    pending, _, _ = three_orders
    await set_created_at(session_maker, pending.id, datetime(2020, 1, 1, 12, 0))

    recent = await stats.business_stats(BIZ, date_from=utcnow() - timedelta(days=1))
    assert recent.total_orders == 2
    assert recent.pending_orders == 0
    assert recent.total_revenue == Decimal("7.02")

    old = await stats.business_stats(BIZ, date_from=datetime(2019, 12, 31), date_to=datetime(2020, 1, 2))
    assert old.total_orders == 1
    assert old.total_revenue == Decimal("26.84")


async def test_dashboard_windows(stats, session_maker, three_orders):
    pending, completed, cancelled = three_orders
    # Wednesday; the week started on Sunday the 12th.
    now = datetime(2024, 5, 15, 18, 0)
    await set_created_at(session_maker, pending.id, datetime(2024, 5, 15, 9, 0))
    await set_created_at(session_maker, completed.id, datetime(2024, 5, 12, 8, 0))
    await set_created_at(session_maker, cancelled.id, datetime(2024, 5, 2, 20, 0))

    dashboard = await stats.dashboard_stats(BIZ, now=now)

    assert dashboard.today.total_orders == 1
    assert dashboard.this_week.total_orders == 2
    assert dashboard.this_month.total_orders == 3
    assert dashboard.this_week.total_revenue == Decimal("33.86")
    assert [o.id for o in dashboard.recent_orders] == [pending.id, completed.id, cancelled.id]
