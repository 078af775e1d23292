"""
Stats Aggregator

Read-only reporting over persisted orders: counts by status, revenue,
average order value and best sellers for a business and optional date
range, plus a today / this week / this month dashboard.

Figures are computed from whatever the database holds at query time; no
locking is involved.
"""

import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from orderflow.models import Order, OrderItem, OrderStatus, utcnow
from orderflow.schemas import DashboardStats, OrderFilter, OrderStats, TopSellingItem
from orderflow.services.pricing import ZERO, round_money
from orderflow.services.repository import OrderRepository

logger = logging.getLogger(__name__)


class StatsAggregator:
    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        top_items_limit: int = 10,
        recent_orders_limit: int = 10,
    ):
        self.session_maker = session_maker
        self.top_items_limit = top_items_limit
        self.recent_orders_limit = recent_orders_limit

    @staticmethod
    def _window(business_id: str, date_from: Optional[datetime], date_to: Optional[datetime]) -> list:
        conditions = [Order.business_id == business_id]
        if date_from:
            conditions.append(Order.created_at >= date_from)
        if date_to:
            conditions.append(Order.created_at <= date_to)
        return conditions

    async def business_stats(
        self,
        business_id: str,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
    ) -> OrderStats:
        """
        Aggregate a business's orders, optionally within [date_from, date_to].

        Revenue excludes cancelled orders; the average is revenue divided by
        the number of orders in the window.
        """
        window = self._window(business_id, date_from, date_to)

        async with self.session_maker() as session:
            status_rows = await session.execute(
                select(Order.status, func.count(Order.id)).where(*window).group_by(Order.status)
            )
            by_status = {status: 0 for status in OrderStatus}
            for status, count in status_rows.all():
                by_status[OrderStatus(status)] = count

            revenue_result = await session.execute(
                select(func.sum(Order.grand_total)).where(
                    *window, Order.status != OrderStatus.CANCELLED
                )
            )
            total_revenue = round_money(Decimal(revenue_result.scalar() or 0))

            quantity = func.sum(OrderItem.quantity).label("quantity")
            top_rows = await session.execute(
                select(
                    OrderItem.item_id,
                    OrderItem.item_name,
                    quantity,
                    func.sum(OrderItem.total_price).label("revenue"),
                )
                .join(Order, OrderItem.order_id == Order.id)
                .where(*window, Order.status != OrderStatus.CANCELLED)
                .group_by(OrderItem.item_id, OrderItem.item_name)
                .order_by(quantity.desc(), OrderItem.item_name)
                .limit(self.top_items_limit)
            )
            top_items = [
                TopSellingItem(
                    item_id=row.item_id,
                    item_name=row.item_name,
                    quantity=int(row.quantity or 0),
                    revenue=round_money(Decimal(row.revenue or 0)),
                )
                for row in top_rows.all()
            ]

        total_orders = sum(by_status.values())
        average = round_money(total_revenue / total_orders) if total_orders else ZERO

        return OrderStats(
            total_orders=total_orders,
            pending_orders=by_status[OrderStatus.PENDING],
            completed_orders=by_status[OrderStatus.COMPLETED],
            cancelled_orders=by_status[OrderStatus.CANCELLED],
            orders_by_status=by_status,
            total_revenue=total_revenue,
            average_order_value=average,
            top_selling_items=top_items,
        )

    async def dashboard_stats(self, business_id: str, now: Optional[datetime] = None) -> DashboardStats:
        """Stats for today, this week (from Sunday) and this month, plus recent orders."""
        now = now or utcnow()
        today_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
        week_start = today_start - timedelta(days=(today_start.weekday() + 1) % 7)
        month_start = today_start.replace(day=1)

        today = await self.business_stats(business_id, today_start, now)
        this_week = await self.business_stats(business_id, week_start, now)
        this_month = await self.business_stats(business_id, month_start, now)

        async with self.session_maker() as session:
            recent, _ = await OrderRepository(session).list(
                OrderFilter(business_id=business_id, sort_by="created_at", sort_order="desc"),
                self.recent_orders_limit,
            )

        return DashboardStats(
            today=today,
            this_week=this_week,
            this_month=this_month,
            recent_orders=recent,
        )
