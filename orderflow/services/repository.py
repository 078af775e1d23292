"""
Order Repository

Persistence of the order aggregate within a caller-owned session. The
repository never commits; the engine decides transaction boundaries.
"""

import math
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from orderflow.models import Order, OrderItem, OrderItemOption
from orderflow.schemas import OrderFilter, OrderSummary

AGGREGATE_LOAD = (
    selectinload(Order.items)
    .selectinload(OrderItem.options)
    .selectinload(OrderItemOption.variants),
    selectinload(Order.payments),
)

SORT_COLUMNS = {
    "created_at": Order.created_at,
    "order_number": Order.order_number,
    "grand_total": Order.grand_total,
}


def item_count_column():
    return (
        select(func.count(OrderItem.id))
        .where(OrderItem.order_id == Order.id)
        .correlate(Order)
        .scalar_subquery()
        .label("item_count")
    )


def escape_like(text: str) -> str:
    """Make ``%`` and ``_`` in user input match literally under ``ESCAPE '\\'``."""
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def to_summary(order: Order, item_count: int) -> OrderSummary:
    return OrderSummary(
        id=order.id,
        order_number=order.order_number,
        customer_name=order.customer_name,
        type=order.type,
        status=order.status,
        grand_total=order.grand_total,
        payment_status=order.payment_status,
        estimated_time=order.estimated_time,
        created_at=order.created_at,
        item_count=item_count or 0,
    )


class OrderRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def add(self, order: Order) -> Order:
        """Stage a fully built aggregate and flush it in one go."""
        self.session.add(order)
        await self.session.flush()
        return order

    async def get(self, order_id: str, for_update: bool = False) -> Optional[Order]:
        query = select(Order).where(Order.id == order_id).options(*AGGREGATE_LOAD)
        if for_update:
            query = query.with_for_update(of=Order)
        result = await self.session.execute(query.execution_options(populate_existing=True))
        return result.scalar_one_or_none()

    async def get_by_number(self, business_id: str, order_number: str) -> Optional[Order]:
        result = await self.session.execute(
            select(Order)
            .where(Order.business_id == business_id, Order.order_number == order_number)
            .options(*AGGREGATE_LOAD)
        )
        return result.scalar_one_or_none()

    async def list(self, filters: OrderFilter, limit: int) -> tuple[list[OrderSummary], int]:
        conditions = []
        if filters.business_id:
            conditions.append(Order.business_id == filters.business_id)
        if filters.status:
            conditions.append(Order.status == filters.status)
        if filters.type:
            conditions.append(Order.type == filters.type)
        if filters.payment_status:
            conditions.append(Order.payment_status == filters.payment_status)
        if filters.table_id:
            conditions.append(Order.table_id == filters.table_id)
        if filters.customer_id:
            conditions.append(Order.customer_id == filters.customer_id)
        if filters.date_from:
            conditions.append(Order.created_at >= filters.date_from)
        if filters.date_to:
            conditions.append(Order.created_at <= filters.date_to)
        if filters.search:
            pattern = f"%{escape_like(filters.search)}%"
            conditions.append(or_(
                Order.order_number.ilike(pattern, escape="\\"),
                Order.customer_name.ilike(pattern, escape="\\"),
                Order.customer_phone.ilike(pattern, escape="\\"),
            ))

        count_result = await self.session.execute(
            select(func.count(Order.id)).where(*conditions)
        )
        total = count_result.scalar() or 0

        sort_column = SORT_COLUMNS[filters.sort_by]
        order_by = sort_column.asc() if filters.sort_order == "asc" else sort_column.desc()
        offset = (filters.page - 1) * limit

        result = await self.session.execute(
            select(Order, item_count_column())
            .where(*conditions)
            .order_by(order_by, Order.id)
            .offset(offset)
            .limit(limit)
        )
        summaries = [to_summary(order, count) for order, count in result.all()]
        return summaries, total


def total_pages(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit else 0
