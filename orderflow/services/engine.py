"""
Order Engine

Orchestrates order creation and mutation. Each public mutating operation
runs in exactly one database transaction: the whole aggregate change is
committed, or nothing is.

    create       catalog lookup → item snapshots → totals → order number → persist
    update       state machine and/or totals recompute on the loaded aggregate
    cancel       state machine cancellation with reason appended to notes
    add_payment  payment ledger append with derived payment status

Failures are raised as OrderEngineError with a NOT_FOUND, VALIDATION or
CONFLICT kind and are never retried here. Lookups return None when absent.
"""

import logging
import uuid
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import AsyncIterator, Callable, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from orderflow.core.config import CatalogSelectionPolicy
from orderflow.core.errors import OrderEngineError
from orderflow.models import (
    Order,
    OrderItem,
    OrderItemOption,
    OrderItemOptionVariant,
    OrderStatus,
    Payment,
    PaymentStatus,
    utcnow,
)
from orderflow.schemas import (
    OrderCreate,
    OrderFilter,
    OrderItemCreate,
    OrderListResponse,
    OrderUpdate,
    PaymentCreate,
)
from orderflow.services import state_machine
from orderflow.services.catalog import CatalogGateway, CatalogItem, SqlCatalogGateway
from orderflow.services.ledger import BusinessLedger, SqlBusinessLedger
from orderflow.services.numbering import OrderNumberGenerator
from orderflow.services.payments import PaymentLedger
from orderflow.services.pricing import PricingCalculator, money, round_money
from orderflow.services.repository import OrderRepository, total_pages

logger = logging.getLogger(__name__)

CatalogFactory = Callable[[AsyncSession], CatalogGateway]
LedgerFactory = Callable[[AsyncSession], BusinessLedger]

MUTABLE_FIELDS = ("table_id", "customer_id", "customer_name", "customer_phone", "notes", "estimated_time")


class OrderEngine:
    """
    Order processing orchestrator.

    Attributes:
        session_maker: Factory for the sessions each operation runs in
        catalog_factory: Builds the catalog gateway for a session
        ledger_factory: Builds the business ledger for a session
        pricing: Totals calculator (carries the delivery fee policy)
        numbering: Order number formatter/allocator
        payments: Payment ledger
        selection_policy: lenient or strict handling of option/variant selections
    """

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        catalog_factory: CatalogFactory = SqlCatalogGateway,
        ledger_factory: LedgerFactory = SqlBusinessLedger,
        pricing: Optional[PricingCalculator] = None,
        numbering: Optional[OrderNumberGenerator] = None,
        payments: Optional[PaymentLedger] = None,
        selection_policy: CatalogSelectionPolicy = CatalogSelectionPolicy.LENIENT,
        default_page_size: int = 20,
        max_page_size: int = 100,
    ):
        self.session_maker = session_maker
        self.catalog_factory = catalog_factory
        self.ledger_factory = ledger_factory
        self.pricing = pricing or PricingCalculator()
        self.numbering = numbering or OrderNumberGenerator()
        self.payments = payments or PaymentLedger()
        self.selection_policy = CatalogSelectionPolicy(selection_policy)
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size

    # =========================================================================
    # TRANSACTIONS
    # =========================================================================

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[AsyncSession]:
        try:
            async with self.session_maker() as session:
                async with session.begin():
                    yield session
        except IntegrityError as e:
            logger.error(f"Integrity violation while persisting order aggregate: {e}")
            raise OrderEngineError.conflict(
                "Order aggregate violates a uniqueness constraint"
            ) from e
        except StaleDataError as e:
            logger.warning(f"Concurrent modification detected: {e}")
            raise OrderEngineError.conflict(
                "Order was modified by another request; reload and try again"
            ) from e

    async def _load_for_update(self, session: AsyncSession, order_id: str) -> Order:
        order = await OrderRepository(session).get(order_id, for_update=True)
        if order is None:
            raise OrderEngineError.not_found("Order", field="order_id")
        return order

    # =========================================================================
    # CREATE
    # =========================================================================

    async def create(self, data: OrderCreate) -> Order:
        """
        Create an order from catalog-authoritative prices.

        Raises:
            OrderEngineError: NOT_FOUND if the business does not exist;
                VALIDATION for unavailable items (or, in strict mode,
                options/variants) and invalid amounts
        """
        if not data.order_items:
            raise OrderEngineError.validation("Order must contain at least one item", field="order_items")

        async with self._transaction() as session:
            ledger = self.ledger_factory(session)
            catalog = self.catalog_factory(session)

            tax_rate = await ledger.get_tax_rate(data.business_id)
            items = await self._build_items(catalog, data.business_id, data.order_items)
            logger.debug(f"Priced {len(items)} lines from the {catalog.provider_name} catalog")

            delivery_fee = self.pricing.delivery_fee(data.type)
            totals = self.pricing.calculate(
                tax_rate,
                [item.total_price for item in items],
                discount=data.discount,
                tip_amount=data.tip_amount,
                delivery_fee=delivery_fee,
            )

            order_number = await self.numbering.allocate(ledger, data.business_id)

            order = Order(
                id=str(uuid.uuid4()),
                business_id=data.business_id,
                order_number=order_number,
                type=data.type,
                status=OrderStatus.PENDING,
                table_id=data.table_id,
                customer_id=data.customer_id,
                customer_name=data.customer_name,
                customer_phone=data.customer_phone,
                subtotal=totals.subtotal,
                tax=totals.tax,
                delivery_fee=delivery_fee,
                discount=round_money(money(data.discount)),
                tip_amount=round_money(money(data.tip_amount)),
                grand_total=totals.grand_total,
                payment_status=PaymentStatus.PENDING,
                notes=data.notes,
                estimated_time=data.estimated_time,
                items=items,
                payments=[],
            )
            self.payments.refresh_status(order)
            await OrderRepository(session).add(order)
            order_id = order.id

        logger.info(
            f"Order {order_number} created for business {data.business_id} "
            f"({len(items)} items, total {totals.grand_total})"
        )
        return await self._reload(order_id)

    async def _build_items(
        self,
        catalog: CatalogGateway,
        business_id: str,
        lines: list[OrderItemCreate],
    ) -> list[OrderItem]:
        found = await catalog.find_items(business_id, [line.item_id for line in lines])

        unavailable = [
            line.item_id for line in lines
            if line.item_id not in found or not found[line.item_id].available
        ]
        if unavailable:
            raise OrderEngineError.validation(
                "One or more menu items are not available: "
                + ", ".join(dict.fromkeys(unavailable)),
                field="order_items",
            )

        rejected: list[str] = []
        items = []
        for position, line in enumerate(lines):
            catalog_item = found[line.item_id]
            options = self._snapshot_options(catalog_item, line, rejected)
            # Line total is computed from the rounded snapshot prices it stores
            base_price = round_money(money(catalog_item.price, field="base_price"))
            total = self.pricing.item_total(
                base_price,
                [variant.variant_price for option in options for variant in option.variants],
                line.quantity,
            )
            items.append(OrderItem(
                id=str(uuid.uuid4()),
                position=position,
                item_id=catalog_item.item_id,
                item_name=catalog_item.name,
                base_price=base_price,
                quantity=line.quantity,
                total_price=total,
                special_instructions=line.special_instructions,
                options=options,
            ))

        if rejected:
            if self.selection_policy == CatalogSelectionPolicy.STRICT:
                raise OrderEngineError.validation(
                    "Unavailable option selections: " + "; ".join(rejected),
                    field="options",
                )
            logger.warning(f"Dropped unavailable selections for business {business_id}: {rejected}")

        return items

    @staticmethod
    def _snapshot_options(
        catalog_item: CatalogItem,
        line: OrderItemCreate,
        rejected: list[str],
    ) -> list[OrderItemOption]:
        options = []
        for selection in line.options:
            option = catalog_item.find_option(selection.option_id)
            if option is None:
                rejected.append(f"option {selection.option_id} of {catalog_item.name}")
                continue

            variants = []
            for variant_selection in selection.variants:
                variant = option.find_variant(variant_selection.variant_id)
                if variant is None or not variant.available:
                    rejected.append(
                        f"variant {variant_selection.variant_id} of {catalog_item.name}/{option.name}"
                    )
                    continue
                variants.append(OrderItemOptionVariant(
                    id=str(uuid.uuid4()),
                    position=len(variants),
                    variant_id=variant.variant_id,
                    variant_name=variant.name,
                    variant_price=round_money(money(variant.price, field="variant_price")),
                ))

            # An option only makes it into the snapshot with at least one variant
            if variants:
                options.append(OrderItemOption(
                    id=str(uuid.uuid4()),
                    position=len(options),
                    option_id=option.option_id,
                    option_name=option.name,
                    variants=variants,
                ))
        return options

    # =========================================================================
    # UPDATE / CANCEL
    # =========================================================================

    async def update(self, order_id: str, data: OrderUpdate) -> Order:
        """
        Apply a partial update.

        A status change goes through the state machine; a discount or tip
        change recomputes totals from the existing item totals and delivery
        fee and re-derives the payment status.

        Raises:
            OrderEngineError: NOT_FOUND if the order does not exist;
                VALIDATION on illegal transitions or totals below the amount paid
        """
        changes = data.model_dump(exclude_unset=True)

        async with self._transaction() as session:
            order = await self._load_for_update(session, order_id)

            if changes.get("status") is not None:
                state_machine.apply_transition(order, changes["status"])

            for field in MUTABLE_FIELDS:
                if field in changes:
                    setattr(order, field, changes[field])

            if changes.get("discount") is not None or changes.get("tip_amount") is not None:
                await self._recalculate(session, order, changes.get("discount"), changes.get("tip_amount"))

            order.updated_at = utcnow()

        return await self._reload(order_id)

    async def _recalculate(
        self,
        session: AsyncSession,
        order: Order,
        discount: Optional[Decimal],
        tip_amount: Optional[Decimal],
    ) -> None:
        discount = order.discount if discount is None else discount
        tip_amount = order.tip_amount if tip_amount is None else tip_amount

        tax_rate = await self.ledger_factory(session).get_tax_rate(order.business_id)
        totals = self.pricing.calculate(
            tax_rate,
            [item.total_price for item in order.items],
            discount=discount,
            tip_amount=tip_amount,
            delivery_fee=order.delivery_fee,
        )

        paid = self.payments.total_paid(order)
        if paid > totals.grand_total + self.payments.tolerance:
            raise OrderEngineError.validation(
                f"New grand total ({totals.grand_total}) is below the amount already paid ({paid})",
                field="discount",
            )

        order.discount = round_money(money(discount))
        order.tip_amount = round_money(money(tip_amount))
        order.subtotal = totals.subtotal
        order.tax = totals.tax
        order.grand_total = totals.grand_total
        self.payments.refresh_status(order)
        logger.info(f"Order {order.order_number}: totals recalculated, grand total {totals.grand_total}")

    async def cancel(self, order_id: str, reason: Optional[str] = None) -> Order:
        """
        Cancel an order, appending ``reason`` to its notes.

        Raises:
            OrderEngineError: NOT_FOUND if the order does not exist;
                VALIDATION if it is already completed or cancelled
        """
        async with self._transaction() as session:
            order = await self._load_for_update(session, order_id)
            state_machine.cancel(order, reason)
            order.updated_at = utcnow()

        logger.info(f"Order {order.order_number} cancelled" + (f": {reason}" if reason else ""))
        return await self._reload(order_id)

    # =========================================================================
    # PAYMENTS
    # =========================================================================

    async def add_payment(self, order_id: str, data: PaymentCreate) -> Payment:
        """
        Record a payment against an order.

        The returned Payment keeps a reference to its (detached) order, so
        ``payment.order.payment_status`` reflects the recomputed status.

        Raises:
            OrderEngineError: NOT_FOUND if the order does not exist;
                VALIDATION for cancelled orders or overpayment;
                CONFLICT if another writer changed the order concurrently
        """
        async with self._transaction() as session:
            order = await self._load_for_update(session, order_id)
            payment = self.payments.add_payment(
                order,
                data.amount,
                data.payment_method,
                transaction_id=data.transaction_id,
                reference=data.reference,
            )
            order.updated_at = utcnow()

        return payment

    # =========================================================================
    # LOOKUPS
    # =========================================================================

    async def _reload(self, order_id: str) -> Order:
        order = await self.get_one(order_id)
        if order is None:
            raise OrderEngineError.not_found("Order", field="order_id")
        return order

    async def get_one(self, order_id: str) -> Optional[Order]:
        """Fetch the full aggregate, or None."""
        if not order_id:
            raise OrderEngineError.validation("Valid order ID is required", field="order_id")

        async with self.session_maker() as session:
            return await OrderRepository(session).get(order_id)

    async def get_by_order_number(self, business_id: str, order_number: str) -> Optional[Order]:
        """Fetch the full aggregate by its per-business number, or None."""
        if not business_id or not order_number:
            raise OrderEngineError.validation("Business ID and order number are required")

        async with self.session_maker() as session:
            return await OrderRepository(session).get_by_number(business_id, order_number)

    async def list_orders(self, filters: Optional[OrderFilter] = None) -> OrderListResponse:
        """Filtered, paginated order summaries."""
        filters = filters or OrderFilter()
        limit = min(filters.limit or self.default_page_size, self.max_page_size)

        async with self.session_maker() as session:
            orders, total = await OrderRepository(session).list(filters, limit)

        return OrderListResponse(
            orders=orders,
            total=total,
            page=filters.page,
            total_pages=total_pages(total, limit),
        )
