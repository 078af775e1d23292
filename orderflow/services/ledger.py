"""
Business Ledger Gateway

The two things the order engine needs from a business record: its tax
rate and its monotonic order counter. The counter increment is a single
``UPDATE ... RETURNING`` statement so concurrent transactions for the same
business serialize on the row instead of racing a read-then-write.
"""

import logging
from abc import ABC, abstractmethod
from decimal import Decimal

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from orderflow.core.errors import OrderEngineError
from orderflow.models import Business

logger = logging.getLogger(__name__)


class BusinessLedger(ABC):
    """Tax rate and order counter access for one transaction."""

    @abstractmethod
    async def get_tax_rate(self, business_id: str) -> Decimal:
        """
        Return the business tax rate in [0, 1].

        Raises:
            OrderEngineError: NOT_FOUND if the business does not exist
        """
        pass

    @abstractmethod
    async def next_order_number(self, business_id: str) -> int:
        """
        Atomically increment and return the business order counter.

        Raises:
            OrderEngineError: NOT_FOUND if the business does not exist
        """
        pass


class SqlBusinessLedger(BusinessLedger):
    """Ledger operations on the ``businesses`` table."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_tax_rate(self, business_id: str) -> Decimal:
        result = await self.session.execute(
            select(Business.tax_rate).where(Business.id == business_id)
        )
        row = result.one_or_none()
        if row is None:
            raise OrderEngineError.not_found("Business", field="business_id")

        tax_rate = Decimal(row.tax_rate or 0)
        if tax_rate < 0 or tax_rate > 1:
            raise OrderEngineError.validation(
                f"Business tax rate {tax_rate} is outside [0, 1]", field="tax_rate"
            )
        return tax_rate

    async def next_order_number(self, business_id: str) -> int:
        result = await self.session.execute(
            update(Business)
            .where(Business.id == business_id)
            .values(order_counter=Business.order_counter + 1)
            .returning(Business.order_counter)
            .execution_options(synchronize_session=False)
        )
        counter = result.scalar_one_or_none()
        if counter is None:
            raise OrderEngineError.not_found("Business", field="business_id")

        logger.debug(f"Business {business_id} order counter advanced to {counter}")
        return counter
