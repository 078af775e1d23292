"""
Order Number Generator

Turns the business's atomically incremented counter into a human-readable
order number: prefix plus the counter zero-padded to a fixed width.
Counters wider than the padding are printed in full (``#10000``), never
wrapped or truncated, so numbers stay unique per business.
"""

import logging

from orderflow.services.ledger import BusinessLedger

logger = logging.getLogger(__name__)


class OrderNumberGenerator:
    def __init__(self, prefix: str = "#", width: int = 4):
        if width < 1:
            raise ValueError("Order number width must be at least 1")
        self.prefix = prefix
        self.width = width

    def format(self, counter: int) -> str:
        return f"{self.prefix}{counter:0{self.width}d}"

    async def allocate(self, ledger: BusinessLedger, business_id: str) -> str:
        """
        Allocate the next order number for ``business_id``.

        Must run inside the transaction that persists the order: if that
        transaction rolls back, so does the counter.

        Raises:
            OrderEngineError: NOT_FOUND if the business does not exist
        """
        counter = await ledger.next_order_number(business_id)
        number = self.format(counter)
        if counter == 10 ** self.width:
            logger.warning(
                f"Business {business_id} counter {counter} exceeds {self.width} digits; "
                f"issuing {number}"
            )
        return number
