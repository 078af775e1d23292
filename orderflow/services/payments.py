"""
Payment Ledger

Appends payments to an order and keeps the order's derived payment status
in step with the sum of its PAID payments:

    PAID     total paid ≥ grand total − tolerance
    PARTIAL  0 < total paid < grand total − tolerance
    PENDING  nothing paid

Payments are never edited or reversed here.
"""

import logging
from decimal import Decimal
from typing import Any, Optional

from orderflow.core.errors import OrderEngineError
from orderflow.models import (
    Order,
    OrderStatus,
    Payment,
    PaymentMethod,
    PaymentStatus,
    utcnow,
)
from orderflow.services.pricing import ZERO, money, round_money

logger = logging.getLogger(__name__)


class PaymentLedger:
    def __init__(self, tolerance: Decimal = Decimal("0.01")):
        self.tolerance = tolerance

    @staticmethod
    def total_paid(order: Order) -> Decimal:
        return round_money(sum(
            (Decimal(p.amount) for p in order.payments if p.status == PaymentStatus.PAID),
            ZERO,
        ))

    def remaining_balance(self, order: Order) -> Decimal:
        return round_money(Decimal(order.grand_total) - self.total_paid(order))

    def derive_status(self, total_paid: Decimal, grand_total: Decimal) -> PaymentStatus:
        if total_paid >= Decimal(grand_total) - self.tolerance:
            return PaymentStatus.PAID
        if total_paid > 0:
            return PaymentStatus.PARTIAL
        return PaymentStatus.PENDING

    def refresh_status(self, order: Order) -> PaymentStatus:
        """Recompute ``order.payment_status`` from its payments."""
        order.payment_status = self.derive_status(self.total_paid(order), order.grand_total)
        return order.payment_status

    def add_payment(
        self,
        order: Order,
        amount: Any,
        method: PaymentMethod,
        transaction_id: Optional[str] = None,
        reference: Optional[str] = None,
    ) -> Payment:
        """
        Record a settled payment against ``order``.

        Args:
            order: Order with its payments loaded
            amount: Amount paid, > 0
            method: How it was paid
            transaction_id: Provider transaction identifier
            reference: Free-form reference (receipt number, etc.)

        Returns:
            The appended Payment (status PAID)

        Raises:
            OrderEngineError: VALIDATION if the order is cancelled, the amount
                is not positive, or it exceeds the remaining balance
        """
        if order.status == OrderStatus.CANCELLED:
            raise OrderEngineError.validation("Cannot add payment to cancelled order")

        amount = round_money(money(amount, field="amount"))
        if amount <= 0:
            raise OrderEngineError.validation("Payment amount must be greater than 0", field="amount")

        try:
            method = PaymentMethod(method)
        except ValueError:
            raise OrderEngineError.validation(f"Unknown payment method: {method}", field="payment_method")

        remaining = self.remaining_balance(order)
        if remaining <= 0:
            raise OrderEngineError.validation(
                f"Order {order.order_number} is already fully paid", field="amount"
            )
        if amount > remaining + self.tolerance:
            raise OrderEngineError.validation(
                f"Payment amount ({amount}) exceeds remaining balance ({remaining})",
                field="amount",
            )

        payment = Payment(
            position=len(order.payments),
            amount=amount,
            payment_method=method,
            status=PaymentStatus.PAID,
            transaction_id=transaction_id,
            reference=reference,
            processed_at=utcnow(),
        )
        order.payments.append(payment)
        order.payment_method = method.value
        self.refresh_status(order)

        logger.info(
            f"Order {order.order_number}: {method.value} payment of {amount} recorded "
            f"({order.payment_status.value}, remaining {self.remaining_balance(order)})"
        )
        return payment
