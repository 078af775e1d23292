"""
Pricing Calculator

All money arithmetic uses decimal.Decimal rounded half-up to the cent.

    item total   = (base price + Σ selected variant prices) × quantity
    subtotal     = Σ item totals
    tax          = subtotal × tax rate
    grand total  = subtotal + tax + delivery fee − discount + tip, floored at 0

The delivery fee is not decided here: it comes from an injectable policy
function of the order type.
"""

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Callable, Iterable, Optional

from orderflow.core.errors import OrderEngineError
from orderflow.models import OrderType

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

DeliveryFeePolicy = Callable[[OrderType], Decimal]


def round_money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def money(value: Any, field: Optional[str] = None) -> Decimal:
    """
    Coerce ``value`` to a finite Decimal.

    Floats go through ``str`` so 0.1 stays 0.1.

    Raises:
        OrderEngineError: VALIDATION for non-numeric, NaN or infinite input
    """
    if isinstance(value, bool):
        raise OrderEngineError.validation(f"Invalid amount: {value!r}", field=field)
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise OrderEngineError.validation(f"Invalid amount: {value!r}", field=field)
    if not amount.is_finite():
        raise OrderEngineError.validation(f"Invalid amount: {value!r}", field=field)
    return amount


def flat_delivery_fee(fee: Decimal) -> DeliveryFeePolicy:
    """Policy charging ``fee`` on delivery orders and nothing otherwise."""
    fee = round_money(money(fee, field="delivery_fee"))

    def policy(order_type: OrderType) -> Decimal:
        return fee if order_type == OrderType.DELIVERY else ZERO

    return policy


@dataclass(frozen=True)
class OrderTotals:
    subtotal: Decimal
    tax: Decimal
    grand_total: Decimal


class PricingCalculator:
    """
    Derives order totals.

    Attributes:
        delivery_fee_policy: Function of order type returning the delivery fee
    """

    def __init__(self, delivery_fee_policy: Optional[DeliveryFeePolicy] = None):
        self.delivery_fee_policy = delivery_fee_policy or flat_delivery_fee(Decimal("5.00"))

    def delivery_fee(self, order_type: OrderType) -> Decimal:
        fee = money(self.delivery_fee_policy(order_type), field="delivery_fee")
        if fee < 0:
            raise OrderEngineError.validation("Delivery fee cannot be negative", field="delivery_fee")
        return round_money(fee)

    def item_total(
        self,
        base_price: Any,
        variant_prices: Iterable[Any],
        quantity: int,
    ) -> Decimal:
        """Total for one order line, variant additions included."""
        if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity < 1:
            raise OrderEngineError.validation(
                f"Quantity must be a positive integer, got {quantity!r}", field="quantity"
            )

        unit = money(base_price, field="base_price")
        if unit < 0:
            raise OrderEngineError.validation("Item price cannot be negative", field="base_price")

        for price in variant_prices:
            addition = money(price, field="variant_price")
            if addition < 0:
                raise OrderEngineError.validation(
                    "Variant price cannot be negative", field="variant_price"
                )
            unit += addition

        return round_money(unit * quantity)

    def calculate(
        self,
        tax_rate: Any,
        item_totals: Iterable[Any],
        discount: Any = ZERO,
        tip_amount: Any = ZERO,
        delivery_fee: Any = ZERO,
    ) -> OrderTotals:
        """
        Compute subtotal, tax and grand total.

        Args:
            tax_rate: Business tax rate in [0, 1]
            item_totals: Already computed line totals
            discount: Amount subtracted from the total
            tip_amount: Amount added to the total
            delivery_fee: Fee added to the total

        Returns:
            OrderTotals with every figure rounded to the cent

        Raises:
            OrderEngineError: VALIDATION on negative or non-numeric input
        """
        rate = money(tax_rate, field="tax_rate")
        if rate < 0 or rate > 1:
            raise OrderEngineError.validation(f"Tax rate {rate} is outside [0, 1]", field="tax_rate")

        subtotal = ZERO
        for total in item_totals:
            line = money(total, field="total_price")
            if line < 0:
                raise OrderEngineError.validation(
                    "Invalid item price calculation", field="total_price"
                )
            subtotal += line

        discount = self._non_negative(discount, "discount")
        tip_amount = self._non_negative(tip_amount, "tip_amount")
        delivery_fee = self._non_negative(delivery_fee, "delivery_fee")

        subtotal = round_money(subtotal)
        tax = round_money(subtotal * rate)
        grand_total = round_money(subtotal + tax + delivery_fee - discount + tip_amount)
        if grand_total < 0:
            grand_total = ZERO

        return OrderTotals(subtotal=subtotal, tax=tax, grand_total=grand_total)

    @staticmethod
    def _non_negative(value: Any, field: str) -> Decimal:
        amount = money(value, field=field)
        if amount < 0:
            raise OrderEngineError.validation(f"{field} cannot be negative", field=field)
        return round_money(amount)
