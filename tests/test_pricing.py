from decimal import Decimal

import pytest

from orderflow.core.errors import ErrorKind, OrderEngineError
from orderflow.models import OrderType
from orderflow.services.pricing import PricingCalculator, flat_delivery_fee, money, round_money


@pytest.fixture
def pricing():
    return PricingCalculator(flat_delivery_fee(Decimal("5.00")))


def test_item_total_includes_variant_additions(pricing):
    assert pricing.item_total(Decimal("10.00"), [Decimal("1.50")], 2) == Decimal("23.00")
    assert pricing.item_total("3.25", [], 3) == Decimal("9.75")


def test_dine_in_totals(pricing):
    totals = pricing.calculate(Decimal("0.08"), [Decimal("23.00")], tip_amount=Decimal("2.00"))

    assert totals.subtotal == Decimal("23.00")
    assert totals.tax == Decimal("1.84")
    assert totals.grand_total == Decimal("26.84")


def test_delivery_fee_added_once(pricing):
    fee = pricing.delivery_fee(OrderType.DELIVERY)
    totals = pricing.calculate(Decimal("0.10"), [Decimal("20.00")], delivery_fee=fee)

    assert fee == Decimal("5.00")
    assert totals.grand_total == Decimal("27.00")


def test_no_delivery_fee_for_pickup_orders(pricing):
    assert pricing.delivery_fee(OrderType.DINE_IN) == Decimal("0.00")
    assert pricing.delivery_fee(OrderType.TAKEAWAY) == Decimal("0.00")


def test_custom_delivery_fee_policy():
    pricing = PricingCalculator(lambda order_type: Decimal("7.25") if order_type == OrderType.DELIVERY else 1)
    assert pricing.delivery_fee(OrderType.DELIVERY) == Decimal("7.25")
    assert pricing.delivery_fee(OrderType.TAKEAWAY) == Decimal("1.00")


def test_negative_delivery_fee_policy_rejected():
    pricing = PricingCalculator(lambda order_type: Decimal("-1"))
    with pytest.raises(OrderEngineError) as exc:
        pricing.delivery_fee(OrderType.DELIVERY)
    assert exc.value.kind == ErrorKind.VALIDATION


def test_tax_rounds_half_up(pricing):
    # 2.50 × 0.05 = 0.125
    totals = pricing.calculate(Decimal("0.05"), [Decimal("2.50")])
    assert totals.tax == Decimal("0.13")


def test_grand_total_floored_at_zero(pricing):
    totals = pricing.calculate(Decimal("0.08"), [Decimal("5.00")], discount=Decimal("50.00"))
    assert totals.grand_total == Decimal("0.00")


def test_discount_and_tip(pricing):
    totals = pricing.calculate(
        Decimal("0"), [Decimal("10.00"), Decimal("5.00")],
        discount=Decimal("3.00"), tip_amount=Decimal("1.50"),
    )
    assert totals.subtotal == Decimal("15.00")
    assert totals.grand_total == Decimal("13.50")


def test_negative_line_total_rejected(pricing):
    with pytest.raises(OrderEngineError, match="Invalid item price calculation"):
        pricing.calculate(Decimal("0.08"), [Decimal("10.00"), Decimal("-1.00")])


@pytest.mark.parametrize("field", ["discount", "tip_amount", "delivery_fee"])
def test_negative_adjustments_rejected(pricing, field):
    with pytest.raises(OrderEngineError) as exc:
        pricing.calculate(Decimal("0.08"), [Decimal("10.00")], **{field: Decimal("-0.01")})
    assert exc.value.field == field


@pytest.mark.parametrize("rate", [Decimal("-0.01"), Decimal("1.01")])
def test_tax_rate_out_of_range(pricing, rate):
    with pytest.raises(OrderEngineError) as exc:
        pricing.calculate(rate, [Decimal("10.00")])
    assert exc.value.field == "tax_rate"


@pytest.mark.parametrize("quantity", [0, -1, 1.5, True])
def test_invalid_quantity(pricing, quantity):
    with pytest.raises(OrderEngineError) as exc:
        pricing.item_total(Decimal("10.00"), [], quantity)
    assert exc.value.field == "quantity"


def test_negative_prices_rejected(pricing):
    with pytest.raises(OrderEngineError):
        pricing.item_total(Decimal("-1.00"), [], 1)
    with pytest.raises(OrderEngineError):
        pricing.item_total(Decimal("1.00"), [Decimal("-0.50")], 1)


@pytest.mark.parametrize("value", ["abc", None, float("nan"), float("inf"), True])
def test_money_rejects_non_numeric(value):
    with pytest.raises(OrderEngineError) as exc:
        money(value, field="amount")
    assert exc.value.kind == ErrorKind.VALIDATION
    assert exc.value.field == "amount"


def test_money_keeps_float_text():
    assert money(0.1) == Decimal("0.1")
    assert round_money(Decimal("1.005")) == Decimal("1.01")
