import pytest

from orderflow.core.errors import ErrorKind, OrderEngineError
from orderflow.models import Order, OrderStatus
from orderflow.services import state_machine
from orderflow.services.state_machine import TRANSITIONS

ALL_PAIRS = [(current, target) for current in OrderStatus for target in OrderStatus]


def make_order(status: OrderStatus, notes=None) -> Order:
    return Order(order_number="#0001", status=status, notes=notes)


@pytest.mark.parametrize("current,target", ALL_PAIRS)
def test_transition_table_is_authoritative(current, target):
    order = make_order(current)
    if target in TRANSITIONS[current]:
        state_machine.apply_transition(order, target)
        assert order.status == target
    else:
        with pytest.raises(OrderEngineError) as exc:
            state_machine.apply_transition(order, target)
        assert exc.value.kind == ErrorKind.VALIDATION
        assert current.value in exc.value.message
        assert target.value in exc.value.message
        assert order.status == current


def test_terminal_states():
    assert state_machine.TERMINAL_STATES == {OrderStatus.COMPLETED, OrderStatus.CANCELLED}
    for status in state_machine.TERMINAL_STATES:
        assert state_machine.allowed_transitions(status) == frozenset()


def test_ready_can_skip_delivery():
    assert state_machine.can_transition(OrderStatus.READY, OrderStatus.COMPLETED)
    assert state_machine.can_transition(OrderStatus.READY, OrderStatus.OUT_FOR_DELIVERY)
    assert not state_machine.can_transition(OrderStatus.PENDING, OrderStatus.READY)


def test_unknown_status_value():
    assert not state_machine.can_transition(OrderStatus.PENDING, "teleported")
    with pytest.raises(OrderEngineError, match="teleported"):
        state_machine.apply_transition(make_order(OrderStatus.PENDING), "teleported")


def test_cancel_appends_reason():
    order = make_order(OrderStatus.PREPARING, notes="No onions")
    state_machine.cancel(order, "customer left")

    assert order.status == OrderStatus.CANCELLED
    assert order.notes == "No onions\nCancellation reason: customer left"


def test_cancel_without_reason_keeps_notes():
    order = make_order(OrderStatus.PENDING)
    state_machine.cancel(order)
    assert order.status == OrderStatus.CANCELLED
    assert order.notes is None


@pytest.mark.parametrize("status", [OrderStatus.COMPLETED, OrderStatus.CANCELLED])
def test_cannot_cancel_terminal_order(status):
    with pytest.raises(OrderEngineError, match="Cannot cancel completed or already cancelled order"):
        state_machine.cancel(make_order(status), "too late")
