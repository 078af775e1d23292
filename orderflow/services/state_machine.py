"""
Order State Machine

    PENDING → CONFIRMED → PREPARING → READY → OUT_FOR_DELIVERY → COMPLETED
                                          └──────────────────→ COMPLETED
    any non-terminal state → CANCELLED

COMPLETED and CANCELLED are terminal.
"""

import logging
from typing import Optional

from orderflow.core.errors import OrderEngineError
from orderflow.models import Order, OrderStatus

logger = logging.getLogger(__name__)

TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.PREPARING, OrderStatus.CANCELLED}),
    OrderStatus.PREPARING: frozenset({OrderStatus.READY, OrderStatus.CANCELLED}),
    OrderStatus.READY: frozenset({
        OrderStatus.OUT_FOR_DELIVERY,
        OrderStatus.COMPLETED,
        OrderStatus.CANCELLED,
    }),
    OrderStatus.OUT_FOR_DELIVERY: frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED}),
    OrderStatus.COMPLETED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

TERMINAL_STATES = frozenset(
    status for status, targets in TRANSITIONS.items() if not targets
)


def allowed_transitions(status: OrderStatus) -> frozenset[OrderStatus]:
    return TRANSITIONS.get(OrderStatus(status), frozenset())


def is_terminal(status: OrderStatus) -> bool:
    return OrderStatus(status) in TERMINAL_STATES


def can_transition(current: OrderStatus, requested: OrderStatus) -> bool:
    try:
        return OrderStatus(requested) in allowed_transitions(current)
    except ValueError:
        return False


def apply_transition(order: Order, requested: OrderStatus) -> Order:
    """
    Move ``order`` to ``requested``.

    Raises:
        OrderEngineError: VALIDATION when the edge is not in the transition table
    """
    current = OrderStatus(order.status)
    if not can_transition(current, requested):
        requested_label = requested.value if isinstance(requested, OrderStatus) else requested
        raise OrderEngineError.validation(
            f"Invalid status transition from {current.value} to {requested_label}",
            field="status",
        )

    order.status = OrderStatus(requested)
    logger.info(f"Order {order.order_number}: {current.value} → {order.status.value}")
    return order


def cancel(order: Order, reason: Optional[str] = None) -> Order:
    """
    Cancel ``order``, appending the reason to its notes.

    Raises:
        OrderEngineError: VALIDATION if the order is already completed or cancelled
    """
    if is_terminal(order.status):
        raise OrderEngineError.validation(
            "Cannot cancel completed or already cancelled order", field="status"
        )

    apply_transition(order, OrderStatus.CANCELLED)
    if reason:
        order.notes = f"{order.notes or ''}\nCancellation reason: {reason}".strip()
    return order
