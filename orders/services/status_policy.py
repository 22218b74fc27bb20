"""
Order status transition rules
"""
from typing import Dict, FrozenSet

from orders.errors import InvalidStatusTransitionError
from orders.models.status import OrderStatus


# DELIVERED and CANCELLED are terminal
ALLOWED_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}


def is_transition_allowed(current: OrderStatus, new: OrderStatus) -> bool:
    """True if an order may move from `current` to `new`"""
    return OrderStatus(new) in ALLOWED_TRANSITIONS.get(OrderStatus(current), frozenset())


def check_transition(current: OrderStatus, new: OrderStatus, enforce: bool = True) -> None:
    """Raise InvalidStatusTransitionError for a disallowed change when enforcing"""
    if not enforce:
        return
    if not is_transition_allowed(current, new):
        raise InvalidStatusTransitionError(
            f"Cannot change order status from {OrderStatus(current).value} to {OrderStatus(new).value}"
        )
