"""
Order Workflow

Order status transition rules shared by the admin order-management screen and
the customer order-history screen.

    PENDING --confirm--> PROCESSING --ship--> SHIPPED --complete--> DELIVERED
       |                     |
       +------cancel---------+-----> CANCELLED

DELIVERED and CANCELLED are terminal. Anything not in the table raises
InvalidTransition. These checks decide which controls a view renders; the
backend still enforces the same rules and its answer wins.
"""

from enum import Enum
from typing import Dict, List, Optional, Tuple

from storefront.domain.models import Order, OrderStatus
from storefront.errors import InvalidTransition, OrderNotEditable


class OrderAction(str, Enum):
    """User-facing order actions"""
    CONFIRM = "confirm"
    SHIP = "ship"
    COMPLETE = "complete"
    CANCEL = "cancel"

    @classmethod
    def parse(cls, value: str) -> "OrderAction":
        """
        Parse an action name, accepting the ``pay`` and ``deliver`` aliases.

        Raises:
            ValueError: unknown action name
        """
        name = value.strip().lower()
        return cls(ACTION_ALIASES.get(name, name))


ACTION_ALIASES: Dict[str, str] = {
    "pay": OrderAction.CONFIRM.value,
    "deliver": OrderAction.COMPLETE.value,
}

TRANSITIONS: Dict[Tuple[OrderStatus, OrderAction], OrderStatus] = {
    (OrderStatus.PENDING, OrderAction.CONFIRM): OrderStatus.PROCESSING,
    (OrderStatus.PENDING, OrderAction.CANCEL): OrderStatus.CANCELLED,
    (OrderStatus.PROCESSING, OrderAction.SHIP): OrderStatus.SHIPPED,
    (OrderStatus.PROCESSING, OrderAction.CANCEL): OrderStatus.CANCELLED,
    (OrderStatus.SHIPPED, OrderAction.COMPLETE): OrderStatus.DELIVERED,
}

TERMINAL_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})

# Rendering order of action controls
_ACTION_ORDER = [OrderAction.CONFIRM, OrderAction.SHIP, OrderAction.COMPLETE, OrderAction.CANCEL]


def allowed_actions(status: OrderStatus) -> List[OrderAction]:
    """Actions legal from ``status``; empty for terminal states"""
    return [a for a in _ACTION_ORDER if (status, a) in TRANSITIONS]


def can_transition(status: OrderStatus, action: OrderAction) -> bool:
    return (status, action) in TRANSITIONS


def next_status(status: OrderStatus, action: OrderAction) -> OrderStatus:
    """
    Status reached by applying ``action`` to an order in ``status``.

    Raises:
        InvalidTransition: the pair is not in the transition table
    """
    try:
        return TRANSITIONS[(status, action)]
    except KeyError:
        raise InvalidTransition(status, action) from None


def apply_transition(order: Order, action: OrderAction) -> Order:
    """Copy of ``order`` with the transition applied; ``order`` is untouched"""
    return order.model_copy(update={"status": next_status(order.status, action)})


def action_for_target(current: OrderStatus, target: OrderStatus) -> OrderAction:
    """
    Resolve a "set status to X" request into the single action it implies.

    Raises:
        InvalidTransition: ``target`` is not one step away from ``current``
    """
    for (source, action), destination in TRANSITIONS.items():
        if source == current and destination == target:
            return action
    raise InvalidTransition(current, f"move to {target.value}")


def can_edit(order: Order) -> bool:
    """Items, shipping address, payment method and notes are editable only while PENDING"""
    return order.status == OrderStatus.PENDING


def ensure_editable(order: Order) -> None:
    """
    Raises:
        OrderNotEditable: the order has left PENDING
    """
    if not can_edit(order):
        raise OrderNotEditable(order.order_id, order.status)


def is_terminal(status: OrderStatus) -> bool:
    return status in TERMINAL_STATUSES


def status_badge(status: Optional[OrderStatus]) -> str:
    """CSS colour key for a status badge; unknown statuses render as pending"""
    return {
        OrderStatus.PENDING: "yellow",
        OrderStatus.PROCESSING: "blue",
        OrderStatus.SHIPPED: "indigo",
        OrderStatus.DELIVERED: "green",
        OrderStatus.CANCELLED: "red",
    }.get(status, "yellow")


def customer_actions(status: OrderStatus) -> List[OrderAction]:
    """Customers may only cancel, and only before the order is confirmed"""
    if status == OrderStatus.PENDING:
        return [OrderAction.CANCEL]
    return []
