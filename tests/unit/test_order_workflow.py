"""
Unit Tests - Order Workflow
"""
import pytest

from storefront.domain.models import Order, OrderStatus
from storefront.domain.order_workflow import (
    OrderAction,
    action_for_target,
    allowed_actions,
    apply_transition,
    can_edit,
    can_transition,
    customer_actions,
    ensure_editable,
    is_terminal,
    next_status,
    status_badge,
)
from storefront.errors import ErrorCategory, InvalidTransition, OrderNotEditable


class TestTransitions:
    """Tests for the transition table"""

    @pytest.mark.parametrize("status,actions", [
        (OrderStatus.PENDING, [OrderAction.CONFIRM, OrderAction.CANCEL]),
        (OrderStatus.PROCESSING, [OrderAction.SHIP, OrderAction.CANCEL]),
        (OrderStatus.SHIPPED, [OrderAction.COMPLETE]),
        (OrderStatus.DELIVERED, []),
        (OrderStatus.CANCELLED, []),
    ])
    def test_allowed_actions(self, status, actions):
        """Only table entries are offered as controls"""
        assert allowed_actions(status) == actions

    def test_happy_path(self):
        """PENDING walks through to DELIVERED"""
        status = OrderStatus.PENDING
        for action in (OrderAction.CONFIRM, OrderAction.SHIP, OrderAction.COMPLETE):
            status = next_status(status, action)
        assert status == OrderStatus.DELIVERED
        assert is_terminal(status)

    def test_confirm_from_processing_rejected(self):
        """Confirming an already-confirmed order is not a transition"""
        with pytest.raises(InvalidTransition) as exc_info:
            next_status(OrderStatus.PROCESSING, OrderAction.CONFIRM)

        assert str(exc_info.value) == "Cannot confirm an order that is PROCESSING"
        assert exc_info.value.category == ErrorCategory.INVALID_TRANSITION

    def test_shipped_cannot_be_cancelled(self):
        assert not can_transition(OrderStatus.SHIPPED, OrderAction.CANCEL)
        with pytest.raises(InvalidTransition):
            next_status(OrderStatus.SHIPPED, OrderAction.CANCEL)

    def test_terminal_states_have_no_exit(self):
        for status in (OrderStatus.DELIVERED, OrderStatus.CANCELLED):
            for action in OrderAction:
                assert not can_transition(status, action)

    def test_apply_transition_copies(self):
        """The input order is left as it was"""
        order = Order.model_validate({"orderId": 1, "status": "PENDING"})

        updated = apply_transition(order, OrderAction.CONFIRM)

        assert updated.status == OrderStatus.PROCESSING
        assert order.status == OrderStatus.PENDING


class TestActionParsing:
    """Tests for action names and aliases"""

    def test_aliases(self):
        assert OrderAction.parse("pay") == OrderAction.CONFIRM
        assert OrderAction.parse("Deliver") == OrderAction.COMPLETE
        assert OrderAction.parse(" SHIP ") == OrderAction.SHIP

    def test_unknown_action(self):
        with pytest.raises(ValueError):
            OrderAction.parse("refund")

    def test_action_for_target(self):
        assert action_for_target(OrderStatus.PENDING, OrderStatus.PROCESSING) == OrderAction.CONFIRM
        assert action_for_target(OrderStatus.PROCESSING, OrderStatus.CANCELLED) == OrderAction.CANCEL

    def test_action_for_unreachable_target(self):
        """Skipping a step is refused"""
        with pytest.raises(InvalidTransition):
            action_for_target(OrderStatus.PENDING, OrderStatus.SHIPPED)


class TestEditing:
    """Tests for PENDING-only edits and customer controls"""

    def test_pending_is_editable(self):
        order = Order.model_validate({"orderId": 3, "status": "pending"})
        assert can_edit(order)
        ensure_editable(order)

    def test_processing_is_not_editable(self):
        order = Order.model_validate({"orderId": 3, "status": "PROCESSING"})

        with pytest.raises(OrderNotEditable) as exc_info:
            ensure_editable(order)

        assert "PROCESSING" in str(exc_info.value)

    def test_customer_actions(self):
        assert customer_actions(OrderStatus.PENDING) == [OrderAction.CANCEL]
        assert customer_actions(OrderStatus.PROCESSING) == []
        assert customer_actions(OrderStatus.SHIPPED) == []

    def test_status_badges(self):
        assert status_badge(OrderStatus.DELIVERED) == "green"
        assert status_badge(OrderStatus.CANCELLED) == "red"
        assert status_badge(None) == "yellow"
