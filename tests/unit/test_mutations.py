"""
Unit Tests - Mutation Reconciliation
"""
import asyncio

import pytest

from storefront.domain.listing import order_query
from storefront.domain.models import Order, Page
from storefront.errors import ApiError, ErrorCategory, classify_error
from storefront.services.mutations import ListState, load_into, mutate_and_reconcile


def make_state(*statuses):
    orders = [Order.model_validate({"orderId": i + 1, "status": s}) for i, s in enumerate(statuses)]
    return ListState(query=order_query(), page=Page.from_list(orders, Order))


class Recorder:
    """Records optimistic / revert / refetch calls"""

    def __init__(self):
        self.events = []

    def optimistic(self):
        self.events.append("optimistic")

    def revert(self):
        self.events.append("revert")

    async def refetch(self, result):
        self.events.append(("refetch", result))


class TestMutateAndReconcile:
    """Tests for mutate_and_reconcile"""

    async def test_success(self):
        recorder = Recorder()

        async def mutation():
            return "saved"

        result = await mutate_and_reconcile(mutation, recorder.optimistic, recorder.revert, recorder.refetch)

        assert result == "saved"
        assert recorder.events == ["optimistic", ("refetch", "saved")]

    async def test_failure_reverts_and_reraises(self):
        recorder = Recorder()

        async def mutation():
            raise ApiError(classify_error(None, 404))

        with pytest.raises(ApiError):
            await mutate_and_reconcile(mutation, recorder.optimistic, recorder.revert, recorder.refetch)

        assert recorder.events == ["optimistic", "revert"]

    async def test_cancellation_reverts(self):
        """A cancelled request never leaves the optimistic state behind"""
        recorder = Recorder()

        async def mutation():
            raise asyncio.CancelledError()

        with pytest.raises(asyncio.CancelledError):
            await mutate_and_reconcile(mutation, recorder.optimistic, recorder.revert, recorder.refetch)

        assert recorder.events == ["optimistic", "revert"]

    async def test_refetch_failure_reverts(self):
        recorder = Recorder()

        async def mutation():
            return "saved"

        async def refetch(result):
            raise ApiError(classify_error(None))

        with pytest.raises(ApiError):
            await mutate_and_reconcile(mutation, recorder.optimistic, recorder.revert, refetch)

        assert recorder.events == ["optimistic", "revert"]

    async def test_optional_hooks(self):
        async def mutation():
            return 1

        assert await mutate_and_reconcile(mutation) == 1


class TestListState:
    """Tests for list view state"""

    def test_row_helpers(self):
        state = make_state("PENDING", "SHIPPED")
        replacement = Order.model_validate({"orderId": 2, "status": "DELIVERED"})

        assert state.replace_item(lambda o: o.order_id == 2, replacement)
        removed = state.remove_item(lambda o: o.order_id == 1)
        state.insert_item(0, removed)

        assert [(o.order_id, o.status.value) for o in state.items] == [(1, "PENDING"), (2, "DELIVERED")]
        assert not state.replace_item(lambda o: o.order_id == 9, replacement)

    def test_empty_state(self):
        state = ListState(query=order_query())

        assert state.items == []
        assert state.controls is None
        assert state.remove_item(lambda o: True) is None

    async def test_load_into_success(self):
        state = ListState(query=order_query())
        page = Page.from_list([Order.model_validate({"orderId": 1})], Order)

        async def loader(query):
            return page

        await load_into(state, loader, order_query().with_page(1))

        assert state.query.page == 1
        assert state.items[0].order_id == 1

    async def test_load_into_failure_keeps_page(self):
        state = make_state("PENDING")

        async def loader(query):
            raise ApiError(classify_error(None))

        await load_into(state, loader, state.query.next_page())

        assert len(state.items) == 1
        assert state.query.page == 0
        assert state.error.category == ErrorCategory.NETWORK
        assert state.retryable
