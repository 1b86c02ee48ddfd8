"""
Order Services

Admin order management and customer order history. Both screens share the
workflow rules in ``storefront.domain.order_workflow``: a control is only
rendered for a legal action, an illegal request is rejected before any
network call, and every accepted action is applied optimistically and then
reconciled against the server.

Two interchangeable backends are available; the REST one exposes the
dedicated transition endpoints (including payment with a transaction id).
"""

from typing import Any, Dict, List, Optional

import structlog

from storefront.clients.documents import (
    DELETE_ORDER,
    GET_ORDER_BY_ID,
    GET_ORDERS,
    UPDATE_ORDER,
    UPDATE_ORDER_STATUS,
)
from storefront.clients.graphql import NETWORK_ONLY, GraphQLClient
from storefront.clients.resources import OrdersApi
from storefront.clients.rest import parse, parsing
from storefront.domain.listing import ListQuery, OrderFilter, order_query
from storefront.domain.models import Order, OrderStatus, OrderUpdate, Page
from storefront.domain.order_workflow import (
    OrderAction,
    action_for_target,
    allowed_actions,
    apply_transition,
    can_edit,
    customer_actions,
    ensure_editable,
    next_status,
    status_badge,
)
from storefront.errors import AccessDenied, InvalidTransition, ValidationFailed
from storefront.services.mutations import ListState, load_into, mutate_and_reconcile

logger = structlog.get_logger(__name__)


# =============================================================================
# BACKENDS
# =============================================================================

class OrderBackend:
    """Operations the order screens need from the server"""

    async def list(self, query: ListQuery[OrderFilter]) -> Page[Order]:
        raise NotImplementedError

    async def list_for_user(self, user_id: int, query: ListQuery[OrderFilter]) -> Page[Order]:
        raise NotImplementedError

    async def get(self, order_id: int) -> Order:
        raise NotImplementedError

    async def transition(self, order: Order, action: OrderAction, transaction_id: Optional[str] = None) -> Order:
        raise NotImplementedError

    async def update(self, order_id: int, changes: OrderUpdate) -> Order:
        raise NotImplementedError

    async def delete(self, order_id: int) -> None:
        raise NotImplementedError


# Query parameter each order filter field is submitted as
FILTER_PARAMS = {
    "search_term": "search",
    "status": "status",
    "payment_status": "paymentStatus",
    "user_id": "userId",
    "start_date": "startDate",
    "end_date": "endDate",
    "min_amount": "minAmount",
    "max_amount": "maxAmount",
}


class RestOrderBackend(OrderBackend):
    """
    Orders over the REST endpoints.

    Each REST listing endpoint filters on one thing only (status, date range
    or user). Any other filter combination is served by ``fallback`` when a
    GraphQL backend is available, and rejected otherwise; a filter is never
    silently dropped.
    """

    def __init__(self, api: OrdersApi, fallback: Optional["GraphQLOrderBackend"] = None):
        self.api = api
        self.fallback = fallback

    @staticmethod
    def route(filters: OrderFilter) -> Optional[str]:
        """The REST listing endpoint that applies exactly these filters, if any"""
        active = set(filters.model_dump(exclude_none=True))
        if not active:
            return "all"
        if active == {"status"}:
            return "status"
        if active == {"start_date", "end_date"}:
            return "date-range"
        if active == {"user_id"}:
            return "user"
        return None

    def _unsupported(self, filters: OrderFilter) -> ValidationFailed:
        fields = sorted(filters.model_dump(exclude_none=True))
        return ValidationFailed(
            "These filters cannot be combined",
            {FILTER_PARAMS[name]: "Cannot be combined with the other filters" for name in fields},
        )

    async def list(self, query: ListQuery[OrderFilter]) -> Page[Order]:
        filters = query.filters
        route = self.route(filters)
        if route == "status":
            return await self.api.by_status_paginated(filters.status, query)
        if route == "date-range":
            return await self.api.by_date_range_paginated(filters.start_date, filters.end_date, query)
        if route == "user":
            return await self.api.by_user_paginated(filters.user_id, query)
        if route == "all":
            return await self.api.list_paginated(query)
        if self.fallback is None:
            raise self._unsupported(filters)
        logger.debug("Order filter served over GraphQL", filters=sorted(filters.model_dump(exclude_none=True)))
        return await self.fallback.list(query)

    async def list_for_user(self, user_id: int, query: ListQuery[OrderFilter]) -> Page[Order]:
        filters = query.filters.model_copy(update={"user_id": None})
        if self.route(filters) == "all":
            return await self.api.by_user_paginated(user_id, query)
        if self.fallback is None:
            raise self._unsupported(filters)
        return await self.fallback.list_for_user(user_id, query)

    async def get(self, order_id: int) -> Order:
        return await self.api.get(order_id)

    async def transition(self, order: Order, action: OrderAction, transaction_id: Optional[str] = None) -> Order:
        return await self.api.transition(order.order_id, action, transaction_id)

    async def update(self, order_id: int, changes: OrderUpdate) -> Order:
        return await self.api.update(order_id, changes)

    async def delete(self, order_id: int) -> None:
        await self.api.delete(order_id)


class GraphQLOrderBackend(OrderBackend):

    def __init__(self, client: GraphQLClient):
        self.client = client

    @staticmethod
    def _variables(query: ListQuery[OrderFilter], user_id: Optional[int] = None) -> Dict[str, Any]:
        filters = query.filters.to_params()
        filters.pop("userId", None)
        return {
            "userId": user_id if user_id is not None else query.filters.user_id,
            "filter": filters or None,
            "page": query.page,
            "size": query.size,
            "sortBy": query.sort_by,
            "sortDirection": query.sort_direction.value,
        }

    async def list(self, query: ListQuery[OrderFilter]) -> Page[Order]:
        data = await self.client.query(GET_ORDERS, self._variables(query))
        with parsing("Page[Order]"):
            return Page.from_graphql(data.get("orders") or {}, "orders", Order)

    async def list_for_user(self, user_id: int, query: ListQuery[OrderFilter]) -> Page[Order]:
        data = await self.client.query(GET_ORDERS, self._variables(query, user_id))
        with parsing("Page[Order]"):
            return Page.from_graphql(data.get("orders") or {}, "orders", Order)

    async def get(self, order_id: int) -> Order:
        data = await self.client.query(GET_ORDER_BY_ID, {"id": order_id}, fetch_policy=NETWORK_ONLY)
        return parse(Order, data.get("order") or {})

    async def transition(self, order: Order, action: OrderAction, transaction_id: Optional[str] = None) -> Order:
        target = next_status(order.status, action)
        data = await self.client.mutate(UPDATE_ORDER_STATUS, {"id": order.order_id, "status": target.value})
        return parse(Order, data.get("updateOrderStatus") or {})

    async def update(self, order_id: int, changes: OrderUpdate) -> Order:
        payload = changes.model_dump(mode="json", by_alias=True, exclude_none=True)
        data = await self.client.mutate(UPDATE_ORDER, {"id": order_id, "input": payload})
        return parse(Order, data.get("updateOrder") or {})

    async def delete(self, order_id: int) -> None:
        await self.client.mutate(DELETE_ORDER, {"id": order_id})


# =============================================================================
# VIEW MODELS
# =============================================================================

def order_row(order: Order, actions: List[OrderAction]) -> Dict[str, Any]:
    """One row of an order table with the controls it may render"""
    row = order.model_dump(mode="json", by_alias=True)
    row["actions"] = [a.value for a in actions]
    row["editable"] = can_edit(order)
    row["badge"] = status_badge(order.status)
    return row


def board_view(state: ListState[Order], customer: bool = False) -> Dict[str, Any]:
    controls = state.controls
    actions_for = customer_actions if customer else allowed_actions
    return {
        "orders": [order_row(o, actions_for(o.status)) for o in state.items],
        "query": state.query.model_dump(mode="json"),
        "pagination": controls.model_dump() if controls else None,
        "error": state.error.to_notification() if state.error else None,
        "retryable": state.retryable,
        "notifications": state.notifications,
    }


# =============================================================================
# ADMIN ORDER MANAGEMENT
# =============================================================================

def _same(order_id: int):
    return lambda o: o.order_id == order_id


class OrderManagementService:
    """Admin order list with status controls and PENDING-only edits"""

    def __init__(self, backend: OrderBackend):
        self.backend = backend

    def new_state(self, query: Optional[ListQuery[OrderFilter]] = None) -> ListState[Order]:
        return ListState(query=query or order_query())

    async def load(self, state: ListState[Order], query: Optional[ListQuery[OrderFilter]] = None) -> ListState[Order]:
        return await load_into(state, self.backend.list, query)

    async def _current(self, state: ListState[Order], order_id: int) -> Order:
        for order in state.items:
            if order.order_id == order_id:
                return order
        return await self.backend.get(order_id)

    async def apply_action(
        self,
        state: ListState[Order],
        order_id: int,
        action: OrderAction,
        transaction_id: Optional[str] = None,
    ) -> Order:
        """
        Run ``action`` on an order and reconcile the board with the server.

        Raises:
            InvalidTransition: the action is not legal from the order's
                current status; nothing is sent and the board is unchanged
            ApiError: the server rejected the action; the board is reverted
        """
        original = await self._current(state, order_id)
        optimistic = apply_transition(original, action)
        match = _same(order_id)
        reconciled: Dict[str, Order] = {}

        async def refetch(_result: Order) -> None:
            fresh = await self.backend.get(order_id)
            state.replace_item(match, fresh)
            reconciled["order"] = fresh

        await mutate_and_reconcile(
            mutation=lambda: self.backend.transition(original, action, transaction_id),
            apply_optimistic=lambda: state.replace_item(match, optimistic),
            revert=lambda: state.replace_item(match, original),
            refetch=refetch,
            label=f"order.{action.value}",
        )
        logger.info(
            "Order transitioned",
            order_id=order_id,
            action=action.value,
            status=reconciled["order"].status.value,
        )
        return reconciled["order"]

    async def set_status(self, state: ListState[Order], order_id: int, target: OrderStatus) -> Order:
        """Admin "set status" control; only one-step targets are accepted"""
        original = await self._current(state, order_id)
        action = action_for_target(original.status, target)
        return await self.apply_action(state, order_id, action)

    async def edit(self, state: ListState[Order], order_id: int, changes: OrderUpdate) -> Order:
        """
        Raises:
            OrderNotEditable: the order has left PENDING
            ApiError: the server rejected the edit; the board is reverted
        """
        original = await self._current(state, order_id)
        ensure_editable(original)
        local = changes.model_dump(exclude_none=True, exclude={"order_items"})
        optimistic = original.model_copy(update=local)
        match = _same(order_id)
        reconciled: Dict[str, Order] = {}

        async def refetch(_result: Order) -> None:
            fresh = await self.backend.get(order_id)
            state.replace_item(match, fresh)
            reconciled["order"] = fresh

        await mutate_and_reconcile(
            mutation=lambda: self.backend.update(order_id, changes),
            apply_optimistic=lambda: state.replace_item(match, optimistic),
            revert=lambda: state.replace_item(match, original),
            refetch=refetch,
            label="order.update",
        )
        return reconciled["order"]

    async def delete(self, state: ListState[Order], order_id: int) -> None:
        """Only PENDING orders can be deleted"""
        original = await self._current(state, order_id)
        ensure_editable(original)
        match = _same(order_id)
        position = next((i for i, o in enumerate(state.items) if o.order_id == order_id), None)

        def revert() -> None:
            if position is not None and not any(match(o) for o in state.items):
                state.insert_item(position, original)

        await mutate_and_reconcile(
            mutation=lambda: self.backend.delete(order_id),
            apply_optimistic=lambda: state.remove_item(match),
            revert=revert,
            refetch=lambda _result: self.load(state),
            label="order.delete",
        )


# =============================================================================
# CUSTOMER ORDER HISTORY
# =============================================================================

class OrderHistoryService:
    """A customer's own orders; cancel and edit only while PENDING"""

    def __init__(self, backend: OrderBackend, user_id: int):
        self.backend = backend
        self.user_id = user_id
        self._manager = OrderManagementService(backend)

    def new_state(self, query: Optional[ListQuery[OrderFilter]] = None) -> ListState[Order]:
        return ListState(query=query or order_query())

    async def load(self, state: ListState[Order], query: Optional[ListQuery[OrderFilter]] = None) -> ListState[Order]:
        return await load_into(state, lambda q: self.backend.list_for_user(self.user_id, q), query)

    async def _own(self, state: ListState[Order], order_id: int) -> Order:
        order = await self._manager._current(state, order_id)
        if order.user_id != self.user_id:
            raise AccessDenied("This order belongs to another customer")
        return order

    async def cancel(self, state: ListState[Order], order_id: int) -> Order:
        order = await self._own(state, order_id)
        if OrderAction.CANCEL not in customer_actions(order.status):
            raise InvalidTransition(order.status, OrderAction.CANCEL)
        return await self._manager.apply_action(state, order_id, OrderAction.CANCEL)

    async def edit(self, state: ListState[Order], order_id: int, changes: OrderUpdate) -> Order:
        await self._own(state, order_id)
        return await self._manager.edit(state, order_id, changes)


def build_order_backend(kind: str, orders_api: OrdersApi, graphql: GraphQLClient) -> OrderBackend:
    if kind == "graphql":
        return GraphQLOrderBackend(graphql)
    fallback = GraphQLOrderBackend(graphql) if graphql is not None else None
    return RestOrderBackend(orders_api, fallback)
