"""
Order Routes

Admin order management (``/admin/orders``) and customer order history
(``/customer/orders``). Every response is the refreshed board, so the browser
always renders server-reconciled state with the legal controls per row.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query

from storefront.domain.listing import ListQuery, OrderFilter, SortDirection, order_query
from storefront.domain.models import Order, OrderStatus, OrderUpdate, PaymentStatus
from storefront.domain.order_workflow import OrderAction, allowed_actions, customer_actions
from storefront.errors import ValidationFailed
from storefront.services.mutations import ListState
from storefront.services.orders import (
    OrderHistoryService,
    OrderManagementService,
    board_view,
    order_row,
)
from storefront.web.dependencies import (
    admin_session,
    customer_session,
    get_order_history,
    get_order_management,
    submit_form,
)

admin_router = APIRouter(dependencies=[Depends(admin_session)])
customer_router = APIRouter(dependencies=[Depends(customer_session)])


def order_list_query(
    search: Optional[str] = Query(default=None),
    status: Optional[OrderStatus] = Query(default=None),
    payment_status: Optional[PaymentStatus] = Query(default=None, alias="paymentStatus"),
    start_date: Optional[datetime] = Query(default=None, alias="startDate"),
    end_date: Optional[datetime] = Query(default=None, alias="endDate"),
    min_amount: Optional[Decimal] = Query(default=None, alias="minAmount"),
    max_amount: Optional[Decimal] = Query(default=None, alias="maxAmount"),
    page: int = Query(default=0, ge=0),
    size: int = Query(default=10, ge=1, le=100),
    sort_by: str = Query(default="orderDate", alias="sortBy"),
    sort_direction: SortDirection = Query(default=SortDirection.DESC, alias="sortDirection"),
) -> ListQuery[OrderFilter]:
    filters = OrderFilter(
        search_term=search,
        status=status,
        payment_status=payment_status,
        start_date=start_date,
        end_date=end_date,
        min_amount=min_amount,
        max_amount=max_amount,
    )
    return order_query(filters=filters, page=page, size=size, sort_by=sort_by, sort_direction=sort_direction)


# =============================================================================
# ADMIN
# =============================================================================

async def _admin_board(service: OrderManagementService, query: ListQuery[OrderFilter]) -> ListState[Order]:
    return await service.load(service.new_state(query))


@admin_router.get("/orders")
async def list_orders(
    query: ListQuery[OrderFilter] = Depends(order_list_query),
    service: OrderManagementService = Depends(get_order_management),
) -> Dict[str, Any]:
    return board_view(await _admin_board(service, query))


@admin_router.get("/orders/{order_id}")
async def get_order(
    order_id: int,
    service: OrderManagementService = Depends(get_order_management),
) -> Dict[str, Any]:
    order = await service.backend.get(order_id)
    return order_row(order, allowed_actions(order.status))


@admin_router.post("/orders/{order_id}/actions/{action}")
async def order_action(
    order_id: int,
    action: str,
    transaction_id: Optional[str] = Body(default=None, embed=True, alias="transactionId"),
    query: ListQuery[OrderFilter] = Depends(order_list_query),
    service: OrderManagementService = Depends(get_order_management),
) -> Dict[str, Any]:
    """Confirm (pay), ship, complete (deliver) or cancel an order"""
    try:
        parsed = OrderAction.parse(action)
    except ValueError:
        raise ValidationFailed(f"Unknown order action: {action}", {"action": "Unknown action"}) from None
    state = await _admin_board(service, query)
    order = await service.apply_action(state, order_id, parsed, transaction_id)
    view = board_view(state)
    view["order"] = order_row(order, allowed_actions(order.status))
    return view


@admin_router.patch("/orders/{order_id}/status")
async def set_order_status(
    order_id: int,
    status: OrderStatus = Query(...),
    query: ListQuery[OrderFilter] = Depends(order_list_query),
    service: OrderManagementService = Depends(get_order_management),
) -> Dict[str, Any]:
    state = await _admin_board(service, query)
    order = await service.set_status(state, order_id, status)
    view = board_view(state)
    view["order"] = order_row(order, allowed_actions(order.status))
    return view


@admin_router.put("/orders/{order_id}")
async def edit_order(
    order_id: int,
    changes: OrderUpdate,
    query: ListQuery[OrderFilter] = Depends(order_list_query),
    service: OrderManagementService = Depends(get_order_management),
) -> Dict[str, Any]:
    state = await _admin_board(service, query)
    values = changes.model_dump(mode="json", by_alias=True, exclude_none=True)
    order = await submit_form(values, service.edit(state, order_id, changes))
    view = board_view(state)
    view["order"] = order_row(order, allowed_actions(order.status))
    return view


@admin_router.delete("/orders/{order_id}")
async def delete_order(
    order_id: int,
    query: ListQuery[OrderFilter] = Depends(order_list_query),
    service: OrderManagementService = Depends(get_order_management),
) -> Dict[str, Any]:
    state = await _admin_board(service, query)
    await service.delete(state, order_id)
    return board_view(state)


# =============================================================================
# CUSTOMER
# =============================================================================

@customer_router.get("/orders")
async def order_history(
    query: ListQuery[OrderFilter] = Depends(order_list_query),
    service: OrderHistoryService = Depends(get_order_history),
) -> Dict[str, Any]:
    state = await service.load(service.new_state(query))
    return board_view(state, customer=True)


@customer_router.post("/orders/{order_id}/cancel")
async def cancel_order(
    order_id: int,
    query: ListQuery[OrderFilter] = Depends(order_list_query),
    service: OrderHistoryService = Depends(get_order_history),
) -> Dict[str, Any]:
    state = await service.load(service.new_state(query))
    order = await service.cancel(state, order_id)
    view = board_view(state, customer=True)
    view["order"] = order_row(order, customer_actions(order.status))
    return view


@customer_router.put("/orders/{order_id}")
async def edit_own_order(
    order_id: int,
    changes: OrderUpdate,
    query: ListQuery[OrderFilter] = Depends(order_list_query),
    service: OrderHistoryService = Depends(get_order_history),
) -> Dict[str, Any]:
    state = await service.load(service.new_state(query))
    values = changes.model_dump(mode="json", by_alias=True, exclude_none=True)
    order = await submit_form(values, service.edit(state, order_id, changes))
    view = board_view(state, customer=True)
    view["order"] = order_row(order, customer_actions(order.status))
    return view
