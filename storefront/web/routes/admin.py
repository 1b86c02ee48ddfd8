"""
Admin Console and Account Routes

Admin dashboard, users, reviews and security audit logs under ``/admin``;
the customer dashboard, profile and address book under ``/customer``.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from storefront.auth.session import Session
from storefront.domain.listing import AuditLogFilter, ListQuery, audit_log_query, order_query
from storefront.domain.models import OrderStatus, SecurityEventType
from storefront.services.admin import AccountService, ReviewAdminService, UserAdminService
from storefront.services.audit_logs import AuditLogService, audit_log_route
from storefront.services.checkout import CartState, CheckoutService
from storefront.services.inventory import InventoryService
from storefront.services.orders import OrderHistoryService, OrderManagementService, board_view
from storefront.web.dependencies import (
    admin_session,
    customer_session,
    get_account,
    get_audit_logs,
    get_checkout,
    get_inventory,
    get_order_history,
    get_order_management,
    get_review_admin,
    get_user_admin,
    submit_form,
)

admin_router = APIRouter(dependencies=[Depends(admin_session)])
customer_router = APIRouter(dependencies=[Depends(customer_session)])


def _dump(items) -> List[Dict[str, Any]]:
    return [item.model_dump(mode="json", by_alias=True) for item in items]


# =============================================================================
# ADMIN
# =============================================================================

@admin_router.get("/dashboard")
async def admin_dashboard(
    session: Session = Depends(admin_session),
    orders: OrderManagementService = Depends(get_order_management),
    inventory: InventoryService = Depends(get_inventory),
) -> Dict[str, Any]:
    recent = await orders.load(orders.new_state(order_query(size=5)))
    pending_query = order_query(size=5).with_filters(status=OrderStatus.PENDING)
    pending = await orders.load(orders.new_state(pending_query))
    low_stock = await inventory.low_stock()
    return {
        "user": session.username,
        "recentOrders": board_view(recent),
        "pendingOrders": pending.page.total_elements if pending.page else None,
        "lowStock": _dump(low_stock),
    }


@admin_router.get("/users")
async def list_users(
    role: Optional[str] = Query(default=None),
    search: Optional[str] = Query(default=None),
    service: UserAdminService = Depends(get_user_admin),
) -> List[Dict[str, Any]]:
    return _dump(await service.list(role, search))


@admin_router.get("/users/{user_id}")
async def get_user(user_id: int, service: UserAdminService = Depends(get_user_admin)) -> Dict[str, Any]:
    return (await service.get(user_id)).model_dump(mode="json", by_alias=True)


@admin_router.put("/users/{user_id}")
async def update_user(
    user_id: int,
    payload: Dict[str, Any],
    service: UserAdminService = Depends(get_user_admin),
) -> Dict[str, Any]:
    user = await submit_form(payload, service.update(user_id, payload))
    return user.model_dump(mode="json", by_alias=True)


@admin_router.delete("/users/{user_id}")
async def delete_user(
    user_id: int,
    session: Session = Depends(admin_session),
    service: UserAdminService = Depends(get_user_admin),
) -> Dict[str, Any]:
    await service.delete(user_id, session.id)
    return {"deleted": user_id}


@admin_router.get("/reviews")
async def list_reviews(
    product_id: Optional[int] = Query(default=None, alias="productId"),
    rating: Optional[int] = Query(default=None, ge=1, le=5),
    service: ReviewAdminService = Depends(get_review_admin),
) -> List[Dict[str, Any]]:
    return _dump(await service.list(product_id, rating))


@admin_router.delete("/reviews/{review_id}")
async def delete_review(review_id: int, service: ReviewAdminService = Depends(get_review_admin)) -> Dict[str, Any]:
    await service.delete(review_id)
    return {"deleted": review_id}


def audit_list_query(
    username: Optional[str] = Query(default=None),
    event_type: Optional[SecurityEventType] = Query(default=None, alias="eventType"),
    start_date: Optional[datetime] = Query(default=None, alias="startDate"),
    end_date: Optional[datetime] = Query(default=None, alias="endDate"),
    page: int = Query(default=0, ge=0),
) -> ListQuery[AuditLogFilter]:
    filters = AuditLogFilter(username=username, event_type=event_type, start_date=start_date, end_date=end_date)
    return audit_log_query(filters=filters, page=page)


@admin_router.get("/audit-logs")
async def audit_logs(
    query: ListQuery[AuditLogFilter] = Depends(audit_list_query),
    service: AuditLogService = Depends(get_audit_logs),
) -> Dict[str, Any]:
    state = await service.load(service.new_state(query))
    controls = state.controls
    return {
        "logs": _dump(state.items),
        "route": audit_log_route(query.filters),
        "query": query.model_dump(mode="json"),
        "pagination": controls.model_dump() if controls else None,
        "error": state.error.to_notification() if state.error else None,
        "retryable": state.retryable,
    }


@admin_router.get("/audit-logs/failed-logins/{username}")
async def failed_logins(
    username: str,
    minutes: int = Query(default=60, ge=1),
    service: AuditLogService = Depends(get_audit_logs),
) -> Dict[str, Any]:
    return {"username": username, "minutes": minutes, "result": await service.recent_failed_logins(username, minutes)}


# =============================================================================
# CUSTOMER
# =============================================================================

class AddressPayload(BaseModel):
    address_type: str = Field(default="HOME", alias="addressType")
    street_address: Optional[str] = Field(default=None, alias="streetAddress")
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = Field(default=None, alias="postalCode")
    country: Optional[str] = None
    is_default: bool = Field(default=False, alias="isDefault")

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class PasswordChange(BaseModel):
    current_password: str = Field(alias="currentPassword")
    new_password: str = Field(alias="newPassword")


@customer_router.get("/dashboard")
async def customer_dashboard(
    session: Session = Depends(customer_session),
    history: OrderHistoryService = Depends(get_order_history),
    checkout: CheckoutService = Depends(get_checkout),
) -> Dict[str, Any]:
    orders = await history.load(history.new_state(order_query(size=5)))
    cart = await checkout.load(CartState(user_id=session.id))
    return {
        "user": session.username,
        "recentOrders": board_view(orders, customer=True),
        "cartCount": cart.count,
        "cartTotal": str(cart.total),
    }


@customer_router.get("/account")
async def account(service: AccountService = Depends(get_account)) -> Dict[str, Any]:
    return {
        "profile": (await service.profile()).model_dump(mode="json", by_alias=True),
        "addresses": _dump(await service.addresses()),
    }


@customer_router.post("/account/password")
async def change_password(body: PasswordChange, service: AccountService = Depends(get_account)) -> Dict[str, Any]:
    await submit_form({}, service.change_password(body.current_password, body.new_password))
    return {"changed": True}


@customer_router.post("/addresses")
async def add_address(body: AddressPayload, service: AccountService = Depends(get_account)) -> List[Dict[str, Any]]:
    return _dump(await submit_form(body.to_wire(), service.add_address(body.to_wire())))


@customer_router.put("/addresses/{address_id}")
async def update_address(
    address_id: int,
    body: AddressPayload,
    service: AccountService = Depends(get_account),
) -> List[Dict[str, Any]]:
    return _dump(await submit_form(body.to_wire(), service.update_address(address_id, body.to_wire())))


@customer_router.delete("/addresses/{address_id}")
async def delete_address(address_id: int, service: AccountService = Depends(get_account)) -> List[Dict[str, Any]]:
    return _dump(await service.delete_address(address_id))


@customer_router.patch("/addresses/{address_id}/default")
async def set_default_address(address_id: int, service: AccountService = Depends(get_account)) -> List[Dict[str, Any]]:
    return _dump(await service.set_default_address(address_id))
