"""
Request Dependencies

FastAPI dependencies wiring the session, the role guards and the per-request
API clients (the shared HTTP pool bound to the session's token).
"""

from typing import Any, Awaitable, Dict, Optional, TypeVar

from fastapi import Depends, Request

from storefront.auth.guards import require_admin, require_customer
from storefront.auth.session import AuthService, Session, SessionStore
from storefront.clients.graphql import GraphQLClient
from storefront.clients.resources import ShopJoyApi
from storefront.clients.rest import RestClient
from storefront.config import get_settings
from storefront.errors import ValidationFailed
from storefront.services.admin import AccountService, ReviewAdminService, UserAdminService
from storefront.services.audit_logs import AuditLogService
from storefront.services.catalog import CatalogService
from storefront.services.checkout import CheckoutService
from storefront.services.inventory import InventoryService
from storefront.services.orders import (
    OrderBackend,
    OrderHistoryService,
    OrderManagementService,
    build_order_backend,
)

T = TypeVar("T")


# ===== SESSION =====

def get_session_store(request: Request) -> SessionStore:
    return request.app.state.sessions


def session_id_from(request: Request) -> Optional[str]:
    return request.cookies.get(get_settings().session.cookie_name)


async def get_session(
    request: Request,
    store: SessionStore = Depends(get_session_store),
) -> Optional[Session]:
    session = await store.load(session_id_from(request))
    request.state.session = session
    return session


async def admin_session(session: Optional[Session] = Depends(get_session)) -> Session:
    return require_admin.check(session)


async def customer_session(session: Optional[Session] = Depends(get_session)) -> Session:
    return require_customer.check(session)


# ===== CLIENTS =====

def _token(session: Optional[Session]) -> Optional[str]:
    return session.token if session is not None else None


def get_api(request: Request, session: Optional[Session] = Depends(get_session)) -> ShopJoyApi:
    return ShopJoyApi(RestClient(request.app.state.http, _token(session)))


def get_graphql(request: Request, session: Optional[Session] = Depends(get_session)) -> GraphQLClient:
    return request.app.state.graphql.bind(_token(session))


def get_auth_service(
    store: SessionStore = Depends(get_session_store),
    api: ShopJoyApi = Depends(get_api),
) -> AuthService:
    return AuthService(store, api.auth)


def get_order_backend(
    api: ShopJoyApi = Depends(get_api),
    graphql: GraphQLClient = Depends(get_graphql),
) -> OrderBackend:
    return build_order_backend(get_settings().backend.orders_backend, api.orders, graphql)


# ===== SERVICES =====

def get_order_management(backend: OrderBackend = Depends(get_order_backend)) -> OrderManagementService:
    return OrderManagementService(backend)


def get_order_history(
    session: Session = Depends(customer_session),
    backend: OrderBackend = Depends(get_order_backend),
) -> OrderHistoryService:
    return OrderHistoryService(backend, session.id)


def get_checkout(api: ShopJoyApi = Depends(get_api)) -> CheckoutService:
    return CheckoutService(api.cart, api.orders, api.addresses)


def get_catalog(
    api: ShopJoyApi = Depends(get_api),
    graphql: GraphQLClient = Depends(get_graphql),
) -> CatalogService:
    return CatalogService(api.products, api.categories, graphql, api.reviews, api.inventory)


def get_inventory(
    api: ShopJoyApi = Depends(get_api),
    graphql: GraphQLClient = Depends(get_graphql),
) -> InventoryService:
    return InventoryService(api.inventory, graphql)


def get_audit_logs(api: ShopJoyApi = Depends(get_api)) -> AuditLogService:
    return AuditLogService(api.audit_logs)


def get_user_admin(api: ShopJoyApi = Depends(get_api)) -> UserAdminService:
    return UserAdminService(api.users)


def get_review_admin(api: ShopJoyApi = Depends(get_api)) -> ReviewAdminService:
    return ReviewAdminService(api.reviews)


def get_account(
    session: Session = Depends(customer_session),
    api: ShopJoyApi = Depends(get_api),
) -> AccountService:
    return AccountService(session.id, api.users, api.addresses, api.auth)


async def submit_form(values: Dict[str, Any], operation: Awaitable[T]) -> T:
    """Await a form submission, attaching the submitted values to a validation failure"""
    try:
        return await operation
    except ValidationFailed as e:
        e.values = values
        raise
