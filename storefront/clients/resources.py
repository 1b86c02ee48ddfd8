"""
REST Resource Endpoints

One class per backend resource. Every method parses its response into the
domain models, so callers never see raw payloads.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional
from urllib.parse import quote

from storefront.clients.rest import RestClient, parse, parsing
from storefront.domain.listing import ListQuery
from storefront.domain.models import (
    Address,
    CartItem,
    Category,
    Inventory,
    LoginResult,
    Order,
    OrderDraft,
    OrderStatus,
    OrderUpdate,
    Page,
    Product,
    Review,
    SecurityAuditLog,
    SecurityEventType,
    User,
)
from storefront.domain.order_workflow import OrderAction
from storefront.errors import ApiError, invalid_response


def _list(data: Any, model) -> list:
    if isinstance(data, dict) and "content" in data:
        data = data["content"]
    if data is not None and not isinstance(data, list):
        raise ApiError(invalid_response(model.__name__))
    return [parse(model, item) for item in data or []]


def _page(data: Any, model) -> Page:
    resource = f"Page[{model.__name__}]"
    if data is not None and not isinstance(data, (dict, list)):
        raise ApiError(invalid_response(resource))
    with parsing(resource):
        if isinstance(data, list):
            return Page.from_list(data, model)
        return Page.from_spring(data or {}, model)


def _iso(value: datetime) -> str:
    return value.isoformat()


def _available(data: Any) -> bool:
    """Availability checks answer ``{available, taken}``"""
    if isinstance(data, dict):
        return bool(data.get("available", not data.get("taken", True)))
    return bool(data)


class Resource:
    def __init__(self, client: RestClient):
        self.client = client


# =============================================================================
# ORDERS
# =============================================================================

class OrdersApi(Resource):
    """``/orders`` endpoints, including the status-transition endpoints"""

    async def create(self, draft: OrderDraft) -> Order:
        data = await self.client.post("/orders", json=draft.model_dump(mode="json", by_alias=True))
        return parse(Order, data)

    async def get(self, order_id: int) -> Order:
        return parse(Order, await self.client.get(f"/orders/{order_id}"))

    async def list_all(self) -> List[Order]:
        return _list(await self.client.get("/orders"), Order)

    async def list_paginated(self, query: ListQuery) -> Page[Order]:
        return _page(await self.client.get("/orders/paginated", params=query.page_params()), Order)

    async def by_user(self, user_id: int) -> List[Order]:
        return _list(await self.client.get(f"/orders/user/{user_id}"), Order)

    async def by_user_paginated(self, user_id: int, query: ListQuery) -> Page[Order]:
        data = await self.client.get(f"/orders/user/{user_id}/paginated", params=query.page_params())
        return _page(data, Order)

    async def by_status(self, status: OrderStatus) -> List[Order]:
        return _list(await self.client.get(f"/orders/status/{status.value}"), Order)

    async def by_status_paginated(self, status: OrderStatus, query: ListQuery) -> Page[Order]:
        data = await self.client.get(f"/orders/status/{status.value}/paginated", params=query.page_params())
        return _page(data, Order)

    async def by_date_range(self, start: datetime, end: datetime) -> List[Order]:
        data = await self.client.get(
            "/orders/date-range",
            params={"startDate": _iso(start), "endDate": _iso(end)},
        )
        return _list(data, Order)

    async def by_date_range_paginated(self, start: datetime, end: datetime, query: ListQuery) -> Page[Order]:
        params = {"startDate": _iso(start), "endDate": _iso(end)}
        params.update(query.page_params())
        return _page(await self.client.get("/orders/date-range/paginated", params=params), Order)

    async def pending(self) -> List[Order]:
        return _list(await self.client.get("/orders/pending"), Order)

    async def update_status(self, order_id: int, status: OrderStatus) -> Order:
        data = await self.client.patch(f"/orders/{order_id}/status", params={"status": status.value})
        return parse(Order, data)

    async def confirm(self, order_id: int) -> Order:
        return parse(Order, await self.client.patch(f"/orders/{order_id}/confirm"))

    async def ship(self, order_id: int) -> Order:
        return parse(Order, await self.client.patch(f"/orders/{order_id}/ship"))

    async def complete(self, order_id: int) -> Order:
        return parse(Order, await self.client.patch(f"/orders/{order_id}/complete"))

    async def cancel(self, order_id: int) -> Order:
        return parse(Order, await self.client.patch(f"/orders/{order_id}/cancel"))

    async def process_payment(self, order_id: int, transaction_id: str) -> Order:
        data = await self.client.patch(
            f"/orders/{order_id}/payment",
            params={"transactionId": transaction_id},
        )
        return parse(Order, data)

    async def transition(
        self,
        order_id: int,
        action: OrderAction,
        transaction_id: Optional[str] = None,
    ) -> Order:
        """
        Call the endpoint behind an action. A confirm with a transaction id
        goes through the payment endpoint, which also marks the order PAID.
        """
        if action == OrderAction.CONFIRM and transaction_id:
            return await self.process_payment(order_id, transaction_id)
        handlers = {
            OrderAction.CONFIRM: self.confirm,
            OrderAction.SHIP: self.ship,
            OrderAction.COMPLETE: self.complete,
            OrderAction.CANCEL: self.cancel,
        }
        return await handlers[action](order_id)

    async def update(self, order_id: int, changes: OrderUpdate) -> Order:
        payload = changes.model_dump(mode="json", by_alias=True, exclude_none=True)
        return parse(Order, await self.client.put(f"/orders/{order_id}", json=payload))

    async def delete(self, order_id: int) -> None:
        await self.client.delete(f"/orders/{order_id}")


# =============================================================================
# CATALOG
# =============================================================================

class ProductsApi(Resource):

    async def create(self, payload: Dict[str, Any]) -> Product:
        return parse(Product, await self.client.post("/products", json=payload))

    async def get(self, product_id: int) -> Product:
        return parse(Product, await self.client.get(f"/products/{product_id}"))

    async def list_all(self) -> List[Product]:
        return _list(await self.client.get("/products"), Product)

    async def active(self) -> List[Product]:
        return _list(await self.client.get("/products/active"), Product)

    async def by_category(self, category_id: int) -> List[Product]:
        return _list(await self.client.get(f"/products/category/{category_id}"), Product)

    async def search(self, name: str) -> List[Product]:
        return _list(await self.client.get("/products/search", params={"name": name}), Product)

    async def price_range(self, min_price: Decimal, max_price: Decimal) -> List[Product]:
        data = await self.client.get(
            "/products/price-range",
            params={"minPrice": str(min_price), "maxPrice": str(max_price)},
        )
        return _list(data, Product)

    async def paginated(self, query: ListQuery) -> Page[Product]:
        return _page(await self.client.get("/products/paginated", params=query.page_params()), Product)

    async def search_paginated(self, term: str, query: ListQuery) -> Page[Product]:
        params = {"term": term}
        params.update(query.page_params())
        return _page(await self.client.get("/products/search/paginated", params=params), Product)

    async def filter(self, query: ListQuery) -> Page[Product]:
        return _page(await self.client.get("/products/filter", params=query.to_params()), Product)

    async def new_arrivals(self, limit: int = 10) -> List[Product]:
        return _list(await self.client.get("/products/new-arrivals", params={"limit": limit}), Product)

    async def update(self, product_id: int, payload: Dict[str, Any]) -> Product:
        return parse(Product, await self.client.put(f"/products/{product_id}", json=payload))

    async def update_price(self, product_id: int, new_price: Decimal) -> Product:
        data = await self.client.patch(f"/products/{product_id}/price", params={"newPrice": str(new_price)})
        return parse(Product, data)

    async def activate(self, product_id: int) -> Product:
        return parse(Product, await self.client.patch(f"/products/{product_id}/activate"))

    async def deactivate(self, product_id: int) -> Product:
        return parse(Product, await self.client.patch(f"/products/{product_id}/deactivate"))

    async def delete(self, product_id: int) -> None:
        await self.client.delete(f"/products/{product_id}")

    async def count(self, category_id: Optional[int] = None) -> int:
        path = f"/products/count/category/{category_id}" if category_id is not None else "/products/count"
        return int(await self.client.get(path) or 0)


class CategoriesApi(Resource):

    async def create(self, payload: Dict[str, Any]) -> Category:
        return parse(Category, await self.client.post("/categories", json=payload))

    async def get(self, category_id: int) -> Category:
        return parse(Category, await self.client.get(f"/categories/{category_id}"))

    async def list_all(self) -> List[Category]:
        return _list(await self.client.get("/categories"), Category)

    async def update(self, category_id: int, payload: Dict[str, Any]) -> Category:
        return parse(Category, await self.client.put(f"/categories/{category_id}", json=payload))

    async def delete(self, category_id: int) -> None:
        await self.client.delete(f"/categories/{category_id}")


class InventoryApi(Resource):
    """``/inventory`` endpoints; quantities travel as query parameters"""

    async def get(self, product_id: int) -> Inventory:
        return parse(Inventory, await self.client.get(f"/inventory/product/{product_id}"))

    async def batch(self, product_ids: Iterable[int]) -> List[Inventory]:
        ids = ",".join(str(pid) for pid in product_ids)
        if not ids:
            return []
        return _list(await self.client.get("/inventory/products/batch", params={"productIds": ids}), Inventory)

    async def in_stock(self, product_id: int) -> bool:
        return bool(await self.client.get(f"/inventory/product/{product_id}/in-stock"))

    async def has_available(self, product_id: int, quantity: int) -> bool:
        data = await self.client.get(
            f"/inventory/product/{product_id}/available-stock",
            params={"quantity": quantity},
        )
        return bool(data)

    async def update_stock(self, product_id: int, new_quantity: int) -> Inventory:
        data = await self.client.put(f"/inventory/product/{product_id}", params={"newQuantity": new_quantity})
        return parse(Inventory, data)

    async def _adjust(self, product_id: int, verb: str, quantity: int) -> Inventory:
        data = await self.client.patch(f"/inventory/product/{product_id}/{verb}", params={"quantity": quantity})
        return parse(Inventory, data)

    async def add(self, product_id: int, quantity: int) -> Inventory:
        return await self._adjust(product_id, "add", quantity)

    async def remove(self, product_id: int, quantity: int) -> Inventory:
        return await self._adjust(product_id, "remove", quantity)

    async def reserve(self, product_id: int, quantity: int) -> Inventory:
        return await self._adjust(product_id, "reserve", quantity)

    async def release(self, product_id: int, quantity: int) -> Inventory:
        return await self._adjust(product_id, "release", quantity)

    async def update_reorder_level(self, product_id: int, reorder_level: int) -> Inventory:
        data = await self.client.patch(
            f"/inventory/product/{product_id}/reorder-level",
            params={"reorderLevel": reorder_level},
        )
        return parse(Inventory, data)

    async def low_stock(self) -> List[Inventory]:
        return _list(await self.client.get("/inventory/low-stock"), Inventory)

    async def out_of_stock(self) -> List[Inventory]:
        return _list(await self.client.get("/inventory/out-of-stock"), Inventory)


class ReviewsApi(Resource):

    async def create(self, payload: Dict[str, Any]) -> Review:
        return parse(Review, await self.client.post("/reviews", json=payload))

    async def get(self, review_id: int) -> Review:
        return parse(Review, await self.client.get(f"/reviews/{review_id}"))

    async def list_all(self) -> List[Review]:
        return _list(await self.client.get("/reviews"), Review)

    async def by_product(self, product_id: int) -> List[Review]:
        return _list(await self.client.get(f"/reviews/product/{product_id}"), Review)

    async def by_user(self, user_id: int) -> List[Review]:
        return _list(await self.client.get(f"/reviews/user/{user_id}"), Review)

    async def by_rating(self, product_id: int, rating: int) -> List[Review]:
        return _list(await self.client.get(f"/reviews/product/{product_id}/rating/{rating}"), Review)

    async def average_rating(self, product_id: int) -> float:
        return float(await self.client.get(f"/reviews/product/{product_id}/average-rating") or 0)

    async def update(self, review_id: int, payload: Dict[str, Any]) -> Review:
        return parse(Review, await self.client.put(f"/reviews/{review_id}", json=payload))

    async def mark_helpful(self, review_id: int) -> Review:
        return parse(Review, await self.client.patch(f"/reviews/{review_id}/helpful"))

    async def delete(self, review_id: int) -> None:
        await self.client.delete(f"/reviews/{review_id}")


# =============================================================================
# CUSTOMERS
# =============================================================================

class CartApi(Resource):

    async def add_item(self, user_id: int, product_id: int, quantity: int = 1) -> CartItem:
        data = await self.client.post(
            "/cart/items",
            json={"userId": user_id, "productId": product_id, "quantity": quantity},
        )
        return parse(CartItem, data)

    async def update_quantity(self, cart_item_id: int, quantity: int) -> CartItem:
        data = await self.client.put(f"/cart/items/{cart_item_id}", params={"quantity": quantity})
        return parse(CartItem, data)

    async def remove(self, cart_item_id: int) -> None:
        await self.client.delete(f"/cart/items/{cart_item_id}")

    async def items(self, user_id: int) -> List[CartItem]:
        return _list(await self.client.get(f"/cart/user/{user_id}"), CartItem)

    async def clear(self, user_id: int) -> None:
        await self.client.delete(f"/cart/user/{user_id}")

    async def total(self, user_id: int) -> Decimal:
        return Decimal(str(await self.client.get(f"/cart/user/{user_id}/total") or 0))

    async def count(self, user_id: int) -> int:
        return int(await self.client.get(f"/cart/user/{user_id}/count") or 0)


class AddressesApi(Resource):

    async def create(self, payload: Dict[str, Any]) -> Address:
        return parse(Address, await self.client.post("/addresses", json=payload))

    async def get(self, address_id: int) -> Address:
        return parse(Address, await self.client.get(f"/addresses/{address_id}"))

    async def by_user(self, user_id: int) -> List[Address]:
        return _list(await self.client.get(f"/addresses/user/{user_id}"), Address)

    async def default_for(self, user_id: int) -> Optional[Address]:
        data = await self.client.get(f"/addresses/user/{user_id}/default")
        return parse(Address, data) if data else None

    async def set_default(self, address_id: int) -> Address:
        return parse(Address, await self.client.patch(f"/addresses/{address_id}/set-default"))

    async def update(self, address_id: int, payload: Dict[str, Any]) -> Address:
        return parse(Address, await self.client.put(f"/addresses/{address_id}", json=payload))

    async def delete(self, address_id: int) -> None:
        await self.client.delete(f"/addresses/{address_id}")


class UsersApi(Resource):

    async def get(self, user_id: int) -> User:
        return parse(User, await self.client.get(f"/users/{user_id}"))

    async def list_all(self) -> List[User]:
        return _list(await self.client.get("/users"), User)

    async def by_email(self, email: str) -> User:
        return parse(User, await self.client.get(f"/users/email/{quote(email, safe='')}"))

    async def update(self, user_id: int, payload: Dict[str, Any]) -> User:
        return parse(User, await self.client.put(f"/users/{user_id}", json=payload))

    async def delete(self, user_id: int) -> None:
        await self.client.delete(f"/users/{user_id}")


class AuthApi(Resource):

    async def login(self, username: str, password: str) -> LoginResult:
        data = await self.client.post("/auth/login", json={"username": username, "password": password})
        return parse(LoginResult, data)

    async def register(self, payload: Dict[str, Any]) -> User:
        return parse(User, await self.client.post("/auth/register", json=payload))

    async def change_password(self, user_id: int, current_password: str, new_password: str) -> None:
        await self.client.put(
            f"/auth/{user_id}/change-password",
            json={"currentPassword": current_password, "newPassword": new_password},
        )

    async def email_available(self, email: str) -> bool:
        return _available(await self.client.get("/auth/check-email", params={"email": email}))

    async def username_available(self, username: str) -> bool:
        return _available(await self.client.get("/auth/check-username", params={"username": username}))


class AuditLogsApi(Resource):
    """``/audit-logs`` endpoints; one per supported filter combination"""

    async def all(self, query: ListQuery) -> Page[SecurityAuditLog]:
        params = query.page_params(direction_key="sortDir")
        params["sortDir"] = params["sortDir"].lower()
        return _page(await self.client.get("/audit-logs", params=params), SecurityAuditLog)

    async def by_user(self, username: str, page: int, size: int) -> Page[SecurityAuditLog]:
        path = f"/audit-logs/user/{quote(username, safe='')}"
        data = await self.client.get(path, params={"page": page, "size": size})
        return _page(data, SecurityAuditLog)

    async def by_event_type(self, event_type: SecurityEventType, page: int, size: int) -> Page[SecurityAuditLog]:
        data = await self.client.get(
            f"/audit-logs/event-type/{event_type.value}",
            params={"page": page, "size": size},
        )
        return _page(data, SecurityAuditLog)

    async def by_date_range(self, start: datetime, end: datetime, page: int, size: int) -> Page[SecurityAuditLog]:
        params = {"startTime": _iso(start), "endTime": _iso(end), "page": page, "size": size}
        return _page(await self.client.get("/audit-logs/date-range", params=params), SecurityAuditLog)

    async def by_user_and_event_type(
        self,
        username: str,
        event_type: SecurityEventType,
        page: int,
        size: int,
    ) -> Page[SecurityAuditLog]:
        params = {"username": username, "eventType": event_type.value, "page": page, "size": size}
        return _page(await self.client.get("/audit-logs/filter", params=params), SecurityAuditLog)

    async def recent_failed_logins(self, username: str, minutes: int = 60) -> Any:
        path = f"/audit-logs/failed-logins/{quote(username, safe='')}"
        return await self.client.get(path, params={"minutes": minutes})

    async def count(self, event_type: SecurityEventType, start: datetime, end: datetime) -> int:
        params = {"eventType": event_type.value, "startTime": _iso(start), "endTime": _iso(end)}
        return int(await self.client.get("/audit-logs/count", params=params) or 0)


class ShopJoyApi:
    """All REST resources for one session"""

    def __init__(self, client: RestClient):
        self.client = client
        self.orders = OrdersApi(client)
        self.products = ProductsApi(client)
        self.categories = CategoriesApi(client)
        self.inventory = InventoryApi(client)
        self.reviews = ReviewsApi(client)
        self.cart = CartApi(client)
        self.addresses = AddressesApi(client)
        self.users = UsersApi(client)
        self.auth = AuthApi(client)
        self.audit_logs = AuditLogsApi(client)
