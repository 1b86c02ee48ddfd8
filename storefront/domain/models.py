"""
Domain Models

Typed schemas for everything the storefront receives from the ShopJoy
backend. Responses are validated here, at the client boundary, so views never
work with loosely-shaped dictionaries.

The backend speaks camelCase JSON; every model accepts either the camelCase
wire name or the snake_case attribute name. REST and GraphQL occasionally
disagree on field names (``id`` vs ``productId``, nested ``category``
objects), and the models absorb both shapes.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, Type, TypeVar

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


# =============================================================================
# ENUMERATIONS
# =============================================================================

class OrderStatus(str, Enum):
    """Order lifecycle stage"""
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class PaymentStatus(str, Enum):
    """Payment status, independent of order status"""
    PAID = "PAID"
    UNPAID = "UNPAID"
    PENDING = "PENDING"


class UserRole(str, Enum):
    """User role; compared case-insensitively"""
    ADMIN = "ADMIN"
    CUSTOMER = "CUSTOMER"

    @classmethod
    def parse(cls, value: Any) -> Optional["UserRole"]:
        """Parse a role string in any letter case, None when unrecognised"""
        if isinstance(value, UserRole):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().upper())
        except ValueError:
            return None


class AddressType(str, Enum):
    HOME = "HOME"
    WORK = "WORK"
    SHIPPING = "SHIPPING"
    BILLING = "BILLING"
    OTHER = "OTHER"


class SecurityEventType(str, Enum):
    """Security audit event types recorded by the backend"""
    LOGIN_SUCCESS = "LOGIN_SUCCESS"
    LOGIN_FAILURE = "LOGIN_FAILURE"
    REGISTRATION = "REGISTRATION"
    LOGOUT = "LOGOUT"
    ACCESS_DENIED = "ACCESS_DENIED"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    TOKEN_INVALID = "TOKEN_INVALID"
    PASSWORD_CHANGE = "PASSWORD_CHANGE"
    OAUTH2_LOGIN_SUCCESS = "OAUTH2_LOGIN_SUCCESS"
    OAUTH2_LOGIN_FAILURE = "OAUTH2_LOGIN_FAILURE"


def _upper(value: Any) -> Any:
    return value.strip().upper() if isinstance(value, str) else value


def _flatten(data: Any, key: str, mapping: Dict[str, str]) -> Any:
    """Lift fields of a nested GraphQL object onto the parent payload"""
    if not isinstance(data, dict) or not isinstance(data.get(key), dict):
        return data
    nested = data[key]
    flat = {k: v for k, v in data.items() if k != key}
    for source, target in mapping.items():
        if source in nested and target not in flat:
            flat[target] = nested[source]
    return flat


class ApiModel(BaseModel):
    """Base model for backend payloads"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


# =============================================================================
# ORDERS
# =============================================================================

class OrderItem(ApiModel):
    """
    Order line item.

    ``product_name`` and ``unit_price`` are a snapshot taken when the order
    was placed; later product edits do not change them.
    """
    order_item_id: Optional[int] = None
    product_id: int
    product_name: Optional[str] = None
    quantity: int = Field(ge=1)
    unit_price: Decimal = Field(
        validation_alias=AliasChoices("unitPrice", "unit_price", "price"),
    )
    subtotal: Optional[Decimal] = None

    @model_validator(mode="after")
    def fill_subtotal(self) -> "OrderItem":
        if self.subtotal is None:
            self.subtotal = self.unit_price * self.quantity
        return self


class Order(ApiModel):
    """Customer order"""
    order_id: Optional[int] = Field(
        default=None,
        validation_alias=AliasChoices("orderId", "order_id", "id"),
    )
    user_id: Optional[int] = None
    user_name: Optional[str] = None
    order_date: Optional[datetime] = None
    total_amount: Decimal = Decimal("0")
    status: OrderStatus = OrderStatus.PENDING
    payment_status: Optional[PaymentStatus] = None
    shipping_address: Optional[str] = None
    payment_method: Optional[str] = None
    notes: Optional[str] = None
    order_items: List[OrderItem] = Field(default_factory=list)
    created_at: Optional[datetime] = None

    @field_validator("status", "payment_status", mode="before")
    @classmethod
    def normalize_status(cls, v: Any) -> Any:
        return _upper(v)

    @model_validator(mode="before")
    @classmethod
    def flatten_user(cls, data: Any) -> Any:
        if isinstance(data, dict) and isinstance(data.get("user"), dict):
            user = data["user"]
            data = {k: v for k, v in data.items() if k != "user"}
            if "userName" not in data:
                names = [user.get("firstName"), user.get("lastName")]
                data["userName"] = " ".join(n for n in names if n) or user.get("username")
        return data

    @property
    def items_total(self) -> Decimal:
        """Sum of line-item subtotals"""
        return sum((item.subtotal for item in self.order_items), Decimal("0"))

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.order_items)


class OrderDraftItem(ApiModel):
    """Line item of an order being submitted"""
    product_id: int
    quantity: int = Field(ge=1)
    price: Decimal


class OrderDraft(ApiModel):
    """Order creation payload"""
    user_id: int
    order_items: List[OrderDraftItem]
    total_amount: Decimal
    shipping_address: Optional[str] = None
    payment_method: Optional[str] = None
    notes: Optional[str] = None


class OrderUpdate(ApiModel):
    """Editable order contents; only honoured while an order is PENDING"""
    shipping_address: Optional[str] = None
    payment_method: Optional[str] = None
    notes: Optional[str] = None
    order_items: Optional[List[OrderDraftItem]] = None


# =============================================================================
# CATALOG
# =============================================================================

class Category(ApiModel):
    category_id: Optional[int] = Field(
        default=None,
        validation_alias=AliasChoices("categoryId", "category_id", "id"),
    )
    category_name: str
    description: Optional[str] = None
    parent_category_id: Optional[int] = None
    created_at: Optional[datetime] = None


class Product(ApiModel):
    """Catalog product with its denormalized stock view"""
    id: Optional[int] = Field(
        default=None,
        validation_alias=AliasChoices("id", "productId", "product_id"),
    )
    product_name: str = Field(
        validation_alias=AliasChoices("productName", "product_name", "name"),
    )
    description: Optional[str] = None
    price: Decimal = Decimal("0")
    cost_price: Optional[Decimal] = None
    category_id: Optional[int] = None
    category_name: Optional[str] = None
    sku: Optional[str] = None
    brand: Optional[str] = None
    image_url: Optional[str] = None
    is_active: bool = Field(
        default=True,
        validation_alias=AliasChoices("isActive", "is_active", "active"),
    )
    stock_quantity: int = 0
    reorder_level: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @model_validator(mode="before")
    @classmethod
    def flatten_category(cls, data: Any) -> Any:
        return _flatten(data, "category", {"categoryId": "categoryId", "categoryName": "categoryName"})

    @property
    def is_low_stock(self) -> bool:
        return self.stock_quantity <= self.reorder_level


class Inventory(ApiModel):
    """
    Inventory record, one-to-one with a product.

    Stock is never negative and reserved stock never exceeds it.
    """
    id: Optional[int] = Field(
        default=None,
        validation_alias=AliasChoices("id", "inventoryId", "inventory_id"),
    )
    product_id: int
    product_name: Optional[str] = None
    stock_quantity: int = Field(
        default=0,
        ge=0,
        validation_alias=AliasChoices("stockQuantity", "stock_quantity", "quantityInStock"),
    )
    reserved_quantity: int = Field(default=0, ge=0)
    reorder_level: int = 10
    last_restocked: Optional[datetime] = None

    @model_validator(mode="before")
    @classmethod
    def flatten_product(cls, data: Any) -> Any:
        return _flatten(data, "product", {"productId": "productId", "productName": "productName"})

    @model_validator(mode="after")
    def check_reserved(self) -> "Inventory":
        if self.reserved_quantity > self.stock_quantity:
            raise ValueError("reserved quantity cannot exceed stock quantity")
        return self

    @property
    def available_quantity(self) -> int:
        return self.stock_quantity - self.reserved_quantity

    @property
    def is_low_stock(self) -> bool:
        return self.stock_quantity <= self.reorder_level

    @property
    def is_out_of_stock(self) -> bool:
        return self.stock_quantity == 0


class Review(ApiModel):
    review_id: Optional[int] = Field(
        default=None,
        validation_alias=AliasChoices("reviewId", "review_id", "id"),
    )
    user_id: Optional[int] = None
    user_name: Optional[str] = None
    product_id: int
    product_name: Optional[str] = None
    rating: int = Field(ge=1, le=5)
    title: Optional[str] = None
    comment: Optional[str] = None
    helpful_count: int = Field(
        default=0,
        validation_alias=AliasChoices("helpfulCount", "helpful_count", "helpfulVotes"),
    )
    created_at: Optional[datetime] = None


# =============================================================================
# CUSTOMERS
# =============================================================================

class CartItem(ApiModel):
    """Cart line; ephemeral, cleared by a successful checkout"""
    cart_item_id: Optional[int] = Field(
        default=None,
        validation_alias=AliasChoices("cartItemId", "cart_item_id", "id"),
    )
    user_id: Optional[int] = None
    product_id: int
    product_name: Optional[str] = None
    product_price: Decimal = Field(
        validation_alias=AliasChoices("productPrice", "product_price", "price"),
    )
    quantity: int = Field(ge=1)
    created_at: Optional[datetime] = Field(
        default=None,
        validation_alias=AliasChoices("createdAt", "created_at", "addedAt"),
    )

    @model_validator(mode="before")
    @classmethod
    def flatten_product(cls, data: Any) -> Any:
        return _flatten(
            data,
            "product",
            {"productId": "productId", "productName": "productName", "price": "productPrice"},
        )

    @property
    def subtotal(self) -> Decimal:
        return self.product_price * self.quantity


class User(ApiModel):
    id: Optional[int] = Field(
        default=None,
        validation_alias=AliasChoices("id", "userId", "user_id"),
    )
    username: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    user_type: Optional[UserRole] = Field(
        default=None,
        validation_alias=AliasChoices("userType", "user_type", "role"),
    )
    created_at: Optional[datetime] = None

    @field_validator("user_type", mode="before")
    @classmethod
    def parse_role(cls, v: Any) -> Optional[UserRole]:
        return UserRole.parse(v)


class Address(ApiModel):
    address_id: Optional[int] = Field(
        default=None,
        validation_alias=AliasChoices("addressId", "address_id", "id"),
    )
    user_id: Optional[int] = None
    address_type: AddressType = AddressType.HOME
    street_address: str
    city: str
    state: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    is_default: bool = Field(
        default=False,
        validation_alias=AliasChoices("isDefault", "is_default", "default"),
    )
    created_at: Optional[datetime] = None

    @field_validator("address_type", mode="before")
    @classmethod
    def normalize_type(cls, v: Any) -> Any:
        return _upper(v)


class SecurityAuditLog(ApiModel):
    id: int
    username: Optional[str] = None
    event_type: SecurityEventType
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    timestamp: datetime
    details: Optional[str] = None
    success: Optional[bool] = None


class LoginResult(ApiModel):
    token: str
    token_type: str = "Bearer"
    expires_in: Optional[int] = None


# =============================================================================
# PAGINATION
# =============================================================================

T = TypeVar("T", bound=BaseModel)


class Page(BaseModel, Generic[T]):
    """One page of a server-side listing"""
    items: List[T] = Field(default_factory=list)
    page: int = 0
    size: int = 0
    total_elements: int = 0
    total_pages: int = 0

    @classmethod
    def from_spring(cls, data: Dict[str, Any], item_type: Type[T]) -> "Page[T]":
        """Parse a REST page (``content``/``number``/``totalElements``...)"""
        return Page[item_type].model_validate({
            "items": data.get("content") or [],
            "page": data.get("number", data.get("page", 0)) or 0,
            "size": data.get("size", 0) or 0,
            "total_elements": data.get("totalElements", 0) or 0,
            "total_pages": data.get("totalPages", 0) or 0,
        })

    @classmethod
    def from_graphql(cls, data: Dict[str, Any], key: str, item_type: Type[T]) -> "Page[T]":
        """Parse a GraphQL connection (``{<key>: [...], pageInfo: {...}}``)"""
        info = data.get("pageInfo") or {}
        return Page[item_type].model_validate({
            "items": data.get(key) or [],
            "page": info.get("page", 0) or 0,
            "size": info.get("size", 0) or 0,
            "total_elements": info.get("totalElements", 0) or 0,
            "total_pages": info.get("totalPages", 0) or 0,
        })

    @classmethod
    def from_list(cls, items: List[Any], item_type: Type[T]) -> "Page[T]":
        """Wrap an unpaginated list as a single page"""
        return Page[item_type].model_validate({
            "items": items,
            "page": 0,
            "size": len(items),
            "total_elements": len(items),
            "total_pages": 1 if items else 0,
        })
