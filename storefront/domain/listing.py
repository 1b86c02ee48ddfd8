"""
Listing Contract

Every list screen (orders, products, audit logs) follows one contract: an
optional filter object, a zero-based page index, a page size, a sort field
and a sort direction. Changing a filter or the sort always returns to page 0,
so a narrower result set is never asked for a page it does not have.

Queries are immutable; every change returns a new query.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

from storefront.domain.models import OrderStatus, Page, PaymentStatus, SecurityEventType


class SortDirection(str, Enum):
    ASC = "ASC"
    DESC = "DESC"


# =============================================================================
# FILTERS
# =============================================================================

class ListFilter(BaseModel):
    """Base filter; every field is optional and None means "not filtered" """

    model_config = ConfigDict(frozen=True)

    search_term: Optional[str] = None

    @field_validator("search_term", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @property
    def is_empty(self) -> bool:
        return not any(v is not None for v in self.model_dump().values())

    def to_params(self) -> Dict[str, Any]:
        """Non-null filter fields as camelCase query parameters"""
        params: Dict[str, Any] = {}
        for name, value in self.model_dump().items():
            if value is None:
                continue
            params[_camel(name)] = _param_value(value)
        return params


class OrderFilter(ListFilter):
    status: Optional[OrderStatus] = None
    payment_status: Optional[PaymentStatus] = None
    user_id: Optional[int] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    min_amount: Optional[Decimal] = None
    max_amount: Optional[Decimal] = None


class ProductFilter(ListFilter):
    category_id: Optional[int] = None
    min_price: Optional[Decimal] = None
    max_price: Optional[Decimal] = None
    is_active: Optional[bool] = None
    brand: Optional[str] = None
    in_stock: Optional[bool] = None
    min_stock: Optional[int] = None
    max_stock: Optional[int] = None


class AuditLogFilter(ListFilter):
    username: Optional[str] = None
    event_type: Optional[SecurityEventType] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    @field_validator("username", mode="before")
    @classmethod
    def blank_username(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("event_type", mode="before")
    @classmethod
    def blank_event_type(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def _param_value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, bool):
        return "true" if value else "false"
    return value


# =============================================================================
# QUERY
# =============================================================================

F = TypeVar("F", bound=ListFilter)


class ListQuery(BaseModel, Generic[F]):
    """Filter + page + sort for one list screen"""

    model_config = ConfigDict(frozen=True)

    filters: F
    page: int = Field(default=0, ge=0)
    size: int = Field(default=10, ge=1, le=100)
    sort_by: str = "id"
    sort_direction: SortDirection = SortDirection.ASC

    @field_validator("sort_direction", mode="before")
    @classmethod
    def upper_direction(cls, v: Any) -> Any:
        return v.upper() if isinstance(v, str) else v

    def with_filters(self, **changes: Any) -> "ListQuery[F]":
        """New query with filter fields changed and page reset to 0"""
        filters = self.filters.model_copy(update=changes)
        filters = type(self.filters).model_validate(filters.model_dump())
        return self.model_copy(update={"filters": filters, "page": 0})

    def clear_filters(self) -> "ListQuery[F]":
        return self.model_copy(update={"filters": type(self.filters)(), "page": 0})

    def with_sort(self, sort_by: str, direction: Optional[SortDirection] = None) -> "ListQuery[F]":
        """New query sorted by ``sort_by`` with page reset to 0"""
        direction = SortDirection(direction.upper()) if isinstance(direction, str) else direction
        return self.model_copy(update={
            "sort_by": sort_by,
            "sort_direction": direction or self.sort_direction,
            "page": 0,
        })

    def toggle_sort(self, sort_by: str) -> "ListQuery[F]":
        """Clicking the active sort column flips direction; another column sorts ascending"""
        if sort_by == self.sort_by:
            flipped = SortDirection.DESC if self.sort_direction == SortDirection.ASC else SortDirection.ASC
            return self.with_sort(sort_by, flipped)
        return self.with_sort(sort_by, SortDirection.ASC)

    def with_size(self, size: int) -> "ListQuery[F]":
        return self.model_copy(update={"size": size, "page": 0})

    def with_page(self, page: int) -> "ListQuery[F]":
        return self.model_copy(update={"page": max(0, page)})

    def next_page(self) -> "ListQuery[F]":
        return self.with_page(self.page + 1)

    def previous_page(self) -> "ListQuery[F]":
        return self.with_page(self.page - 1)

    def page_params(self, direction_key: str = "sortDirection") -> Dict[str, Any]:
        return {
            "page": self.page,
            "size": self.size,
            "sortBy": self.sort_by,
            direction_key: self.sort_direction.value,
        }

    def to_params(self) -> Dict[str, Any]:
        """Paging, sorting and filter fields as REST query parameters"""
        params = self.page_params()
        params.update(self.filters.to_params())
        return params


def order_query(**kwargs: Any) -> ListQuery[OrderFilter]:
    kwargs.setdefault("filters", OrderFilter())
    kwargs.setdefault("sort_by", "orderDate")
    kwargs.setdefault("sort_direction", SortDirection.DESC)
    return ListQuery[OrderFilter](**kwargs)


def product_query(**kwargs: Any) -> ListQuery[ProductFilter]:
    kwargs.setdefault("filters", ProductFilter())
    return ListQuery[ProductFilter](**kwargs)


def audit_log_query(**kwargs: Any) -> ListQuery[AuditLogFilter]:
    kwargs.setdefault("filters", AuditLogFilter())
    kwargs.setdefault("size", 20)
    kwargs.setdefault("sort_by", "timestamp")
    kwargs.setdefault("sort_direction", SortDirection.DESC)
    return ListQuery[AuditLogFilter](**kwargs)


# =============================================================================
# PAGE CONTROLS
# =============================================================================

class PageControls(BaseModel):
    """State of the previous/next controls under a list"""
    page: int
    size: int
    total_elements: int
    total_pages: int
    has_previous: bool
    has_next: bool

    @classmethod
    def from_page(cls, page: Page) -> "PageControls":
        last_index = page.total_pages - 1
        return cls(
            page=page.page,
            size=page.size,
            total_elements=page.total_elements,
            total_pages=page.total_pages,
            has_previous=page.page > 0,
            has_next=page.total_pages > 0 and page.page < last_index,
        )
