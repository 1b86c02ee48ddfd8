"""
Catalog Routes

Customer product browsing (``/customer/products``) and the admin product,
category and inventory screens (``/admin/products``, ``/admin/categories``,
``/admin/inventory``).
"""

from decimal import Decimal
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, Query
from pydantic import BaseModel, Field

from storefront.domain.listing import ListQuery, ProductFilter, SortDirection, product_query
from storefront.services.catalog import CatalogService
from storefront.services.inventory import InventoryService
from storefront.services.mutations import ListState
from storefront.web.dependencies import (
    admin_session,
    customer_session,
    get_catalog,
    get_inventory,
    submit_form,
)

admin_router = APIRouter(dependencies=[Depends(admin_session)])
customer_router = APIRouter(dependencies=[Depends(customer_session)])


def product_list_query(
    search: Optional[str] = Query(default=None),
    category_id: Optional[int] = Query(default=None, alias="categoryId"),
    min_price: Optional[Decimal] = Query(default=None, alias="minPrice"),
    max_price: Optional[Decimal] = Query(default=None, alias="maxPrice"),
    is_active: Optional[bool] = Query(default=None, alias="isActive"),
    brand: Optional[str] = Query(default=None),
    in_stock: Optional[bool] = Query(default=None, alias="inStock"),
    page: int = Query(default=0, ge=0),
    size: int = Query(default=12, ge=1, le=100),
    sort_by: str = Query(default="id", alias="sortBy"),
    sort_direction: SortDirection = Query(default=SortDirection.ASC, alias="sortDirection"),
) -> ListQuery[ProductFilter]:
    filters = ProductFilter(
        search_term=search,
        category_id=category_id,
        min_price=min_price,
        max_price=max_price,
        is_active=is_active,
        brand=brand,
        in_stock=in_stock,
    )
    return product_query(filters=filters, page=page, size=size, sort_by=sort_by, sort_direction=sort_direction)


def catalog_view(state: ListState) -> Dict[str, Any]:
    controls = state.controls
    return {
        "products": [
            dict(p.model_dump(mode="json", by_alias=True), lowStock=p.is_low_stock)
            for p in state.items
        ],
        "query": state.query.model_dump(mode="json"),
        "pagination": controls.model_dump() if controls else None,
        "error": state.error.to_notification() if state.error else None,
        "retryable": state.retryable,
    }


# =============================================================================
# CUSTOMER
# =============================================================================

@customer_router.get("/products")
async def browse_products(
    query: ListQuery[ProductFilter] = Depends(product_list_query),
    service: CatalogService = Depends(get_catalog),
) -> Dict[str, Any]:
    # Customers only ever see active products
    query = query.model_copy(update={"filters": query.filters.model_copy(update={"is_active": True})})
    state = await service.browse(service.new_state(query))
    return catalog_view(state)


@customer_router.get("/products/new-arrivals")
async def new_arrivals(
    limit: int = Query(default=8, ge=1, le=50),
    service: CatalogService = Depends(get_catalog),
) -> List[Dict[str, Any]]:
    return [p.model_dump(mode="json", by_alias=True) for p in await service.new_arrivals(limit)]


@customer_router.get("/products/{product_id}")
async def product_detail(product_id: int, service: CatalogService = Depends(get_catalog)) -> Dict[str, Any]:
    return await service.product_detail(product_id)


@customer_router.get("/categories")
async def customer_categories(service: CatalogService = Depends(get_catalog)) -> List[Dict[str, Any]]:
    return [c.model_dump(mode="json", by_alias=True) for c in await service.categories()]


# =============================================================================
# ADMIN PRODUCTS
# =============================================================================

class ProductPayload(BaseModel):
    product_name: str = Field(alias="productName")
    description: Optional[str] = None
    price: Decimal = Field(ge=0)
    cost_price: Optional[Decimal] = Field(default=None, alias="costPrice")
    category_id: Optional[int] = Field(default=None, alias="categoryId")
    sku: Optional[str] = None
    brand: Optional[str] = None
    image_url: Optional[str] = Field(default=None, alias="imageUrl")
    is_active: bool = Field(default=True, alias="isActive")

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class CategoryPayload(BaseModel):
    category_name: str = Field(alias="categoryName")
    description: Optional[str] = None
    parent_category_id: Optional[int] = Field(default=None, alias="parentCategoryId")

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


@admin_router.get("/products")
async def admin_products(
    query: ListQuery[ProductFilter] = Depends(product_list_query),
    service: CatalogService = Depends(get_catalog),
) -> Dict[str, Any]:
    return catalog_view(await service.browse(service.new_state(query)))


@admin_router.post("/products")
async def create_product(body: ProductPayload, service: CatalogService = Depends(get_catalog)) -> Dict[str, Any]:
    product = await submit_form(body.to_wire(), service.create_product(body.to_wire()))
    return product.model_dump(mode="json", by_alias=True)


@admin_router.put("/products/{product_id}")
async def update_product(
    product_id: int,
    body: ProductPayload,
    service: CatalogService = Depends(get_catalog),
) -> Dict[str, Any]:
    product = await submit_form(body.to_wire(), service.update_product(product_id, body.to_wire()))
    return product.model_dump(mode="json", by_alias=True)


@admin_router.patch("/products/{product_id}/active")
async def set_product_active(
    product_id: int,
    active: bool = Body(..., embed=True),
    query: ListQuery[ProductFilter] = Depends(product_list_query),
    service: CatalogService = Depends(get_catalog),
) -> Dict[str, Any]:
    state = await service.browse(service.new_state(query))
    await service.set_active(state, product_id, active)
    return catalog_view(state)


@admin_router.patch("/products/{product_id}/price")
async def update_price(
    product_id: int,
    new_price: Decimal = Query(..., alias="newPrice", ge=0),
    service: CatalogService = Depends(get_catalog),
) -> Dict[str, Any]:
    product = await service.update_price(product_id, new_price)
    return product.model_dump(mode="json", by_alias=True)


@admin_router.delete("/products/{product_id}")
async def delete_product(product_id: int, service: CatalogService = Depends(get_catalog)) -> Dict[str, Any]:
    await service.delete_product(product_id)
    return {"deleted": product_id}


# =============================================================================
# ADMIN CATEGORIES
# =============================================================================

@admin_router.get("/categories")
async def admin_categories(service: CatalogService = Depends(get_catalog)) -> List[Dict[str, Any]]:
    return [c.model_dump(mode="json", by_alias=True) for c in await service.categories()]


@admin_router.post("/categories")
async def create_category(body: CategoryPayload, service: CatalogService = Depends(get_catalog)) -> Dict[str, Any]:
    category = await submit_form(body.to_wire(), service.create_category(body.to_wire()))
    return category.model_dump(mode="json", by_alias=True)


@admin_router.put("/categories/{category_id}")
async def update_category(
    category_id: int,
    body: CategoryPayload,
    service: CatalogService = Depends(get_catalog),
) -> Dict[str, Any]:
    category = await submit_form(body.to_wire(), service.update_category(category_id, body.to_wire()))
    return category.model_dump(mode="json", by_alias=True)


@admin_router.delete("/categories/{category_id}")
async def delete_category(category_id: int, service: CatalogService = Depends(get_catalog)) -> Dict[str, Any]:
    await service.delete_category(category_id)
    return {"deleted": category_id}


# =============================================================================
# ADMIN INVENTORY
# =============================================================================

def _inventory_row(record) -> Dict[str, Any]:
    return dict(
        record.model_dump(mode="json", by_alias=True),
        availableQuantity=record.available_quantity,
        lowStock=record.is_low_stock,
        outOfStock=record.is_out_of_stock,
    )


@admin_router.get("/inventory/low-stock")
async def low_stock(service: InventoryService = Depends(get_inventory)) -> List[Dict[str, Any]]:
    return [_inventory_row(r) for r in await service.low_stock()]


@admin_router.get("/inventory/out-of-stock")
async def out_of_stock(service: InventoryService = Depends(get_inventory)) -> List[Dict[str, Any]]:
    return [_inventory_row(r) for r in await service.out_of_stock()]


@admin_router.get("/inventory/{product_id}")
async def get_inventory_record(product_id: int, service: InventoryService = Depends(get_inventory)) -> Dict[str, Any]:
    return _inventory_row(await service.get(product_id))


@admin_router.post("/inventory/{product_id}/{operation}")
async def adjust_stock(
    product_id: int,
    operation: str,
    quantity: int = Body(..., embed=True),
    service: InventoryService = Depends(get_inventory),
) -> Dict[str, Any]:
    """``operation`` is one of add, remove, reserve, release"""
    record = await submit_form({"quantity": quantity}, service.adjust(product_id, operation, quantity))
    return _inventory_row(record)


@admin_router.put("/inventory/{product_id}")
async def set_stock(
    product_id: int,
    stock_quantity: Optional[int] = Body(default=None, embed=True, alias="stockQuantity"),
    reorder_level: Optional[int] = Body(default=None, embed=True, alias="reorderLevel"),
    service: InventoryService = Depends(get_inventory),
) -> Dict[str, Any]:
    values = {"stockQuantity": stock_quantity, "reorderLevel": reorder_level}
    record = None
    if stock_quantity is not None:
        record = await submit_form(values, service.set_stock(product_id, stock_quantity))
    if reorder_level is not None:
        record = await submit_form(values, service.set_reorder_level(product_id, reorder_level))
    if record is None:
        record = await service.get(product_id)
    return _inventory_row(record)
