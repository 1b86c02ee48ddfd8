"""
Catalog Services

Product browsing for customers and product/category administration. Listing
goes through GraphQL by default (cached per query); writes go through REST
and drop the cached catalog so the next listing is fresh.
"""

from typing import Any, Dict, List, Optional

import structlog

from storefront.clients.documents import GET_CATEGORIES, GET_PRODUCTS
from storefront.clients.graphql import GraphQLClient
from storefront.clients.resources import CategoriesApi, InventoryApi, ProductsApi, ReviewsApi
from storefront.clients.rest import parse, parsing
from storefront.domain.listing import ListQuery, ProductFilter, product_query
from storefront.domain.models import Category, Page, Product
from storefront.errors import ApiError, ValidationFailed
from storefront.services.mutations import ListState, load_into, mutate_and_reconcile

logger = structlog.get_logger(__name__)

_CATALOG_FIELDS = ("products", "categories", "lowStockProducts")


class CatalogService:

    def __init__(
        self,
        products_api: ProductsApi,
        categories_api: CategoriesApi,
        graphql: Optional[GraphQLClient] = None,
        reviews_api: Optional[ReviewsApi] = None,
        inventory_api: Optional[InventoryApi] = None,
    ):
        self.products_api = products_api
        self.categories_api = categories_api
        self.graphql = graphql
        self.reviews_api = reviews_api
        self.inventory_api = inventory_api

    # ===== LISTING =====

    def new_state(self, query: Optional[ListQuery[ProductFilter]] = None) -> ListState[Product]:
        return ListState(query=query or product_query())

    async def fetch_page(self, query: ListQuery[ProductFilter]) -> Page[Product]:
        if self.graphql is not None:
            variables = {
                "filter": query.filters.to_params() or None,
                "page": query.page,
                "size": query.size,
                "sortBy": query.sort_by,
                "sortDirection": query.sort_direction.value,
            }
            data = await self.graphql.query(GET_PRODUCTS, variables)
            with parsing("Page[Product]"):
                return Page.from_graphql(data.get("products") or {}, "products", Product)

        filters = query.filters
        if filters.search_term and filters.model_dump(exclude={"search_term"}, exclude_none=True) == {}:
            return await self.products_api.search_paginated(filters.search_term, query)
        if not filters.is_empty:
            return await self.products_api.filter(query)
        return await self.products_api.paginated(query)

    async def browse(
        self,
        state: ListState[Product],
        query: Optional[ListQuery[ProductFilter]] = None,
    ) -> ListState[Product]:
        return await load_into(state, self.fetch_page, query)

    async def categories(self) -> List[Category]:
        if self.graphql is not None:
            data = await self.graphql.query(GET_CATEGORIES)
            return [parse(Category, c) for c in data.get("categories") or []]
        return await self.categories_api.list_all()

    async def product_detail(self, product_id: int) -> Dict[str, Any]:
        """Product with its reviews, average rating and live stock"""
        product = await self.products_api.get(product_id)
        detail: Dict[str, Any] = {"product": product.model_dump(mode="json", by_alias=True)}
        if self.reviews_api is not None:
            reviews = await self.reviews_api.by_product(product_id)
            detail["reviews"] = [r.model_dump(mode="json", by_alias=True) for r in reviews]
            detail["averageRating"] = await self.reviews_api.average_rating(product_id)
        if self.inventory_api is not None:
            try:
                inventory = await self.inventory_api.get(product_id)
                detail["availableQuantity"] = inventory.available_quantity
                detail["inStock"] = not inventory.is_out_of_stock
            except ApiError as e:
                # Detail still renders without stock figures
                logger.info("Stock lookup failed", product_id=product_id, category=e.category.value)
                detail["availableQuantity"] = None
        return detail

    async def new_arrivals(self, limit: int = 8) -> List[Product]:
        return [p for p in await self.products_api.new_arrivals(limit) if p.is_active is not False]

    # ===== ADMINISTRATION =====

    async def _invalidate(self) -> None:
        if self.graphql is not None:
            await self.graphql.invalidate(*_CATALOG_FIELDS)

    async def create_product(self, payload: Dict[str, Any]) -> Product:
        if not str(payload.get("productName") or "").strip():
            raise ValidationFailed("Product name is required", {"productName": "Product name is required"})
        product = await self.products_api.create(payload)
        await self._invalidate()
        return product

    async def update_product(self, product_id: int, payload: Dict[str, Any]) -> Product:
        product = await self.products_api.update(product_id, payload)
        await self._invalidate()
        return product

    async def set_active(self, state: ListState[Product], product_id: int, active: bool) -> Product:
        """Toggle a product's visibility with an optimistic row update"""
        def match(p: Product) -> bool:
            return p.id == product_id

        original = next((p for p in state.items if p.id == product_id), None)
        holder: Dict[str, Product] = {}

        async def mutation() -> Product:
            if active:
                return await self.products_api.activate(product_id)
            return await self.products_api.deactivate(product_id)

        async def refetch(result: Product) -> None:
            await self._invalidate()
            state.replace_item(match, result)
            holder["product"] = result

        await mutate_and_reconcile(
            mutation=mutation,
            apply_optimistic=(
                (lambda: state.replace_item(match, original.model_copy(update={"is_active": active})))
                if original is not None else None
            ),
            revert=(lambda: state.replace_item(match, original)) if original is not None else None,
            refetch=refetch,
            label="product.activate" if active else "product.deactivate",
        )
        return holder["product"]

    async def update_price(self, product_id: int, new_price) -> Product:
        product = await self.products_api.update_price(product_id, new_price)
        await self._invalidate()
        return product

    async def delete_product(self, product_id: int) -> None:
        await self.products_api.delete(product_id)
        await self._invalidate()

    async def create_category(self, payload: Dict[str, Any]) -> Category:
        if not str(payload.get("categoryName") or "").strip():
            raise ValidationFailed("Category name is required", {"categoryName": "Category name is required"})
        category = await self.categories_api.create(payload)
        await self._invalidate()
        return category

    async def update_category(self, category_id: int, payload: Dict[str, Any]) -> Category:
        category = await self.categories_api.update(category_id, payload)
        await self._invalidate()
        return category

    async def delete_category(self, category_id: int) -> None:
        await self.categories_api.delete(category_id)
        await self._invalidate()
