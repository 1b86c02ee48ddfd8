"""
Unit Tests - Catalog, Inventory and Account Services
"""
import json
from decimal import Decimal

import pytest

from storefront.cache import CacheManager
from storefront.clients.graphql import GraphQLClient
from storefront.domain.listing import ProductFilter, product_query
from storefront.domain.models import Inventory
from storefront.errors import ApiError, ValidationFailed
from storefront.services.admin import AccountService, UserAdminService
from storefront.services.catalog import CatalogService
from storefront.services.inventory import InventoryService, check_adjustment


def product(product_id: int, name: str = "Desk Lamp", active: bool = True):
    return {"id": product_id, "productName": name, "price": "19.99", "isActive": active, "stockQuantity": 12}


@pytest.fixture
def graphql(test_settings, http_client, memory_cache):
    cache = CacheManager("graphql", default_ttl=300, backend=memory_cache)
    return GraphQLClient(http_client, url=test_settings.backend.graphql_url, token="admin-token", cache=cache)


@pytest.fixture
def rest_catalog(api):
    return CatalogService(api.products, api.categories, reviews_api=api.reviews, inventory_api=api.inventory)


class TestCatalogListing:
    """Tests for picking the product listing endpoint"""

    async def test_unfiltered(self, backend, rest_catalog, spring_page):
        backend.on("GET", "/products/paginated", data=spring_page([product(1)]))

        state = await rest_catalog.browse(rest_catalog.new_state())

        assert state.items[0].product_name == "Desk Lamp"

    async def test_search_term_only(self, backend, rest_catalog, spring_page):
        backend.on("GET", "/products/search/paginated", data=spring_page([]))

        await rest_catalog.browse(rest_catalog.new_state(product_query(filters=ProductFilter(search_term="lamp"))))

        assert backend.calls("GET", "/products/search/paginated")[0].url.params["term"] == "lamp"

    async def test_filters(self, backend, rest_catalog, spring_page):
        backend.on("GET", "/products/filter", data=spring_page([]))
        query = product_query(filters=ProductFilter(search_term="lamp", category_id=2, is_active=True))

        await rest_catalog.browse(rest_catalog.new_state(query))

        params = backend.calls("GET", "/products/filter")[0].url.params
        assert params["searchTerm"] == "lamp"
        assert params["categoryId"] == "2"
        assert params["isActive"] == "true"

    async def test_graphql_listing_is_cached(self, backend, api, graphql):
        page_info = {"page": 0, "size": 10, "totalElements": 1, "totalPages": 1}
        backend.on("POST", "/graphql", body={"data": {"products": {"products": [product(1)], "pageInfo": page_info}}})
        catalog = CatalogService(api.products, api.categories, graphql)

        await catalog.browse(catalog.new_state())
        state = await catalog.browse(catalog.new_state())

        assert state.items[0].id == 1
        assert len(backend.calls("POST", "/graphql")) == 1

    async def test_write_invalidates_graphql_listing(self, backend, api, graphql):
        page_info = {"page": 0, "size": 10, "totalElements": 1, "totalPages": 1}
        backend.on("POST", "/graphql", body={"data": {"products": {"products": [product(1)], "pageInfo": page_info}}})
        backend.on("PATCH", "/products/1/price", data=dict(product(1), price="17.50"))
        catalog = CatalogService(api.products, api.categories, graphql)

        await catalog.browse(catalog.new_state())
        await catalog.update_price(1, Decimal("17.50"))
        await catalog.browse(catalog.new_state())

        assert len(backend.calls("POST", "/graphql")) == 2
        assert backend.calls("PATCH", "/products/1/price")[0].url.params["newPrice"] == "17.50"

    async def test_product_detail_survives_stock_failure(self, backend, rest_catalog):
        backend.on("GET", "/products/1", data=product(1))
        backend.on("GET", "/reviews/product/1", data=[{"reviewId": 5, "productId": 1, "rating": 4, "title": "Nice"}])
        backend.on("GET", "/reviews/product/1/average-rating", data=4.0)
        backend.on("GET", "/inventory/product/1", status=500, body={"message": "boom"})

        detail = await rest_catalog.product_detail(1)

        assert detail["product"]["productName"] == "Desk Lamp"
        assert detail["averageRating"] == 4.0
        assert detail["availableQuantity"] is None


class TestCatalogAdmin:
    """Tests for product administration"""

    async def test_create_requires_name(self, backend, rest_catalog):
        with pytest.raises(ValidationFailed) as exc_info:
            await rest_catalog.create_product({"productName": "  ", "price": "1.00"})

        assert "productName" in exc_info.value.field_errors
        assert backend.requests == []

    async def test_deactivate_updates_row(self, backend, rest_catalog, spring_page):
        backend.on("GET", "/products/paginated", data=spring_page([product(1), product(2, "Mug")]))
        backend.on("PATCH", "/products/2/deactivate", data=product(2, "Mug", active=False))
        state = await rest_catalog.browse(rest_catalog.new_state())

        await rest_catalog.set_active(state, 2, False)

        assert [p.is_active for p in state.items] == [True, False]

    async def test_failed_deactivate_reverts(self, backend, rest_catalog, spring_page):
        backend.on("GET", "/products/paginated", data=spring_page([product(1)]))
        backend.on("PATCH", "/products/1/deactivate", status=404, body={"message": "Product not found"})
        state = await rest_catalog.browse(rest_catalog.new_state())

        with pytest.raises(ApiError):
            await rest_catalog.set_active(state, 1, False)

        assert state.items[0].is_active


class TestInventory:
    """Tests for stock adjustments"""

    RECORD = Inventory(product_id=3, stock_quantity=10, reserved_quantity=4)

    @pytest.mark.parametrize("operation,quantity,field", [
        ("restock", 1, "operation"),
        ("add", 0, "quantity"),
        ("remove", 7, "quantity"),
        ("reserve", 7, "quantity"),
        ("release", 5, "quantity"),
    ])
    def test_rejected_adjustments(self, operation, quantity, field):
        with pytest.raises(ValidationFailed) as exc_info:
            check_adjustment(self.RECORD, operation, quantity)

        assert field in exc_info.value.field_errors

    @pytest.mark.parametrize("operation,quantity", [("add", 100), ("remove", 6), ("reserve", 6), ("release", 4)])
    def test_accepted_adjustments(self, operation, quantity):
        check_adjustment(self.RECORD, operation, quantity)

    async def test_adjust(self, backend, api):
        backend.on("GET", "/inventory/product/3", data={"productId": 3, "stockQuantity": 10, "reservedQuantity": 4})
        backend.on("PATCH", "/inventory/product/3/release", data={"productId": 3, "stockQuantity": 10, "reservedQuantity": 1})

        record = await InventoryService(api.inventory).adjust(3, "release", 3)

        assert record.available_quantity == 9

    async def test_stock_not_below_reserved(self, backend, api):
        backend.on("GET", "/inventory/product/3", data={"productId": 3, "stockQuantity": 10, "reservedQuantity": 4})

        with pytest.raises(ValidationFailed):
            await InventoryService(api.inventory).set_stock(3, 3)

        assert backend.calls("PUT", "/inventory/product/3") == []


class TestAccounts:
    """Tests for user administration and the customer account"""

    async def test_admin_cannot_delete_self(self, backend, api):
        with pytest.raises(ValidationFailed):
            await UserAdminService(api.users).delete(1, acting_user_id=1)

        assert backend.requests == []

    async def test_user_filters(self, backend, api):
        backend.on("GET", "/users", data=[
            {"id": 1, "username": "root", "userType": "ADMIN"},
            {"id": 2, "username": "alice", "email": "alice@example.com", "userType": "CUSTOMER"},
            {"id": 3, "username": "bob", "userType": "customer"},
        ])

        users = await UserAdminService(api.users).list(role="customer", search="ALICE")

        assert [u.id for u in users] == [2]

    async def test_password_rules(self, backend, api):
        account = AccountService(7, api.users, api.addresses, api.auth)

        with pytest.raises(ValidationFailed):
            await account.change_password("old-password", "short")
        with pytest.raises(ValidationFailed):
            await account.change_password("same-password", "same-password")

        assert backend.requests == []

    async def test_change_password(self, backend, api):
        backend.on("PUT", "/auth/7/change-password", data=None)

        await AccountService(7, api.users, api.addresses, api.auth).change_password("old-password", "new-password")

        assert json.loads(backend.calls("PUT", "/auth/7/change-password")[0].content) == {
            "currentPassword": "old-password",
            "newPassword": "new-password",
        }

    async def test_address_requires_street_and_city(self, api):
        account = AccountService(7, api.users, api.addresses, api.auth)

        with pytest.raises(ValidationFailed) as exc_info:
            await account.add_address({"streetAddress": "", "country": "USA"})

        assert set(exc_info.value.field_errors) == {"streetAddress", "city"}

    async def test_add_address_refetches(self, backend, api):
        address = {"addressId": 1, "userId": 7, "streetAddress": "1 Main St", "city": "Springfield"}
        backend.on("POST", "/addresses", data=address)
        backend.on("GET", "/addresses/user/7", data=[address])

        addresses = await AccountService(7, api.users, api.addresses, api.auth).add_address(
            {"streetAddress": "1 Main St", "city": "Springfield"}
        )

        assert json.loads(backend.calls("POST", "/addresses")[0].content)["userId"] == 7
        assert addresses[0].city == "Springfield"
