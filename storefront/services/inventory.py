"""
Inventory Service

Stock administration. Quantities are checked locally against the last known
record before the request is sent (stock never goes negative, reservations
never exceed stock); the backend re-checks and its answer wins.
"""

from typing import Dict, Iterable, List, Optional

import structlog

from storefront.clients.documents import GET_LOW_STOCK_PRODUCTS
from storefront.clients.graphql import GraphQLClient
from storefront.clients.resources import InventoryApi
from storefront.clients.rest import parse
from storefront.domain.models import Inventory
from storefront.errors import ValidationFailed

logger = structlog.get_logger(__name__)

ADJUSTMENTS = ("add", "remove", "reserve", "release")


def check_adjustment(record: Inventory, operation: str, quantity: int) -> None:
    """
    Raises:
        ValidationFailed: unknown operation, non-positive quantity, or a
            change that would break the stock invariants
    """
    if operation not in ADJUSTMENTS:
        raise ValidationFailed(f"Unknown stock operation: {operation}", {"operation": "Unknown operation"})
    if quantity < 1:
        raise ValidationFailed("Quantity must be at least 1", {"quantity": "Quantity must be at least 1"})
    if operation == "remove" and quantity > record.available_quantity:
        raise ValidationFailed(
            "Cannot remove more than the available stock",
            {"quantity": f"Only {record.available_quantity} available"},
        )
    if operation == "reserve" and quantity > record.available_quantity:
        raise ValidationFailed(
            "Cannot reserve more than the available stock",
            {"quantity": f"Only {record.available_quantity} available"},
        )
    if operation == "release" and quantity > record.reserved_quantity:
        raise ValidationFailed(
            "Cannot release more than is reserved",
            {"quantity": f"Only {record.reserved_quantity} reserved"},
        )


class InventoryService:

    def __init__(self, api: InventoryApi, graphql: Optional[GraphQLClient] = None):
        self.api = api
        self.graphql = graphql

    async def get(self, product_id: int) -> Inventory:
        return await self.api.get(product_id)

    async def for_products(self, product_ids: Iterable[int]) -> Dict[int, Inventory]:
        return {record.product_id: record for record in await self.api.batch(product_ids)}

    async def low_stock(self) -> List[Inventory]:
        if self.graphql is not None:
            data = await self.graphql.query(GET_LOW_STOCK_PRODUCTS)
            return [parse(Inventory, item) for item in data.get("lowStockProducts") or []]
        return await self.api.low_stock()

    async def out_of_stock(self) -> List[Inventory]:
        return await self.api.out_of_stock()

    async def adjust(self, product_id: int, operation: str, quantity: int) -> Inventory:
        """Add, remove, reserve or release stock"""
        current = await self.api.get(product_id)
        check_adjustment(current, operation, quantity)
        updated = await getattr(self.api, operation)(product_id, quantity)
        await self._invalidate()
        logger.info(
            "Stock adjusted",
            product_id=product_id,
            operation=operation,
            quantity=quantity,
            stock=updated.stock_quantity,
            reserved=updated.reserved_quantity,
        )
        return updated

    async def set_stock(self, product_id: int, new_quantity: int) -> Inventory:
        if new_quantity < 0:
            raise ValidationFailed("Stock cannot be negative", {"stockQuantity": "Stock cannot be negative"})
        current = await self.api.get(product_id)
        if new_quantity < current.reserved_quantity:
            raise ValidationFailed(
                "Stock cannot drop below the reserved quantity",
                {"stockQuantity": f"{current.reserved_quantity} units are reserved"},
            )
        updated = await self.api.update_stock(product_id, new_quantity)
        await self._invalidate()
        return updated

    async def set_reorder_level(self, product_id: int, reorder_level: int) -> Inventory:
        if reorder_level < 0:
            raise ValidationFailed("Reorder level cannot be negative", {"reorderLevel": "Must be 0 or more"})
        updated = await self.api.update_reorder_level(product_id, reorder_level)
        await self._invalidate()
        return updated

    async def _invalidate(self) -> None:
        if self.graphql is not None:
            await self.graphql.invalidate("lowStockProducts", "products")
