"""
Cart and Checkout

The cart is a list of quantity-bearing product references owned by the
server. Checkout snapshots it into an order: each line keeps the price seen
in the cart and the total is the exact Decimal sum of price x quantity.

The cart is cleared only after the order has been accepted. A failed order
(insufficient stock included) leaves every cart line where it was.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional

import structlog

from storefront.clients.resources import AddressesApi, CartApi, OrdersApi
from storefront.domain.models import CartItem, Order, OrderDraft, OrderDraftItem
from storefront.errors import ApiError, ClassifiedError, ValidationFailed

logger = structlog.get_logger(__name__)


@dataclass
class CartState:
    user_id: int
    items: List[CartItem] = field(default_factory=list)
    error: Optional[ClassifiedError] = None
    notifications: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def total(self) -> Decimal:
        return sum((item.subtotal for item in self.items), Decimal("0"))

    @property
    def count(self) -> int:
        return sum(item.quantity for item in self.items)

    @property
    def is_empty(self) -> bool:
        return not self.items

    def to_view(self) -> Dict[str, Any]:
        return {
            "items": [
                dict(item.model_dump(mode="json", by_alias=True), subtotal=str(item.subtotal))
                for item in self.items
            ],
            "total": str(self.total),
            "count": self.count,
            "error": self.error.to_notification() if self.error else None,
            "notifications": self.notifications,
        }


def build_order_draft(
    user_id: int,
    items: List[CartItem],
    shipping_address: Optional[str] = None,
    payment_method: Optional[str] = None,
    notes: Optional[str] = None,
) -> OrderDraft:
    """
    Snapshot cart lines into an order payload.

    Raises:
        ValidationFailed: the cart is empty
    """
    if not items:
        raise ValidationFailed("Your cart is empty", {"orderItems": "Add at least one item before checking out"})
    lines = [
        OrderDraftItem(product_id=item.product_id, quantity=item.quantity, price=item.product_price)
        for item in items
    ]
    total = sum((line.price * line.quantity for line in lines), Decimal("0"))
    return OrderDraft(
        user_id=user_id,
        order_items=lines,
        total_amount=total,
        shipping_address=shipping_address,
        payment_method=payment_method,
        notes=notes,
    )


class CheckoutService:
    """Cart operations and order placement for one customer"""

    def __init__(
        self,
        cart_api: CartApi,
        orders_api: OrdersApi,
        addresses_api: Optional[AddressesApi] = None,
    ):
        self.cart_api = cart_api
        self.orders_api = orders_api
        self.addresses_api = addresses_api

    async def load(self, state: CartState) -> CartState:
        try:
            state.items = await self.cart_api.items(state.user_id)
            state.error = None
        except ApiError as e:
            state.error = e.error
            logger.warning("Cart load failed", user_id=state.user_id, category=e.category.value)
        return state

    async def add(self, state: CartState, product_id: int, quantity: int = 1) -> CartState:
        if quantity < 1:
            raise ValidationFailed("Quantity must be at least 1", {"quantity": "Quantity must be at least 1"})
        await self.cart_api.add_item(state.user_id, product_id, quantity)
        return await self.load(state)

    async def update_quantity(self, state: CartState, cart_item_id: int, quantity: int) -> CartState:
        if quantity < 1:
            raise ValidationFailed("Quantity must be at least 1", {"quantity": "Quantity must be at least 1"})
        await self.cart_api.update_quantity(cart_item_id, quantity)
        return await self.load(state)

    async def remove(self, state: CartState, cart_item_id: int) -> CartState:
        await self.cart_api.remove(cart_item_id)
        return await self.load(state)

    async def _default_address(self, user_id: int) -> Optional[str]:
        if self.addresses_api is None:
            return None
        address = await self.addresses_api.default_for(user_id)
        if address is None:
            return None
        parts = [address.street_address, address.city, address.state, address.postal_code, address.country]
        return ", ".join(p for p in parts if p)

    async def checkout(
        self,
        state: CartState,
        shipping_address: Optional[str] = None,
        payment_method: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Order:
        """
        Place an order for everything in the cart.

        Raises:
            ValidationFailed: empty cart, or no shipping address available
            ApiError: the backend rejected the order; the cart is untouched
        """
        draft = build_order_draft(state.user_id, state.items, shipping_address, payment_method, notes)
        if not draft.shipping_address:
            address = await self._default_address(state.user_id)
            if not address:
                raise ValidationFailed(
                    "A shipping address is required",
                    {"shippingAddress": "Enter a shipping address or set a default address"},
                )
            draft = draft.model_copy(update={"shipping_address": address})

        try:
            order = await self.orders_api.create(draft)
        except ApiError as e:
            state.error = e.error
            logger.info(
                "Checkout rejected",
                user_id=state.user_id,
                category=e.category.value,
                items=len(state.items),
            )
            raise

        logger.info("Order placed", user_id=state.user_id, order_id=order.order_id, total=str(draft.total_amount))

        try:
            await self.cart_api.clear(state.user_id)
        except ApiError as e:
            # The order stands; the cart is reloaded from the server below
            logger.warning("Cart clear failed after checkout", user_id=state.user_id, category=e.category.value)
            state.notifications.append(e.error.to_notification("Order placed, but the cart could not be cleared"))
            await self.load(state)
            return order

        state.items = []
        state.error = None
        return order
