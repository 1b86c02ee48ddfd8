"""
Cart and Checkout Routes (``/customer/cart``)
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from storefront.auth.session import Session
from storefront.errors import ApiError
from storefront.services.checkout import CartState, CheckoutService
from storefront.web.dependencies import customer_session, get_checkout, submit_form

router = APIRouter()


class AddItemRequest(BaseModel):
    product_id: int = Field(alias="productId")
    quantity: int = 1


class QuantityRequest(BaseModel):
    quantity: int


class CheckoutRequest(BaseModel):
    shipping_address: Optional[str] = Field(default=None, alias="shippingAddress")
    payment_method: Optional[str] = Field(default=None, alias="paymentMethod")
    notes: Optional[str] = None


@router.get("/cart")
async def view_cart(
    session: Session = Depends(customer_session),
    service: CheckoutService = Depends(get_checkout),
) -> Dict[str, Any]:
    state = await service.load(CartState(user_id=session.id))
    return state.to_view()


@router.post("/cart/items")
async def add_to_cart(
    body: AddItemRequest,
    session: Session = Depends(customer_session),
    service: CheckoutService = Depends(get_checkout),
) -> Dict[str, Any]:
    state = CartState(user_id=session.id)
    values = body.model_dump(by_alias=True)
    await submit_form(values, service.add(state, body.product_id, body.quantity))
    return state.to_view()


@router.put("/cart/items/{cart_item_id}")
async def update_cart_item(
    cart_item_id: int,
    body: QuantityRequest,
    session: Session = Depends(customer_session),
    service: CheckoutService = Depends(get_checkout),
) -> Dict[str, Any]:
    state = CartState(user_id=session.id)
    await submit_form(body.model_dump(), service.update_quantity(state, cart_item_id, body.quantity))
    return state.to_view()


@router.delete("/cart/items/{cart_item_id}")
async def remove_cart_item(
    cart_item_id: int,
    session: Session = Depends(customer_session),
    service: CheckoutService = Depends(get_checkout),
) -> Dict[str, Any]:
    state = CartState(user_id=session.id)
    await service.remove(state, cart_item_id)
    return state.to_view()


@router.post("/cart/checkout")
async def checkout(
    body: CheckoutRequest,
    session: Session = Depends(customer_session),
    service: CheckoutService = Depends(get_checkout),
) -> Dict[str, Any]:
    """Place an order for the whole cart; the cart is emptied only on success"""
    state = await service.load(CartState(user_id=session.id))
    if state.error is not None:
        raise ApiError(state.error)
    values = body.model_dump(by_alias=True, exclude_none=True)
    order = await submit_form(
        values,
        service.checkout(state, body.shipping_address, body.payment_method, body.notes),
    )
    view = state.to_view()
    view["order"] = order.model_dump(mode="json", by_alias=True)
    return view
