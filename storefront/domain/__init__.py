"""
Domain Module
"""
from .models import Order, OrderItem, OrderStatus, PaymentStatus, Page, UserRole
from .order_workflow import OrderAction, allowed_actions, apply_transition, next_status
from .listing import ListQuery, PageControls, SortDirection

__all__ = [
    "Order",
    "OrderItem",
    "OrderStatus",
    "PaymentStatus",
    "Page",
    "UserRole",
    "OrderAction",
    "allowed_actions",
    "apply_transition",
    "next_status",
    "ListQuery",
    "PageControls",
    "SortDirection",
]
