"""
View Routes
"""
from .health import router as health_router
from .auth import router as auth_router
from .orders import admin_router as admin_orders_router, customer_router as customer_orders_router
from .cart import router as cart_router
from .products import admin_router as admin_catalog_router, customer_router as customer_catalog_router
from .admin import admin_router as admin_console_router, customer_router as customer_account_router

__all__ = [
    "health_router",
    "auth_router",
    "admin_orders_router",
    "customer_orders_router",
    "cart_router",
    "admin_catalog_router",
    "customer_catalog_router",
    "admin_console_router",
    "customer_account_router",
]
