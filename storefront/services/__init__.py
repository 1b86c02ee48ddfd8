"""
Services Module
"""
from .mutations import ListState, mutate_and_reconcile
from .orders import OrderHistoryService, OrderManagementService
from .checkout import CartState, CheckoutService
from .catalog import CatalogService
from .inventory import InventoryService
from .audit_logs import AuditLogService
from .admin import AccountService, ReviewAdminService, UserAdminService

__all__ = [
    "ListState",
    "mutate_and_reconcile",
    "OrderHistoryService",
    "OrderManagementService",
    "CartState",
    "CheckoutService",
    "CatalogService",
    "InventoryService",
    "AuditLogService",
    "AccountService",
    "ReviewAdminService",
    "UserAdminService",
]
