"""
ShopJoy Storefront

Backend-for-frontend service for the ShopJoy storefront and admin console.
"""

__version__ = "1.0.0"
