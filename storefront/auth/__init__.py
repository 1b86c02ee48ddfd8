"""
Authentication Module
"""
from .guards import RoleGuard, require_admin, require_customer
from .session import AuthService, Session, SessionStore
from .tokens import TokenClaims, decode_token

__all__ = [
    "RoleGuard",
    "require_admin",
    "require_customer",
    "AuthService",
    "Session",
    "SessionStore",
    "TokenClaims",
    "decode_token",
]
