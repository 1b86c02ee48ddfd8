"""
Role Guards

A guard admits a session whose role matches one of the route's roles,
compared case-insensitively. Anything else is sent back to the login page.
"""

from typing import Optional, Tuple

import structlog

from storefront.auth.session import Session
from storefront.domain.models import UserRole
from storefront.errors import AccessDenied, SessionExpired

logger = structlog.get_logger(__name__)


class RoleGuard:
    """
    Example:
        require_admin = RoleGuard("admin")
        session = require_admin.check(session)
    """

    def __init__(self, *roles):
        parsed = tuple(UserRole.parse(r) for r in roles)
        if not parsed or None in parsed:
            raise ValueError(f"Unknown role in {roles!r}")
        self.roles: Tuple[UserRole, ...] = parsed

    def admits(self, session: Optional[Session]) -> bool:
        return session is not None and session.role in self.roles

    def check(self, session: Optional[Session]) -> Session:
        """
        Raises:
            SessionExpired: no session
            AccessDenied: the session's role is not admitted
        """
        if session is None:
            raise SessionExpired("Please sign in to continue")
        if session.role not in self.roles:
            logger.info(
                "Role guard rejected session",
                username=session.username,
                role=session.role.value,
                required=[r.value for r in self.roles],
            )
            raise AccessDenied("You do not have access to this page")
        return session


require_admin = RoleGuard(UserRole.ADMIN)
require_customer = RoleGuard(UserRole.CUSTOMER)
