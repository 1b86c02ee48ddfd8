"""
Session Store

Server-side sessions keyed by an opaque id held in the browser cookie. A
session keeps the backend token plus the minimal profile needed for role
gating, and survives reloads and worker restarts when the cache backend is
Redis.

Registration creates the account only; the user signs in afterwards.

Lifecycle: ``create`` at login, ``load`` (hydrate) on every request,
``clear`` at logout or when the backend rejects the token.
"""

import re
import secrets
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import structlog
from pydantic import BaseModel, Field

from storefront.auth.tokens import TokenClaims, decode_token, oauth2_error_message
from storefront.cache import CacheManager
from storefront.clients.resources import AuthApi
from storefront.config import get_settings
from storefront.domain.models import User, UserRole
from storefront.errors import InvalidToken, ValidationFailed

logger = structlog.get_logger(__name__)

USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9._-]{3,50}$")
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MIN_PASSWORD_LENGTH = 8


class Session(BaseModel):
    session_id: str
    token: str
    id: int
    username: str
    role: UserRole
    provider: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_customer(self) -> bool:
        return self.role == UserRole.CUSTOMER

    def has_role(self, role: Any) -> bool:
        """Case-insensitive role check"""
        return UserRole.parse(role) == self.role


class SessionStore:
    """Sessions persisted in the ``session`` cache namespace"""

    def __init__(self, cache: Optional[CacheManager] = None, leeway: Optional[int] = None):
        settings = get_settings()
        self.cache = cache or CacheManager("session", default_ttl=settings.session.ttl_seconds)
        self.leeway = settings.security.token_leeway_seconds if leeway is None else leeway

    async def create(self, token: str, provider: Optional[str] = None) -> Session:
        """
        Start a session from a backend token.

        Raises:
            InvalidToken: the token is expired or its claims are incomplete
        """
        claims: TokenClaims = decode_token(token, leeway=self.leeway)
        session = Session(
            session_id=secrets.token_urlsafe(32),
            token=token,
            id=claims.user_id,
            username=claims.username,
            role=claims.role,
            provider=provider,
        )
        await self.cache.set(session.session_id, session.model_dump(mode="json"))
        logger.info("Session created", username=session.username, role=session.role.value, provider=provider)
        return session

    async def load(self, session_id: Optional[str]) -> Optional[Session]:
        """Hydrate a session; None when missing, invalid or expired"""
        if not session_id:
            return None
        stored = await self.cache.get(session_id)
        if not isinstance(stored, dict):
            return None

        data = self._migrate(stored)
        if data.get("id") is None:
            logger.warning("Discarding session without user id")
            await self.clear(session_id)
            return None

        try:
            decode_token(data.get("token"), leeway=self.leeway)
            session = Session.model_validate(data)
        except (InvalidToken, ValueError) as e:
            logger.info("Discarding unusable session", reason=str(e))
            await self.clear(session_id)
            return None

        if data is not stored:
            await self.cache.set(session_id, session.model_dump(mode="json"))
        return session

    @staticmethod
    def _migrate(stored: Dict[str, Any]) -> Dict[str, Any]:
        # Older sessions stored the user id as ``userId``
        if stored.get("userId") is not None and stored.get("id") is None:
            data = dict(stored)
            data["id"] = data.pop("userId")
            return data
        return stored

    async def clear(self, session_id: Optional[str]) -> None:
        if session_id:
            await self.cache.delete(session_id)


class AuthService:
    """Login, logout, registration and the OAuth2 redirect callback"""

    def __init__(self, store: SessionStore, auth_api: AuthApi):
        self.store = store
        self.auth_api = auth_api

    async def login(self, username: str, password: str) -> Session:
        """
        Raises:
            ApiError: the backend rejected the credentials
            InvalidToken: the backend returned an unusable token
        """
        result = await self.auth_api.login(username, password)
        return await self.store.create(result.token)

    async def logout(self, session_id: Optional[str]) -> None:
        await self.store.clear(session_id)

    async def oauth2_callback(
        self,
        token: Optional[str],
        provider: Optional[str] = None,
        error: Optional[str] = None,
    ) -> Session:
        """
        Complete an OAuth2 login from the backend's redirect.

        Raises:
            InvalidToken: ``error`` was set, or the token is missing, expired
                or structurally invalid
        """
        if error:
            logger.info("OAuth2 login failed", error_code=error)
            raise InvalidToken(oauth2_error_message(error))
        return await self.store.create(token, provider=provider or "google")

    async def register(self, form: Dict[str, Any]) -> User:
        """
        Create a customer account. Local field rules are checked first, then
        username and email availability; every problem is reported at once.

        Raises:
            ValidationFailed: field errors keyed by form field
            ApiError: the backend rejected the registration
        """
        errors = registration_errors(form)
        username = (form.get("username") or "").strip()
        email = (form.get("email") or "").strip().lower()

        if "username" not in errors and not await self.auth_api.username_available(username):
            errors["username"] = "This username is already taken"
        if "email" not in errors and not await self.auth_api.email_available(email):
            errors["email"] = "An account with this email already exists"
        if errors:
            raise ValidationFailed("Please fix the highlighted fields.", errors)

        payload = dict(form, username=username, email=email, userType=UserRole.CUSTOMER.value)
        user = await self.auth_api.register(payload)
        logger.info("User registered", username=user.username, user_id=user.id)
        return user


def registration_errors(form: Dict[str, Any]) -> Dict[str, str]:
    """Field errors for a registration form, keyed by its camelCase field names"""
    errors: Dict[str, str] = {}
    username = (form.get("username") or "").strip()
    email = (form.get("email") or "").strip()

    if not USERNAME_PATTERN.match(username):
        errors["username"] = "Use 3-50 letters, digits, dots, dashes or underscores"
    if not EMAIL_PATTERN.match(email):
        errors["email"] = "Enter a valid email address"
    if len(form.get("password") or "") < MIN_PASSWORD_LENGTH:
        errors["password"] = f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
    for field in ("firstName", "lastName"):
        if not (form.get(field) or "").strip():
            errors[field] = "This field is required"
    return errors
