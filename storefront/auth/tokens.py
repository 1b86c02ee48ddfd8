"""
Token Claims

The backend issues JWTs carrying ``sub`` (username), ``userId``, ``role`` and
``exp``. The storefront only reads them to build a session; the backend
verifies the signature on every API call, so claims are decoded without
verification here.
"""

import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

from jose import JWTError, jwt

from storefront.domain.models import UserRole
from storefront.errors import InvalidToken


OAUTH2_ERROR_MESSAGES: Dict[str, str] = {
    "oauth2_failed": "OAuth2 authentication failed. Please try again.",
    "no_email": "Unable to retrieve email from OAuth2 provider. Please ensure email permission is granted.",
    "user_creation_failed": "Failed to create user account. Please try again or contact support.",
    "token_generation_failed": "Failed to generate authentication token. Please try again.",
    "invalid_provider": "Invalid OAuth2 provider. Please use a supported authentication method.",
    "access_denied": "Access was denied. Please grant necessary permissions to continue.",
    "server_error": "Server error occurred during authentication. Please try again later.",
}

UNKNOWN_OAUTH2_ERROR = "An unexpected error occurred. Please try again."


def oauth2_error_message(code: Optional[str]) -> str:
    return OAUTH2_ERROR_MESSAGES.get((code or "").strip().lower(), UNKNOWN_OAUTH2_ERROR)


@dataclass(frozen=True)
class TokenClaims:
    username: str
    user_id: int
    role: UserRole
    expires_at: Optional[int] = None

    def is_expired(self, now: Optional[float] = None, leeway: int = 0) -> bool:
        if self.expires_at is None:
            return False
        now = time.time() if now is None else now
        return self.expires_at + leeway < now


def decode_token(token: Optional[str], leeway: int = 0, now: Optional[float] = None) -> TokenClaims:
    """
    Decode the claims of a backend-issued JWT.

    Args:
        token: Encoded JWT
        leeway: Tolerated clock skew in seconds
        now: Current epoch seconds (defaults to the wall clock)

    Returns:
        TokenClaims

    Raises:
        InvalidToken: missing, undecodable, structurally incomplete or expired
    """
    if not token:
        raise InvalidToken("No authentication token received")

    try:
        claims: Dict[str, Any] = jwt.get_unverified_claims(token)
    except JWTError as e:
        raise InvalidToken("Invalid authentication token") from e

    username = claims.get("sub")
    raw_user_id = claims.get("userId")
    role = UserRole.parse(claims.get("role"))
    if not username or raw_user_id in (None, "") or role is None:
        raise InvalidToken("Invalid token structure - missing required fields")

    try:
        user_id = int(raw_user_id)
        expires_at = int(claims["exp"]) if claims.get("exp") is not None else None
    except (TypeError, ValueError) as e:
        raise InvalidToken("Invalid token structure - malformed claims") from e

    decoded = TokenClaims(username=username, user_id=user_id, role=role, expires_at=expires_at)
    if decoded.is_expired(now=now, leeway=leeway):
        raise InvalidToken("Authentication token has expired")
    return decoded
