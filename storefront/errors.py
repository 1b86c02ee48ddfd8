"""
Error Taxonomy and Classification

Backend failures arrive in several shapes: the REST envelope
(``{success, message, errors: [{field, message, code}]}``), GraphQL
``errors[]`` with ``extensions``, bare HTTP statuses, or transport failures
with no response at all. Views never branch on raw server text; they branch
on the category assigned here.

Classification is total: ``classify_error`` returns a result for any input
and never raises.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

import structlog

logger = structlog.get_logger(__name__)


class ErrorCategory(str, Enum):
    """What kind of failure a view is dealing with"""
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    UNAUTHORIZED = "unauthorized"
    DUPLICATE = "duplicate"
    INSUFFICIENT_STOCK = "insufficient_stock"
    INVALID_TRANSITION = "invalid_transition"
    RATE_LIMITED = "rate_limited"
    NETWORK = "network"
    UNKNOWN = "unknown"


class Presentation(str, Enum):
    """How a view surfaces an error"""
    INLINE = "inline"  # per-field messages next to form inputs
    TOAST = "toast"  # dismissible notification


GENERIC_MESSAGE = "Something went wrong. Please try again."

DEFAULT_MESSAGES: Dict[ErrorCategory, str] = {
    ErrorCategory.VALIDATION: "Please correct the highlighted fields.",
    ErrorCategory.NOT_FOUND: "The requested item could not be found.",
    ErrorCategory.UNAUTHORIZED: "Your session is not valid. Please sign in again.",
    ErrorCategory.DUPLICATE: "A record with this value already exists.",
    ErrorCategory.INSUFFICIENT_STOCK: "Not enough stock is available for this request.",
    ErrorCategory.INVALID_TRANSITION: "This action is not allowed for the order's current status.",
    ErrorCategory.RATE_LIMITED: "Too many attempts. Please wait and try again.",
    ErrorCategory.NETWORK: "Unable to connect to server. Please try again later.",
    ErrorCategory.UNKNOWN: GENERIC_MESSAGE,
}

# Backend error codes (envelope `errors[].code`, GraphQL `extensions.code`)
CODE_CATEGORIES: Dict[str, ErrorCategory] = {
    "INSUFFICIENT_STOCK": ErrorCategory.INSUFFICIENT_STOCK,
    "INVALID_ORDER_STATE": ErrorCategory.INVALID_TRANSITION,
    "INVALID_STATUS_TRANSITION": ErrorCategory.INVALID_TRANSITION,
    "INVALID_TRANSITION": ErrorCategory.INVALID_TRANSITION,
    "DUPLICATE_ENTRY": ErrorCategory.DUPLICATE,
    "DUPLICATE_RESOURCE": ErrorCategory.DUPLICATE,
    "DUPLICATE_VALUE": ErrorCategory.DUPLICATE,
    "UNAUTHORIZED": ErrorCategory.UNAUTHORIZED,
    "AUTHENTICATION_FAILED": ErrorCategory.UNAUTHORIZED,
    "INVALID_CREDENTIALS": ErrorCategory.UNAUTHORIZED,
    "TOKEN_EXPIRED": ErrorCategory.UNAUTHORIZED,
    "TOKEN_INVALID": ErrorCategory.UNAUTHORIZED,
    "ACCESS_DENIED": ErrorCategory.UNAUTHORIZED,
    "FORBIDDEN": ErrorCategory.UNAUTHORIZED,
    "NOT_FOUND": ErrorCategory.NOT_FOUND,
    "RESOURCE_NOT_FOUND": ErrorCategory.NOT_FOUND,
    "RATE_LIMIT_EXCEEDED": ErrorCategory.RATE_LIMITED,
    "VALIDATION_ERROR": ErrorCategory.VALIDATION,
    "INVALID_VALUE": ErrorCategory.VALIDATION,
    "MALFORMED_JSON": ErrorCategory.VALIDATION,
    "BAD_USER_INPUT": ErrorCategory.VALIDATION,
    "BAD_REQUEST": ErrorCategory.VALIDATION,
    "NETWORK_ERROR": ErrorCategory.NETWORK,
}

# Order in which codes win when a payload carries several
_PRECEDENCE = [
    ErrorCategory.UNAUTHORIZED,
    ErrorCategory.INSUFFICIENT_STOCK,
    ErrorCategory.INVALID_TRANSITION,
    ErrorCategory.DUPLICATE,
    ErrorCategory.NOT_FOUND,
    ErrorCategory.RATE_LIMITED,
    ErrorCategory.VALIDATION,
    ErrorCategory.NETWORK,
]

STATUS_CATEGORIES: Dict[int, ErrorCategory] = {
    401: ErrorCategory.UNAUTHORIZED,
    403: ErrorCategory.UNAUTHORIZED,
    404: ErrorCategory.NOT_FOUND,
    409: ErrorCategory.DUPLICATE,
    422: ErrorCategory.VALIDATION,
    429: ErrorCategory.RATE_LIMITED,
}


@dataclass
class ClassifiedError:
    """A backend failure reduced to what a view needs to present it"""
    category: ErrorCategory
    message: str
    field_errors: Dict[str, str] = field(default_factory=dict)
    error_codes: List[str] = field(default_factory=list)
    status_code: Optional[int] = None

    @property
    def presentation(self) -> Presentation:
        if self.category == ErrorCategory.VALIDATION and self.field_errors:
            return Presentation.INLINE
        return Presentation.TOAST

    @property
    def is_auth_failure(self) -> bool:
        return self.category == ErrorCategory.UNAUTHORIZED

    @property
    def is_retryable(self) -> bool:
        return self.category in (ErrorCategory.NETWORK, ErrorCategory.RATE_LIMITED, ErrorCategory.UNKNOWN)

    def to_notification(self, title: str = "Error") -> Dict[str, Any]:
        """Dismissible notification payload for the UI layer"""
        details = None
        if self.field_errors or self.error_codes:
            details = {
                "field_errors": dict(self.field_errors),
                "error_codes": list(self.error_codes),
            }
        return {
            "type": "error",
            "title": title,
            "category": self.category.value,
            "presentation": self.presentation.value,
            "message": self.message,
            "details": details,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }


# =============================================================================
# EXCEPTIONS
# =============================================================================

class StorefrontError(Exception):
    """Base class for storefront errors"""

    category: ErrorCategory = ErrorCategory.UNKNOWN

    def to_classified(self) -> ClassifiedError:
        return ClassifiedError(category=self.category, message=str(self) or DEFAULT_MESSAGES[self.category])


class ApiError(StorefrontError):
    """A backend call failed; carries the classified failure"""

    def __init__(self, error: ClassifiedError):
        super().__init__(error.message)
        self.error = error
        self.category = error.category

    @property
    def status_code(self) -> Optional[int]:
        return self.error.status_code

    def to_classified(self) -> ClassifiedError:
        return self.error


class InvalidTransition(StorefrontError):
    """Requested order status transition is not in the transition table"""

    category = ErrorCategory.INVALID_TRANSITION

    def __init__(self, current: Any, action: Any):
        self.current = current
        self.action = action
        current_name = getattr(current, "value", current)
        action_name = getattr(action, "value", action)
        super().__init__(f"Cannot {action_name} an order that is {current_name}")


class OrderNotEditable(StorefrontError):
    """Order contents can only be edited while the order is PENDING"""

    category = ErrorCategory.INVALID_TRANSITION

    def __init__(self, order_id: Any, status: Any):
        self.order_id = order_id
        self.status = status
        super().__init__(
            f"Order {order_id} is {getattr(status, 'value', status)} and can no longer be edited"
        )


class InvalidToken(StorefrontError):
    """Authentication token is expired or structurally invalid"""

    category = ErrorCategory.UNAUTHORIZED


class SessionExpired(StorefrontError):
    """No usable session; the user must sign in again"""

    category = ErrorCategory.UNAUTHORIZED


class AccessDenied(StorefrontError):
    """Signed in, but with a role the route does not admit"""

    category = ErrorCategory.UNAUTHORIZED


class ValidationFailed(StorefrontError):
    """Input rejected locally, before reaching the backend"""

    category = ErrorCategory.VALIDATION

    def __init__(self, message: str, field_errors: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.field_errors = dict(field_errors or {})
        # Submitted form values, echoed back so the form can be re-rendered
        self.values: Optional[Dict[str, Any]] = None

    def to_classified(self) -> ClassifiedError:
        return ClassifiedError(
            category=self.category,
            message=str(self),
            field_errors=dict(self.field_errors),
            error_codes=["VALIDATION_ERROR"],
        )


# =============================================================================
# CLASSIFICATION
# =============================================================================

def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def _collect(payload: Dict[str, Any]) -> tuple:
    """Pull field errors, codes and a headline message out of a payload"""
    field_errors: Dict[str, str] = {}
    codes: List[str] = []
    messages: List[str] = []

    for code in _as_list(payload.get("errorCodes")):
        if isinstance(code, str):
            codes.append(code.upper())

    for key in ("errorCode", "code"):
        if isinstance(payload.get(key), str):
            codes.append(payload[key].upper())

    for detail in _as_list(payload.get("errors")):
        if isinstance(detail, str):
            messages.append(detail)
            continue
        if not isinstance(detail, dict):
            continue
        message = detail.get("message")
        extensions = detail.get("extensions") if isinstance(detail.get("extensions"), dict) else {}
        code = detail.get("code") or extensions.get("code") or extensions.get("classification")
        if isinstance(code, str):
            codes.append(code.upper())
        fld = detail.get("field") or extensions.get("field")
        if isinstance(fld, str) and fld and isinstance(message, str):
            field_errors[fld] = message
        elif isinstance(message, str):
            messages.append(message)

    headline = payload.get("message")
    if not isinstance(headline, str) or not headline:
        headline = payload.get("error") if isinstance(payload.get("error"), str) else None
    if not headline and messages:
        headline = messages[0]

    return field_errors, codes, headline


def _category_from_codes(codes: Iterable[str]) -> Optional[ErrorCategory]:
    found = {CODE_CATEGORIES[c] for c in codes if c in CODE_CATEGORIES}
    for category in _PRECEDENCE:
        if category in found:
            return category
    return None


def classify_error(payload: Any, status_code: Optional[int] = None) -> ClassifiedError:
    """
    Map an error payload onto an ErrorCategory.

    Args:
        payload: Decoded response body (dict), raw text, an exception, or None
        status_code: HTTP status, when there was a response

    Returns:
        ClassifiedError: never raises; unrecognised input yields UNKNOWN
        with a generic message
    """
    try:
        return _classify(payload, status_code)
    except Exception as e:  # classification must not take a view down
        logger.warning("Error classification failed", error=str(e), status_code=status_code)
        return ClassifiedError(
            category=ErrorCategory.UNKNOWN,
            message=GENERIC_MESSAGE,
            status_code=status_code,
        )


def _classify(payload: Any, status_code: Optional[int]) -> ClassifiedError:
    if isinstance(payload, StorefrontError):
        classified = payload.to_classified()
        if classified.status_code is None:
            classified.status_code = status_code
        return classified

    if payload is None and status_code is None:
        return ClassifiedError(
            category=ErrorCategory.NETWORK,
            message=DEFAULT_MESSAGES[ErrorCategory.NETWORK],
        )

    field_errors: Dict[str, str] = {}
    codes: List[str] = []
    headline: Optional[str] = None

    if isinstance(payload, dict):
        field_errors, codes, headline = _collect(payload)
    elif isinstance(payload, (list, tuple)):
        # bare GraphQL errors array
        field_errors, codes, headline = _collect({"errors": list(payload)})

    category = _category_from_codes(codes)
    if category is None and field_errors:
        category = ErrorCategory.VALIDATION
    if category is None and status_code is not None:
        category = STATUS_CATEGORIES.get(status_code)
        if category is None and status_code == 400 and field_errors:
            category = ErrorCategory.VALIDATION
    if category is None:
        category = ErrorCategory.UNKNOWN

    if category == ErrorCategory.UNKNOWN:
        message = GENERIC_MESSAGE
    else:
        message = headline or DEFAULT_MESSAGES[category]

    return ClassifiedError(
        category=category,
        message=message,
        field_errors=field_errors,
        error_codes=codes,
        status_code=status_code,
    )


def network_error(exc: BaseException) -> ClassifiedError:
    """Classify a transport-level failure (no response received)"""
    logger.warning("Network failure", error_type=type(exc).__name__, error=str(exc))
    return ClassifiedError(
        category=ErrorCategory.NETWORK,
        message=DEFAULT_MESSAGES[ErrorCategory.NETWORK],
        error_codes=["NETWORK_ERROR"],
    )


def invalid_response(resource: str, exc: Optional[BaseException] = None) -> ClassifiedError:
    """Classify a backend payload that does not match the response models"""
    logger.error(
        "Invalid backend response",
        resource=resource,
        error_type=type(exc).__name__ if exc is not None else None,
        error=str(exc) if exc is not None else None,
    )
    return ClassifiedError(
        category=ErrorCategory.UNKNOWN,
        message=GENERIC_MESSAGE,
        error_codes=["INVALID_RESPONSE"],
        status_code=502,
    )
