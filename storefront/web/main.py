"""
FastAPI Application

Backend-for-frontend for the ShopJoy storefront and admin console.
"""

from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

import httpx
import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse, RedirectResponse

from storefront.auth.session import SessionStore
from storefront.cache import CacheBackend, close_cache, init_cache
from storefront.clients.graphql import GraphQLClient
from storefront.clients.rest import build_http_client
from storefront.config import get_settings
from storefront.config.logging import configure_logging
from storefront.errors import (
    AccessDenied,
    ApiError,
    ErrorCategory,
    InvalidToken,
    SessionExpired,
    StorefrontError,
    ValidationFailed,
)
from storefront.web.middleware import (
    RateLimitMiddleware,
    RequestLoggingMiddleware,
    SecurityHeadersMiddleware,
)
from storefront.web.routes import (
    admin_catalog_router,
    admin_console_router,
    admin_orders_router,
    auth_router,
    cart_router,
    customer_account_router,
    customer_catalog_router,
    customer_orders_router,
    health_router,
)
from storefront.web.routes.auth import login_redirect

logger = structlog.get_logger(__name__)

CATEGORY_STATUS: Dict[ErrorCategory, int] = {
    ErrorCategory.VALIDATION: 422,
    ErrorCategory.NOT_FOUND: 404,
    ErrorCategory.UNAUTHORIZED: 401,
    ErrorCategory.DUPLICATE: 409,
    ErrorCategory.INSUFFICIENT_STOCK: 409,
    ErrorCategory.INVALID_TRANSITION: 409,
    ErrorCategory.RATE_LIMITED: 429,
    ErrorCategory.NETWORK: 503,
    ErrorCategory.UNKNOWN: 500,
}


# =============================================================================
# EXCEPTION HANDLERS
# =============================================================================

async def _end_session(request: Request, error: Optional[str] = None) -> RedirectResponse:
    settings = get_settings()
    await request.app.state.sessions.clear(request.cookies.get(settings.session.cookie_name))
    return login_redirect(error)


async def session_expired_handler(request: Request, exc: SessionExpired) -> RedirectResponse:
    return await _end_session(request)


async def invalid_token_handler(request: Request, exc: InvalidToken) -> RedirectResponse:
    return await _end_session(request, str(exc))


async def access_denied_handler(request: Request, exc: AccessDenied) -> RedirectResponse:
    # The session stays valid for the routes its role does admit
    return RedirectResponse(get_settings().session.login_path, status_code=303)


def error_response(exc: StorefrontError) -> JSONResponse:
    error = exc.to_classified()
    status_code = error.status_code if error.status_code and error.status_code >= 400 else None
    body: Dict[str, Any] = {
        "success": False,
        "notification": error.to_notification(),
        "fieldErrors": error.field_errors,
        "retryable": error.is_retryable,
    }
    if isinstance(exc, ValidationFailed) and exc.values is not None:
        body["values"] = exc.values
    return JSONResponse(body, status_code=status_code or CATEGORY_STATUS[error.category])


async def api_error_handler(request: Request, exc: ApiError):
    login_path = get_settings().session.login_path
    if exc.error.is_auth_failure and request.url.path != login_path:
        logger.info("Backend rejected session token", path=request.url.path, status_code=exc.status_code)
        return await _end_session(request)
    return error_response(exc)


async def storefront_error_handler(request: Request, exc: StorefrontError) -> JSONResponse:
    logger.info(
        "Request rejected",
        path=request.url.path,
        error_type=type(exc).__name__,
        category=exc.category.value,
    )
    return error_response(exc)


# =============================================================================
# APPLICATION
# =============================================================================

def create_app(
    http_client: Optional[httpx.AsyncClient] = None,
    cache_backend: Optional[CacheBackend] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        http_client: Backend HTTP client (defaults to a pooled client built
            from settings)
        cache_backend: Cache / session backend (defaults to the configured one)
    """
    settings = get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging()
        logger.info("Starting ShopJoy storefront", environment=settings.app_env)

        await init_cache(cache_backend)
        app.state.http = http_client or build_http_client()
        app.state.graphql = GraphQLClient(app.state.http)
        app.state.sessions = SessionStore()

        yield

        logger.info("Shutting down...")
        if http_client is None:
            await app.state.http.aclose()
        await close_cache()

    app = FastAPI(
        title="ShopJoy Storefront",
        description="Storefront and admin console backend-for-frontend",
        version=settings.version,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.security.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(SecurityHeadersMiddleware, hsts=settings.is_production)
    app.add_middleware(
        RateLimitMiddleware,
        max_requests=settings.security.rate_limit_requests,
        window_seconds=settings.security.rate_limit_window_seconds,
    )

    app.add_exception_handler(SessionExpired, session_expired_handler)
    app.add_exception_handler(InvalidToken, invalid_token_handler)
    app.add_exception_handler(AccessDenied, access_denied_handler)
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(StorefrontError, storefront_error_handler)

    app.include_router(health_router, tags=["Health"])
    app.include_router(auth_router, tags=["Auth"])
    app.include_router(admin_orders_router, prefix="/admin", tags=["Admin"])
    app.include_router(admin_catalog_router, prefix="/admin", tags=["Admin"])
    app.include_router(admin_console_router, prefix="/admin", tags=["Admin"])
    app.include_router(customer_orders_router, prefix="/customer", tags=["Customer"])
    app.include_router(customer_catalog_router, prefix="/customer", tags=["Customer"])
    app.include_router(customer_account_router, prefix="/customer", tags=["Customer"])
    app.include_router(cart_router, prefix="/customer", tags=["Customer"])

    @app.get("/")
    async def index() -> Dict[str, Any]:
        return {"name": settings.app_name, "version": settings.version, "login": settings.session.login_path}

    return app


app = create_app()
