"""
Health Check Endpoints

Provides health and readiness checks for orchestration systems.
"""

from datetime import datetime, timezone
from typing import Any, Dict

import httpx
from fastapi import APIRouter, Request, Response
from pydantic import BaseModel

from storefront.cache import get_cache_backend
from storefront.config import get_settings

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response"""
    status: str
    version: str
    environment: str
    timestamp: datetime
    checks: Dict[str, Any]


async def _check_backend(http: httpx.AsyncClient) -> Dict[str, Any]:
    """Any HTTP answer, even 401, means the backend is reachable"""
    try:
        response = await http.get(get_settings().backend.rest_url)
        return {"status": "healthy", "status_code": response.status_code}
    except httpx.HTTPError as e:
        return {"status": "unhealthy", "error": type(e).__name__}


async def _check_cache() -> Dict[str, Any]:
    try:
        await get_cache_backend().ping()
        return {"status": "healthy"}
    except Exception as e:
        return {"status": "unhealthy", "error": str(e)}


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """
    Comprehensive health check endpoint.

    Checks:
    - ShopJoy backend reachability
    - Cache / session store connectivity
    """
    settings = get_settings()
    checks = {
        "backend": await _check_backend(request.app.state.http),
        "cache": await _check_cache(),
    }

    overall_status = "healthy"
    if checks["cache"]["status"] != "healthy":
        overall_status = "unhealthy"
    elif checks["backend"]["status"] != "healthy":
        overall_status = "degraded"

    return HealthResponse(
        status=overall_status,
        version=settings.version,
        environment=settings.app_env,
        timestamp=datetime.now(timezone.utc),
        checks=checks,
    )


@router.get("/health/live")
async def liveness_check() -> Dict[str, str]:
    """
    Kubernetes liveness endpoint.

    Returns 200 if the application is running.
    """
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness_check(request: Request, response: Response) -> Dict[str, str]:
    """
    Kubernetes readiness endpoint.

    Returns 200 when sessions can be served and the backend answers.
    """
    cache = await _check_cache()
    if cache["status"] != "healthy":
        response.status_code = 503
        return {"status": "not_ready", "reason": "cache_unavailable"}

    backend = await _check_backend(request.app.state.http)
    if backend["status"] != "healthy":
        response.status_code = 503
        return {"status": "not_ready", "reason": "backend_unavailable"}

    return {"status": "ready"}
