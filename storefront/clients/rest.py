"""
REST Transport

Thin async wrapper over httpx for the ShopJoy REST API:
- attaches the session's bearer token to every request
- unwraps the ``{success, message, data, errors}`` envelope
- turns every failure into ApiError carrying a ClassifiedError, including
  payloads the response models reject

One pooled ``httpx.AsyncClient`` is shared by the whole process;
``RestClient.bind(token)`` gives a per-session view of it.
"""

import time
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional, Type, TypeVar

import httpx
import structlog
from pydantic import BaseModel, ValidationError

from storefront.config import get_settings
from storefront.errors import ApiError, classify_error, invalid_response, network_error

logger = structlog.get_logger(__name__)

M = TypeVar("M", bound=BaseModel)


def build_http_client(
    base_url: Optional[str] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """Create the pooled HTTP client used for all backend calls"""
    settings = get_settings()
    return httpx.AsyncClient(
        base_url=base_url if base_url is not None else settings.backend.rest_url,
        timeout=httpx.Timeout(
            settings.backend.read_timeout,
            connect=settings.backend.connect_timeout,
        ),
        limits=httpx.Limits(max_connections=settings.backend.max_connections),
        headers={"Accept": "application/json"},
        transport=transport,
    )


@contextmanager
def parsing(resource: str) -> Iterator[None]:
    """Raise ApiError for a payload the response models reject"""
    try:
        yield
    except ValidationError as e:
        raise ApiError(invalid_response(resource, e)) from e


def parse(model: Type[M], data: Any) -> M:
    """Validate one response payload against ``model``"""
    with parsing(model.__name__):
        return model.model_validate(data)


def _decode(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


class RestClient:
    """Async REST client bound to an (optional) bearer token"""

    def __init__(self, http: httpx.AsyncClient, token: Optional[str] = None):
        self._http = http
        self.token = token

    def bind(self, token: Optional[str]) -> "RestClient":
        """Same connection pool, different credentials"""
        return RestClient(self._http, token)

    def _headers(self) -> Dict[str, str]:
        if self.token:
            return {"Authorization": f"Bearer {self.token}"}
        return {}

    async def request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
    ) -> Any:
        """
        Issue a request and return the envelope's ``data``.

        Raises:
            ApiError: transport failure, HTTP error status, or an envelope
                with ``success: false``
        """
        if params:
            params = {k: v for k, v in params.items() if v is not None}

        start = time.perf_counter()
        try:
            response = await self._http.request(
                method,
                path,
                params=params or None,
                json=json,
                headers=self._headers(),
            )
        except httpx.TransportError as e:
            raise ApiError(network_error(e)) from e

        duration_ms = (time.perf_counter() - start) * 1000
        body = _decode(response)

        logger.debug(
            "Backend request",
            method=method,
            path=path,
            status_code=response.status_code,
            duration_ms=round(duration_ms, 2),
        )

        if response.is_error:
            error = classify_error(body, response.status_code)
            logger.info(
                "Backend request failed",
                method=method,
                path=path,
                status_code=response.status_code,
                category=error.category.value,
            )
            raise ApiError(error)

        if isinstance(body, dict) and "success" in body:
            if body.get("success") is False:
                raise ApiError(classify_error(body, response.status_code))
            return body.get("data")

        return body

    async def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return await self.request("GET", path, params=params)

    async def post(self, path: str, json: Any = None, params: Optional[Dict[str, Any]] = None) -> Any:
        return await self.request("POST", path, params=params, json=json)

    async def put(self, path: str, json: Any = None, params: Optional[Dict[str, Any]] = None) -> Any:
        return await self.request("PUT", path, params=params, json=json)

    async def patch(self, path: str, json: Any = None, params: Optional[Dict[str, Any]] = None) -> Any:
        return await self.request("PATCH", path, params=params, json=json)

    async def delete(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return await self.request("DELETE", path, params=params)
