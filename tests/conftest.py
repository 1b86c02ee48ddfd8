"""
Test Suite Configuration
"""
import time
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest
from jose import jwt

from storefront.cache import CacheManager, MemoryBackend
from storefront.clients.resources import ShopJoyApi
from storefront.clients.rest import RestClient
from storefront.config import get_settings

BACKEND_URL = "http://backend.test/api/v1"
GRAPHQL_URL = "http://backend.test/graphql"
API_PREFIX = "/api/v1"


def envelope(data: Any = None, message: str = "OK") -> Dict[str, Any]:
    """Successful REST envelope"""
    return {"success": True, "message": message, "data": data}


def failure(message: str, errors: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
    """Failed REST envelope"""
    return {"success": False, "message": message, "errors": errors or []}


class ScriptedBackend:
    """
    Stand-in for the ShopJoy backend behind an httpx.MockTransport.

    Responses are registered per (method, path); paths are given without the
    ``/api/v1`` prefix. Registering a route several times queues the
    responses, and the last one keeps answering once the queue drains.
    A registered exception instance is raised instead of answering.
    """

    def __init__(self):
        self.routes: Dict[tuple, list] = {}
        self.requests: List[httpx.Request] = []

    def on(
        self,
        method: str,
        path: str,
        data: Any = None,
        status: int = 200,
        body: Any = None,
        error: Optional[Exception] = None,
        handler: Optional[Callable[[httpx.Request], httpx.Response]] = None,
    ) -> "ScriptedBackend":
        if handler is None:
            payload = body if body is not None else envelope(data)
            handler = _responder(payload, status, error)
        self.routes.setdefault((method.upper(), path), []).append(handler)
        return self

    def reset(self, method: str, path: str) -> None:
        self.routes.pop((method.upper(), path), None)

    def calls(self, method: str, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == method.upper() and _path(r) == path]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self.routes.get((request.method, _path(request)))
        if not queue:
            return httpx.Response(404, json=failure("Resource not found", [{"code": "RESOURCE_NOT_FOUND"}]))
        handler = queue.pop(0) if len(queue) > 1 else queue[0]
        return handler(request)


def _path(request: httpx.Request) -> str:
    # As sent on the wire, so percent-encoded segments stay encoded
    path = request.url.raw_path.decode("ascii").split("?", 1)[0]
    return path[len(API_PREFIX):] if path.startswith(API_PREFIX) else path


def _responder(payload: Any, status: int, error: Optional[Exception]):
    def respond(request: httpx.Request) -> httpx.Response:
        if error is not None:
            raise error
        return httpx.Response(status, json=payload)
    return respond


@pytest.fixture(autouse=True)
def test_settings(monkeypatch):
    """Point settings at the scripted backend"""
    monkeypatch.setenv("APP_ENV", "testing")
    monkeypatch.setenv("BACKEND_REST_URL", BACKEND_URL)
    monkeypatch.setenv("BACKEND_GRAPHQL_URL", GRAPHQL_URL)
    monkeypatch.setenv("BACKEND_ORDERS_BACKEND", "rest")
    monkeypatch.setenv("CACHE_BACKEND", "memory")
    monkeypatch.setenv("RATE_LIMIT_REQUESTS", "10000")
    get_settings.cache_clear()
    yield get_settings()
    get_settings.cache_clear()


@pytest.fixture
def backend() -> ScriptedBackend:
    return ScriptedBackend()


@pytest.fixture
def http_client(backend) -> httpx.AsyncClient:
    """Pooled client wired to the scripted backend"""
    return httpx.AsyncClient(base_url=BACKEND_URL, transport=httpx.MockTransport(backend))


@pytest.fixture
def api(http_client) -> ShopJoyApi:
    return ShopJoyApi(RestClient(http_client, token="test-token"))


@pytest.fixture
def memory_cache() -> MemoryBackend:
    return MemoryBackend()


@pytest.fixture
def session_cache(memory_cache) -> CacheManager:
    return CacheManager("session", default_ttl=3600, backend=memory_cache)


@pytest.fixture
def make_token() -> Callable[..., str]:
    """Build a backend-style JWT"""
    def _make(
        username: str = "alice",
        user_id: Any = 7,
        role: Any = "CUSTOMER",
        expires_in: Optional[int] = 3600,
        **extra: Any,
    ) -> str:
        claims: Dict[str, Any] = {"sub": username, "userId": user_id, "role": role}
        if expires_in is not None:
            claims["exp"] = int(time.time()) + expires_in
        claims.update(extra)
        return jwt.encode({k: v for k, v in claims.items() if v is not None}, "secret", algorithm="HS256")
    return _make


@pytest.fixture
def sample_cart_items() -> List[Dict[str, Any]]:
    """Two cart lines: A 10.00 x 2 and B 5.50 x 1"""
    return [
        {"cartItemId": 1, "userId": 7, "productId": 101, "productName": "A", "productPrice": "10.00", "quantity": 2},
        {"cartItemId": 2, "userId": 7, "productId": 102, "productName": "B", "productPrice": "5.50", "quantity": 1},
    ]


@pytest.fixture
def make_order() -> Callable[..., Dict[str, Any]]:
    def _make(order_id: int = 1, status: str = "PENDING", user_id: int = 7, **extra: Any) -> Dict[str, Any]:
        order = {
            "orderId": order_id,
            "userId": user_id,
            "userName": "Alice Doe",
            "orderDate": "2025-01-15T14:30:00",
            "totalAmount": "25.50",
            "status": status,
            "paymentStatus": "UNPAID",
            "shippingAddress": "1 Main St, Springfield",
            "orderItems": [
                {"orderItemId": 11, "productId": 101, "productName": "A", "quantity": 2, "unitPrice": "10.00"},
                {"orderItemId": 12, "productId": 102, "productName": "B", "quantity": 1, "unitPrice": "5.50"},
            ],
        }
        order.update(extra)
        return order
    return _make


@pytest.fixture
def spring_page() -> Callable[..., Dict[str, Any]]:
    """REST page payload"""
    def _page(content: List[Any], number: int = 0, size: int = 10, total: Optional[int] = None) -> Dict[str, Any]:
        total = len(content) if total is None else total
        pages = (total + size - 1) // size if size else 0
        return {"content": content, "number": number, "size": size, "totalElements": total, "totalPages": pages}
    return _page
