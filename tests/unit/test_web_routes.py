"""
Unit Tests - HTTP Routes
"""
from collections import deque

import pytest
from fastapi.testclient import TestClient

from storefront.config import get_settings
from storefront.web.main import create_app
from storefront.web.middleware import RateLimitMiddleware


@pytest.fixture
def client(http_client, memory_cache):
    app = create_app(http_client=http_client, cache_backend=memory_cache)
    with TestClient(app) as client:
        yield client


@pytest.fixture
def sign_in(client, backend, make_token):
    """Log the test client in with a backend-issued token"""
    def _sign_in(role: str = "CUSTOMER", user_id: int = 7, username: str = "alice"):
        backend.reset("POST", "/auth/login")
        backend.on("POST", "/auth/login", data={"token": make_token(username=username, user_id=user_id, role=role)})
        response = client.post("/login", json={"username": username, "password": "correct-horse"})
        assert response.status_code == 200
        return response
    return _sign_in


class TestHealth:
    """Tests for health endpoints"""

    def test_liveness(self, client):
        assert client.get("/health/live").json() == {"status": "alive"}

    def test_health_reports_backend(self, client, backend):
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["checks"]["cache"]["status"] == "healthy"
        # the scripted backend answers 404 on its root, which still counts as reachable
        assert body["checks"]["backend"]["status"] == "healthy"


class TestLogin:
    """Tests for login, logout and OAuth2"""

    def test_login_sets_session_cookie(self, client, sign_in):
        response = sign_in("ADMIN", user_id=1, username="root")

        assert response.json()["redirect"] == "/admin/dashboard"
        cookie = response.headers["set-cookie"]
        assert cookie.startswith("shopjoy_session=")
        assert "httponly" in cookie.lower()
        assert client.get("/session").json()["user"]["username"] == "root"

    def test_cookie_does_not_carry_token(self, client, sign_in):
        sign_in()

        # JWTs are dot-separated; the session id is not
        assert "." not in client.cookies["shopjoy_session"]

    def test_bad_credentials(self, client, backend):
        backend.on("POST", "/auth/login", status=401, body={
            "success": False,
            "message": "Invalid username or password",
            "errors": [{"code": "INVALID_CREDENTIALS"}],
        })

        response = client.post("/login", json={"username": "alice", "password": "wrong"})

        assert response.status_code == 401
        assert response.json()["notification"]["message"] == "Invalid username or password"

    def test_logout(self, client, sign_in):
        sign_in()

        response = client.post("/logout", follow_redirects=False)

        assert response.status_code == 303
        assert response.headers["location"] == "/login"
        assert client.get("/session").json()["authenticated"] is False

    def test_oauth2_callback(self, client, make_token):
        response = client.get(
            "/oauth2/callback",
            params={"token": make_token(), "provider": "github"},
            follow_redirects=False,
        )

        assert response.status_code == 303
        assert response.headers["location"] == "/customer/dashboard"
        assert client.get("/session").json()["user"]["provider"] == "github"

    def test_oauth2_error(self, client):
        response = client.get("/oauth2/callback", params={"error": "no_email"}, follow_redirects=False)

        assert response.status_code == 303
        assert response.headers["location"].startswith("/login?error=")


REGISTRATION_FORM = {
    "username": "bob",
    "email": "Bob@Example.com",
    "password": "correct-horse",
    "firstName": "Bob",
    "lastName": "Stone",
}


class TestRegistration:
    """Tests for creating an account over HTTP"""

    def test_register(self, client, backend):
        backend.on("GET", "/auth/check-username", data={"available": True, "taken": False})
        backend.on("GET", "/auth/check-email", data={"available": True, "taken": False})
        backend.on("POST", "/auth/register", data={"userId": 12, "username": "bob", "userType": "CUSTOMER"})

        response = client.post("/register", json=REGISTRATION_FORM)

        assert response.status_code == 201
        assert response.json()["redirect"] == "/login"
        assert response.json()["user"]["username"] == "bob"
        assert "shopjoy_session" not in client.cookies

    def test_taken_username_echoes_values(self, client, backend):
        backend.on("GET", "/auth/check-username", data={"available": False, "taken": True})
        backend.on("GET", "/auth/check-email", data={"available": True, "taken": False})

        response = client.post("/register", json=REGISTRATION_FORM)

        assert response.status_code == 422
        body = response.json()
        assert set(body["fieldErrors"]) == {"username"}
        assert body["values"]["email"] == "Bob@Example.com"
        assert "password" not in body["values"]
        assert backend.calls("POST", "/auth/register") == []

    def test_availability(self, client, backend):
        backend.on("GET", "/auth/check-username", data={"available": True, "taken": False})
        backend.on("GET", "/auth/check-email", data={"available": False, "taken": True})

        response = client.get("/register/availability", params={"username": "bob", "email": "BOB@example.com"})

        assert response.json() == {"username": True, "email": False}
        assert backend.calls("GET", "/auth/check-email")[0].url.params["email"] == "bob@example.com"


class TestRoleGating:
    """Tests for admin/customer route separation"""

    def test_anonymous_redirected(self, client):
        response = client.get("/admin/orders", follow_redirects=False)

        assert response.status_code == 303
        assert response.headers["location"] == "/login"

    def test_customer_cannot_open_admin(self, client, backend, sign_in):
        sign_in("CUSTOMER")

        response = client.get("/admin/orders", follow_redirects=False)

        assert response.status_code == 303
        assert response.headers["location"] == "/login"
        assert backend.calls("GET", "/orders/paginated") == []

    def test_admin_cannot_open_customer_cart(self, client, backend, sign_in):
        sign_in("ADMIN", user_id=1, username="root")

        response = client.get("/customer/cart", follow_redirects=False)

        assert response.status_code == 303
        assert response.headers["location"] == "/login"
        assert backend.calls("GET", "/cart/user/1") == []

    def test_backend_auth_failure_ends_session(self, client, backend, sign_in):
        sign_in("ADMIN", user_id=1, username="root")
        backend.on("GET", "/orders/5", status=401, body={"message": "Token expired", "errorCode": "TOKEN_EXPIRED"})

        response = client.get("/admin/orders/5", follow_redirects=False)

        assert response.status_code == 303
        assert response.headers["location"] == "/login"
        assert client.get("/session").json()["authenticated"] is False


class TestCustomerRoutes:
    """Tests for cart and checkout over HTTP"""

    def test_view_cart(self, client, backend, sign_in, sample_cart_items):
        sign_in()
        backend.on("GET", "/cart/user/7", data=sample_cart_items)

        body = client.get("/customer/cart").json()

        assert body["total"] == "25.50"
        assert body["count"] == 3

    def test_checkout_insufficient_stock(self, client, backend, sign_in, sample_cart_items):
        sign_in()
        backend.on("GET", "/cart/user/7", data=sample_cart_items)
        backend.on("POST", "/orders", status=409, body={
            "success": False,
            "message": "Insufficient stock for product A",
            "errors": [{"code": "INSUFFICIENT_STOCK"}],
        })

        response = client.post("/customer/cart/checkout", json={"shippingAddress": "1 Main St"})

        assert response.status_code == 409
        body = response.json()
        assert body["success"] is False
        assert body["notification"]["category"] == "insufficient_stock"
        assert body["retryable"] is False
        assert backend.calls("DELETE", "/cart/user/7") == []

    def test_invalid_address_echoes_values(self, client, sign_in):
        sign_in()

        response = client.post("/customer/addresses", json={"streetAddress": "", "city": "Springfield"})

        assert response.status_code == 422
        body = response.json()
        assert set(body["fieldErrors"]) == {"streetAddress"}
        assert body["values"]["city"] == "Springfield"

    def test_new_arrivals(self, client, backend, sign_in):
        sign_in()
        backend.on("GET", "/products/new-arrivals", data=[
            {"productId": 1, "productName": "Lamp", "price": "19.99", "isActive": True},
            {"productId": 2, "productName": "Retired", "price": "5.00", "isActive": False},
        ])

        response = client.get("/customer/products/new-arrivals", params={"limit": 4})

        assert [p["productName"] for p in response.json()] == ["Lamp"]
        assert backend.calls("GET", "/products/new-arrivals")[0].url.params["limit"] == "4"


class TestAdminRoutes:
    """Tests for the admin order board over HTTP"""

    def test_board(self, client, backend, sign_in, make_order, spring_page):
        sign_in("ADMIN", user_id=1, username="root")
        backend.on("GET", "/orders/paginated", data=spring_page([make_order(1, "PROCESSING")]))

        body = client.get("/admin/orders").json()

        assert body["orders"][0]["actions"] == ["ship", "cancel"]
        assert body["pagination"]["has_next"] is False

    def test_illegal_action_rejected(self, client, backend, sign_in, make_order, spring_page):
        sign_in("ADMIN", user_id=1, username="root")
        backend.on("GET", "/orders/paginated", data=spring_page([make_order(1, "PROCESSING")]))

        response = client.post("/admin/orders/1/actions/confirm", json={})

        assert response.status_code == 409
        assert response.json()["notification"]["message"] == "Cannot confirm an order that is PROCESSING"
        assert backend.calls("PATCH", "/orders/1/confirm") == []

    def test_unknown_action(self, client, sign_in):
        sign_in("ADMIN", user_id=1, username="root")

        response = client.post("/admin/orders/1/actions/refund", json={})

        assert response.status_code == 422
        assert "action" in response.json()["fieldErrors"]


class TestMiddleware:
    """Tests for rate limiting and response headers"""

    @pytest.fixture
    def limited_client(self, monkeypatch, http_client, memory_cache):
        monkeypatch.setenv("RATE_LIMIT_REQUESTS", "2")
        get_settings.cache_clear()
        app = create_app(http_client=http_client, cache_backend=memory_cache)
        with TestClient(app) as client:
            yield client

    def test_rate_limited(self, limited_client):
        assert limited_client.get("/session").status_code == 200
        assert limited_client.get("/session").status_code == 200

        response = limited_client.get("/session")

        assert response.status_code == 429
        assert response.headers["X-RateLimit-Remaining"] == "0"
        assert "Retry-After" in response.headers

    def test_rotating_session_cookies_share_a_budget(self, limited_client):
        for n in range(2):
            limited_client.cookies.set("shopjoy_session", f"forged-{n}")
            assert limited_client.get("/session").status_code == 200

        limited_client.cookies.set("shopjoy_session", "forged-2")

        assert limited_client.get("/session").status_code == 429

    def test_idle_clients_are_evicted(self):
        limiter = RateLimitMiddleware(None, max_requests=2, window_seconds=60)
        limiter._hits["10.0.0.1"] = deque([0.0])
        limiter._hits["10.0.0.2"] = deque([100.0])
        limiter._last_sweep = 0.0

        limiter._sweep(120.0)

        assert "10.0.0.1" not in limiter._hits
        assert list(limiter._hits["10.0.0.2"]) == [100.0]

    def test_health_checks_not_limited(self, limited_client):
        for _ in range(5):
            assert limited_client.get("/health/live").status_code == 200

    def test_headers(self, client):
        response = client.get("/health/live", headers={"X-Request-ID": "req-42"})

        assert response.headers["X-Request-ID"] == "req-42"
        assert response.headers["Cache-Control"] == "no-store"
        assert response.headers["X-Frame-Options"] == "DENY"
