"""
Unit Tests - Tokens, Sessions and Role Guards
"""
import json
import time

import pytest

from storefront.auth.guards import RoleGuard, require_admin, require_customer
from storefront.auth.session import AuthService, Session, SessionStore, registration_errors
from storefront.auth.tokens import UNKNOWN_OAUTH2_ERROR, decode_token, oauth2_error_message
from storefront.domain.models import UserRole
from storefront.errors import AccessDenied, ApiError, ErrorCategory, InvalidToken, SessionExpired, ValidationFailed


@pytest.fixture
def store(session_cache):
    return SessionStore(cache=session_cache, leeway=0)


class TestDecodeToken:
    """Tests for JWT claim decoding"""

    def test_valid_token(self, make_token):
        claims = decode_token(make_token(username="alice", user_id=7, role="CUSTOMER"))

        assert claims.username == "alice"
        assert claims.user_id == 7
        assert claims.role == UserRole.CUSTOMER

    def test_role_is_case_insensitive(self, make_token):
        assert decode_token(make_token(role="admin")).role == UserRole.ADMIN

    def test_missing_token(self):
        with pytest.raises(InvalidToken, match="No authentication token received"):
            decode_token(None)

    def test_undecodable_token(self):
        with pytest.raises(InvalidToken, match="Invalid authentication token"):
            decode_token("not-a-jwt")

    @pytest.mark.parametrize("claims", [
        {"username": None},
        {"user_id": None},
        {"role": None},
        {"role": "SUPERUSER"},
    ])
    def test_missing_required_claims(self, make_token, claims):
        with pytest.raises(InvalidToken, match="missing required fields"):
            decode_token(make_token(**claims))

    def test_malformed_user_id(self, make_token):
        with pytest.raises(InvalidToken, match="malformed"):
            decode_token(make_token(user_id="seven"))

    def test_expired_token(self, make_token):
        with pytest.raises(InvalidToken, match="expired"):
            decode_token(make_token(expires_in=-30))

    def test_leeway_tolerates_skew(self, make_token):
        claims = decode_token(make_token(expires_in=-30), leeway=60)
        assert claims.expires_at < time.time()

    def test_token_without_expiry(self, make_token):
        assert decode_token(make_token(expires_in=None)).expires_at is None


class TestOAuth2Messages:
    """Tests for OAuth2 error codes"""

    def test_known_code(self):
        assert "email" in oauth2_error_message("no_email")
        assert oauth2_error_message("ACCESS_DENIED").startswith("Access was denied")

    def test_unknown_code(self):
        assert oauth2_error_message("weird") == UNKNOWN_OAUTH2_ERROR
        assert oauth2_error_message(None) == UNKNOWN_OAUTH2_ERROR


class TestSessionStore:
    """Tests for session create / hydrate / clear"""

    async def test_create_and_load(self, store, make_token):
        created = await store.create(make_token(username="alice", user_id=7))

        loaded = await store.load(created.session_id)

        assert loaded is not None
        assert loaded.id == 7
        assert loaded.username == "alice"
        assert loaded.is_customer

    async def test_session_ids_are_opaque(self, store, make_token):
        token = make_token()
        first = await store.create(token)
        second = await store.create(token)

        assert first.session_id != second.session_id
        assert token not in first.session_id

    async def test_unknown_session(self, store):
        assert await store.load("missing") is None
        assert await store.load(None) is None

    async def test_legacy_user_id_is_migrated(self, store, session_cache, make_token):
        """Sessions written with ``userId`` load with ``id`` and are rewritten"""
        await session_cache.set("legacy", {
            "session_id": "legacy",
            "token": make_token(user_id=7),
            "userId": 7,
            "username": "alice",
            "role": "CUSTOMER",
        })

        session = await store.load("legacy")

        assert session.id == 7
        stored = await session_cache.get("legacy")
        assert stored["id"] == 7
        assert "userId" not in stored

    async def test_session_without_user_id_is_discarded(self, store, session_cache, make_token):
        await session_cache.set("broken", {
            "session_id": "broken",
            "token": make_token(),
            "username": "alice",
            "role": "CUSTOMER",
        })

        assert await store.load("broken") is None
        assert await session_cache.get("broken") is None

    async def test_expired_token_ends_session(self, store, session_cache, make_token):
        session = await store.create(make_token(expires_in=3600))
        data = session.model_dump(mode="json")
        data["token"] = make_token(expires_in=-5)
        await session_cache.set(session.session_id, data)

        assert await store.load(session.session_id) is None
        assert await session_cache.get(session.session_id) is None

    async def test_clear(self, store, make_token):
        session = await store.create(make_token())

        await store.clear(session.session_id)

        assert await store.load(session.session_id) is None

    async def test_create_rejects_bad_token(self, store, make_token):
        with pytest.raises(InvalidToken):
            await store.create(make_token(role=None))


class TestAuthService:
    """Tests for login and the OAuth2 callback"""

    async def test_login(self, backend, api, store, make_token):
        backend.on("POST", "/auth/login", data={"token": make_token(username="root", user_id=1, role="ADMIN")})
        auth = AuthService(store, api.auth)

        session = await auth.login("root", "s3cret")

        assert session.is_admin
        assert await store.load(session.session_id) is not None

    async def test_login_rejected(self, backend, api, store):
        backend.on("POST", "/auth/login", status=401, body={
            "success": False,
            "message": "Invalid username or password",
            "errors": [{"code": "INVALID_CREDENTIALS"}],
        })
        auth = AuthService(store, api.auth)

        with pytest.raises(ApiError) as exc_info:
            await auth.login("root", "wrong")

        assert exc_info.value.category == ErrorCategory.UNAUTHORIZED
        assert str(exc_info.value) == "Invalid username or password"

    async def test_oauth2_success(self, api, store, make_token):
        session = await AuthService(store, api.auth).oauth2_callback(make_token())

        assert session.provider == "google"

    async def test_oauth2_error_code(self, api, store, make_token):
        with pytest.raises(InvalidToken) as exc_info:
            await AuthService(store, api.auth).oauth2_callback(make_token(), error="access_denied")

        assert str(exc_info.value) == oauth2_error_message("access_denied")

    async def test_oauth2_missing_token(self, api, store):
        with pytest.raises(InvalidToken, match="No authentication token"):
            await AuthService(store, api.auth).oauth2_callback(None, provider="github")


SIGN_UP = {
    "username": "bob",
    "email": " Bob@Example.com ",
    "password": "correct-horse",
    "firstName": "Bob",
    "lastName": "Stone",
}


class TestRegistration:
    """Tests for account registration"""

    def test_complete_form(self):
        assert registration_errors(SIGN_UP) == {}

    @pytest.mark.parametrize("changes,field", [
        ({"username": "b"}, "username"),
        ({"username": "bob smith"}, "username"),
        ({"email": "bob-at-example"}, "email"),
        ({"password": "short"}, "password"),
        ({"firstName": "  "}, "firstName"),
        ({"lastName": None}, "lastName"),
    ])
    def test_field_rules(self, changes, field):
        assert set(registration_errors(dict(SIGN_UP, **changes))) == {field}

    async def test_register_sends_customer_account(self, backend, api, store):
        backend.on("GET", "/auth/check-username", data={"available": True, "taken": False})
        backend.on("GET", "/auth/check-email", data={"available": True, "taken": False})
        backend.on("POST", "/auth/register", data={"userId": 12, "username": "bob", "userType": "CUSTOMER"})

        user = await AuthService(store, api.auth).register(SIGN_UP)

        assert user.id == 12
        sent = json.loads(backend.calls("POST", "/auth/register")[0].content)
        assert sent["userType"] == "CUSTOMER"
        assert sent["email"] == "bob@example.com"

    async def test_all_problems_reported_together(self, backend, api, store):
        backend.on("GET", "/auth/check-email", data={"available": False, "taken": True})

        with pytest.raises(ValidationFailed) as exc_info:
            await AuthService(store, api.auth).register(dict(SIGN_UP, username="b", password="short"))

        assert set(exc_info.value.field_errors) == {"username", "password", "email"}
        assert exc_info.value.field_errors["email"] == "An account with this email already exists"
        # an invalid username is never looked up
        assert backend.calls("GET", "/auth/check-username") == []
        assert backend.calls("POST", "/auth/register") == []

    async def test_rejected_by_backend(self, backend, api, store):
        backend.on("GET", "/auth/check-username", data={"available": True, "taken": False})
        backend.on("GET", "/auth/check-email", data={"available": True, "taken": False})
        backend.on("POST", "/auth/register", status=409, body={
            "success": False,
            "message": "Username already exists",
            "errors": [{"code": "DUPLICATE_RESOURCE"}],
        })

        with pytest.raises(ApiError):
            await AuthService(store, api.auth).register(SIGN_UP)


def _session(role: str) -> Session:
    return Session(session_id="s", token="t", id=1, username="u", role=UserRole.parse(role))


class TestRoleGuard:
    """Tests for role gating"""

    def test_no_session(self):
        with pytest.raises(SessionExpired):
            require_admin.check(None)

    def test_wrong_role(self):
        with pytest.raises(AccessDenied):
            require_admin.check(_session("CUSTOMER"))
        with pytest.raises(AccessDenied):
            require_customer.check(_session("ADMIN"))

    def test_matching_role(self):
        session = _session("ADMIN")
        assert require_admin.check(session) is session

    def test_roles_compared_case_insensitively(self):
        guard = RoleGuard("admin", "Customer")

        assert guard.admits(_session("ADMIN"))
        assert guard.admits(_session("CUSTOMER"))
        assert _session("ADMIN").has_role("admin")

    def test_unknown_role_rejected(self):
        with pytest.raises(ValueError):
            RoleGuard("manager")
