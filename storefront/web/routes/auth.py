"""
Authentication Routes

Password login, registration, logout and the OAuth2 redirect callback. The
browser only ever receives an opaque session id cookie; the backend token
stays server side.
"""

from typing import Any, Dict, Optional
from urllib.parse import urlencode

import structlog
from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import BaseModel, ConfigDict, Field

from storefront.auth.session import AuthService, Session
from storefront.config import get_settings
from storefront.errors import InvalidToken
from storefront.web.dependencies import get_auth_service, get_session, session_id_from, submit_form

logger = structlog.get_logger(__name__)
router = APIRouter()


class LoginRequest(BaseModel):
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)


class RegisterRequest(BaseModel):
    """Blank fields are reported as field errors rather than rejected outright"""
    model_config = ConfigDict(populate_by_name=True)

    username: str = ""
    email: str = ""
    password: str = ""
    first_name: str = Field(default="", alias="firstName")
    last_name: str = Field(default="", alias="lastName")
    phone: Optional[str] = None


def dashboard_for(session: Session) -> str:
    return "/admin/dashboard" if session.is_admin else "/customer/dashboard"


def session_view(session: Session) -> Dict[str, Any]:
    return {
        "id": session.id,
        "username": session.username,
        "role": session.role.value,
        "provider": session.provider,
        "isAdmin": session.is_admin,
        "isCustomer": session.is_customer,
    }


def set_session_cookie(response, session: Session) -> None:
    settings = get_settings()
    response.set_cookie(
        settings.session.cookie_name,
        session.session_id,
        max_age=settings.session.ttl_seconds,
        httponly=True,
        samesite="lax",
        secure=settings.session.cookie_secure,
    )


def login_redirect(error: Optional[str] = None) -> RedirectResponse:
    settings = get_settings()
    url = settings.session.login_path
    if error:
        url = f"{url}?{urlencode({'error': error})}"
    response = RedirectResponse(url, status_code=303)
    response.delete_cookie(settings.session.cookie_name)
    return response


@router.get("/login")
async def login_page(
    error: Optional[str] = Query(default=None),
    session: Optional[Session] = Depends(get_session),
) -> Dict[str, Any]:
    """Login view; already signed-in users are pointed at their dashboard"""
    return {
        "view": "login",
        "error": error,
        "redirect": dashboard_for(session) if session else None,
    }


@router.post("/login")
async def login(body: LoginRequest, auth: AuthService = Depends(get_auth_service)) -> JSONResponse:
    session = await auth.login(body.username, body.password)
    response = JSONResponse({"user": session_view(session), "redirect": dashboard_for(session)})
    set_session_cookie(response, session)
    return response


@router.post("/logout")
async def logout(request: Request, auth: AuthService = Depends(get_auth_service)) -> RedirectResponse:
    await auth.logout(session_id_from(request))
    return login_redirect()


@router.get("/oauth2/callback")
async def oauth2_callback(
    token: Optional[str] = Query(default=None),
    provider: Optional[str] = Query(default=None),
    error: Optional[str] = Query(default=None),
    auth: AuthService = Depends(get_auth_service),
) -> RedirectResponse:
    """Backend redirect target: ``?token=...&provider=...`` or ``?error=<code>``"""
    try:
        session = await auth.oauth2_callback(token, provider, error)
    except InvalidToken as e:
        logger.info("OAuth2 callback rejected", reason=str(e))
        return login_redirect(str(e))

    response = RedirectResponse(dashboard_for(session), status_code=303)
    set_session_cookie(response, session)
    return response


@router.get("/session")
async def current_session(session: Optional[Session] = Depends(get_session)) -> Dict[str, Any]:
    return {"authenticated": session is not None, "user": session_view(session) if session else None}


@router.post("/register")
async def register(body: RegisterRequest, auth: AuthService = Depends(get_auth_service)) -> JSONResponse:
    """Create a customer account, then send the user to the login page"""
    form = body.model_dump(by_alias=True, exclude_none=True)
    values = {k: v for k, v in form.items() if k != "password"}
    user = await submit_form(values, auth.register(form))
    return JSONResponse(
        {"user": user.model_dump(mode="json", by_alias=True), "redirect": get_settings().session.login_path},
        status_code=201,
    )


@router.get("/register/availability")
async def registration_availability(
    username: Optional[str] = Query(default=None),
    email: Optional[str] = Query(default=None),
    auth: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    """Inline checks while the registration form is being filled in"""
    result: Dict[str, Any] = {}
    if username:
        result["username"] = await auth.auth_api.username_available(username.strip())
    if email:
        result["email"] = await auth.auth_api.email_available(email.strip().lower())
    return result
