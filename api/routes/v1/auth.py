"""
api/routes/v1/auth.py -- Registration, login, logout, token refresh, and profile endpoints.

Routes (mounted under /api/user/v1):
  POST /                -- register; 201 with the public profile
  POST /login           -- password login; access token in body, refresh artifact in cookie
  POST /logout          -- requires bearer; drops the refresh artifact and its cookie
  POST /token/refresh   -- refresh cookie -> new access token (and rotated cookie)
  GET  /me              -- requires bearer; current user's profile

Security:
  POST /login is rate-limited to 10 requests/minute per IP.
  Cache-Control: no-store on every response that carries a token.
  Unknown e-mail and wrong password return the same bad_credentials error.
  A refresh failure deletes the refresh cookie so the browser stops replaying it.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import LOGIN_RATE_LIMIT, limiter
from api.models import (
    ErrorDetail,
    ErrorResponse,
    LoginResponse,
    MessageResponse,
    UserCreateRequest,
    UserLoginRequest,
    UserResponse,
)
from auth.cookies import REFRESH_COOKIE_NAME, clear_refresh_cookie, set_refresh_cookie
from auth.dependencies import get_auth_core, get_current_user
from auth.errors import AccountInactiveError, AuthError, CredentialMismatchError, StorageError
from auth.models import LoginResult, User
from auth.service import AuthCore

# Auth policy:
# - POST /api/user/v1/:              public
# - POST /api/user/v1/login:         public, rate limited
# - POST /api/user/v1/token/refresh: public (the cookie is the credential)
# - POST /api/user/v1/logout:        requires auth (get_current_user)
# - GET  /api/user/v1/me:            requires auth (get_current_user)
router = APIRouter()


def _secure_cookies(request: Request) -> bool:
    return request.app.state.settings.secure_cookies


def _token_response(request: Request, core: AuthCore, result: LoginResult) -> JSONResponse:
    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(
            access_token=result.access_token,
            user_id=result.user_id,
            expires_in=core.config.access_token_ttl,
        ).model_dump(),
    )
    if result.refresh_token is not None:
        set_refresh_cookie(
            resp,
            result.refresh_token,
            max_age=core.config.refresh_token_ttl,
            secure=_secure_cookies(request),
        )
    resp.headers["Cache-Control"] = "no-store"
    return resp


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/", response_model=UserResponse, status_code=201)
def register(request: Request, body: UserCreateRequest) -> UserResponse:
    """Create a USER-level account. 409 on duplicate email or nickname."""
    core = get_auth_core(request)
    user = core.register(body.email, body.password, body.nickname)
    return UserResponse.from_user(user)


@limiter.limit(LOGIN_RATE_LIMIT)  # brute-force mitigation -- must be ABOVE @router to preserve FastAPI introspection
@router.post("/login", response_model=LoginResponse)
def login(request: Request, body: UserLoginRequest) -> JSONResponse:
    """Authenticate with email and password.

    The access token is returned in the body; the refresh artifact is set as
    an HTTP-only cookie and never appears in JSON.
    """
    core = get_auth_core(request)
    try:
        result = core.login(body.email, body.password)
    except (CredentialMismatchError, AccountInactiveError) as exc:
        resp = JSONResponse(
            status_code=401,
            content=ErrorResponse(error=ErrorDetail(code=exc.code, message=exc.message)).model_dump(),
        )
        resp.headers["Cache-Control"] = "no-store"
        return resp
    return _token_response(request, core, result)


@router.post("/token/refresh", response_model=LoginResponse)
def refresh_token(request: Request) -> JSONResponse:
    """Exchange the refresh cookie for a new access token.

    Stateful strategy: the cookie is rotated on every success, and the old
    value stops working. Stateless strategy: the cookie is left as is.
    """
    core = get_auth_core(request)
    artifact = request.cookies.get(REFRESH_COOKIE_NAME)
    if not artifact:
        return JSONResponse(
            status_code=401,
            content=ErrorResponse(
                error=ErrorDetail(code="unauthorized", message="Refresh token is required.")
            ).model_dump(),
        )
    try:
        result = core.refresh(artifact)
    except StorageError:
        raise
    except AuthError as exc:
        resp = JSONResponse(
            status_code=401,
            content=ErrorResponse(error=ErrorDetail(code=exc.code, message=exc.message)).model_dump(),
        )
        clear_refresh_cookie(resp, secure=_secure_cookies(request))
        return resp
    return _token_response(request, core, result)


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.post("/logout", response_model=MessageResponse)
def logout(request: Request, current_user: User = Depends(get_current_user)) -> JSONResponse:
    """Drop the server-side refresh artifact (stateful) and delete the cookie."""
    get_auth_core(request).logout(current_user.id)
    resp = JSONResponse(content=MessageResponse(message="Logout successful").model_dump())
    clear_refresh_cookie(resp, secure=_secure_cookies(request))
    return resp


@router.get("/me", response_model=UserResponse)
def me(request: Request, current_user: User = Depends(get_current_user)) -> UserResponse:
    """Return the profile of the authenticated user."""
    return UserResponse.from_user(get_auth_core(request).get_me(current_user.id))
