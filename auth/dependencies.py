"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

Access tokens are accepted only from the Authorization: Bearer <token>
header. The refresh cookie is never treated as an access credential.

get_current_user() resolves the header to an active User through
AuthCore.authenticate(); any AuthError it raises propagates to the
exception handler in api/main.py, which maps it to 401/404.
require_admin() adds the admin-rank check (403).

Layer rule: auth/dependencies.py may import from fastapi because it is part
of the FastAPI dependency injection system. It does not import from api/.
"""

from __future__ import annotations

from fastapi import HTTPException, Request

from auth.models import User
from auth.service import AuthCore


def get_auth_core(request: Request) -> AuthCore:
    """Return the AuthCore built in the app lifespan."""
    return request.app.state.auth_core


def extract_bearer_token(auth_header: str | None) -> str | None:
    """Return the token from 'Bearer <token>', or None for any other shape."""
    if not auth_header:
        return None
    parts = auth_header.split(" ")
    if len(parts) != 2 or parts[0] != "Bearer" or not parts[1]:
        return None
    return parts[1]


def get_current_user(request: Request) -> User:
    """Require a valid access token. Raises HTTP 401 if the header is missing.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(user: User = Depends(get_current_user)): ...
    """
    token = extract_bearer_token(request.headers.get("Authorization"))
    if token is None:
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthorized", "message": "Authorization header is required."},
            headers={"WWW-Authenticate": "Bearer"},
        )
    return get_auth_core(request).authenticate(token)


def require_admin(request: Request) -> User:
    """Require an active admin. 401 if unauthenticated, 403 if not admin."""
    user = get_current_user(request)
    return get_auth_core(request).authorize_admin(user)
