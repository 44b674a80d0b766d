"""
auth/cookies.py -- Refresh-artifact cookie helpers.

The refresh artifact never appears in a JSON body. It travels in a cookie:
  httponly=True:    JS cannot read it (XSS mitigation).
  secure=True:      HTTPS only. Settings.secure_cookies exists for local
                    plain-HTTP development and must stay True in production.
  samesite="none":  the browser front end is served from another origin and
                    calls the refresh endpoint cross-site with credentials.
  path="/", max_age = refresh lifetime (604800 s).
"""

from __future__ import annotations

from core.config import REFRESH_TOKEN_TTL

REFRESH_COOKIE_NAME = "refresh_token"


def set_refresh_cookie(response, value: str, max_age: int = REFRESH_TOKEN_TTL, secure: bool = True) -> None:
    """Write the refresh artifact cookie on a FastAPI/Starlette response."""
    response.set_cookie(
        REFRESH_COOKIE_NAME,
        value=value,
        max_age=max_age,
        path="/",
        httponly=True,
        secure=secure,
        samesite="none",
    )


def clear_refresh_cookie(response, secure: bool = True) -> None:
    """Expire the refresh cookie. Attributes must match the ones it was set with."""
    response.delete_cookie(
        REFRESH_COOKIE_NAME,
        path="/",
        httponly=True,
        secure=secure,
        samesite="none",
    )
