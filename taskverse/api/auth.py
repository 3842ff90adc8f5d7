"""Resolve the calling user from a Google ID token or the dev bypass header."""
from __future__ import annotations

import os
from functools import lru_cache

from fastapi import Header, HTTPException, status
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token

DEV_BYPASS_ENV = "TASKVERSE_DEV_AUTH_BYPASS"
CLIENT_ID_ENV = "GOOGLE_OAUTH_CLIENT_ID"
ALLOWED_AUDIENCE_ENV = "GOOGLE_OAUTH_AUDIENCE"


class AuthError(HTTPException):
    def __init__(self, detail: str, code: int = status.HTTP_401_UNAUTHORIZED) -> None:
        super().__init__(status_code=code, detail=detail)


def dev_bypass_enabled() -> bool:
    return os.getenv(DEV_BYPASS_ENV) == "1"


@lru_cache
def _audiences() -> tuple[str, ...]:
    raw = os.getenv(ALLOWED_AUDIENCE_ENV) or os.getenv(CLIENT_ID_ENV) or ""
    return tuple(aud.strip() for aud in raw.split(",") if aud.strip())


def verify_google_token(token: str) -> str:
    """Return the email claim of a Google ID token valid for any audience."""

    audiences = _audiences()
    if not audiences:
        raise AuthError("Server missing GOOGLE_OAUTH_CLIENT_ID or audience config.")

    request = google_requests.Request()
    last_error: ValueError | None = None
    for audience in audiences:
        try:
            claims = id_token.verify_oauth2_token(token, request, audience)
        except ValueError as exc:
            last_error = exc
            continue
        email = claims.get("email")
        if not email:
            raise AuthError("Token missing email claim.")
        return email.lower()
    raise AuthError(f"Invalid token: {last_error}")


def get_current_user(
    authorization: str | None = Header(default=None, alias="Authorization"),
    dev_user: str | None = Header(default=None, alias="X-User-Email"),
) -> str:
    """Return the caller's email, lower-cased.

    With TASKVERSE_DEV_AUTH_BYPASS=1 the X-User-Email header is trusted
    as-is (local development and tests only).
    """

    if dev_bypass_enabled():
        if not dev_user or not dev_user.strip():
            raise AuthError("Auth bypass enabled but X-User-Email header missing (dev only).")
        return dev_user.strip().lower()

    scheme, _, token = (authorization or "").partition(" ")
    if scheme != "Bearer" or not token.strip():
        raise AuthError("Missing Bearer token.")
    return verify_google_token(token.strip())
