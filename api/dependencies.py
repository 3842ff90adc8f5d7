"""Shared dependencies and helper functions for API routers.

Usage in routers:
    from api.dependencies import get_current_user, get_session, raise_for_error
"""
from __future__ import annotations

import os
from typing import Any, NoReturn

from fastapi import Depends, HTTPException, Request

from taskverse.api.auth import get_current_user  # noqa: F401 - re-export
from taskverse.config import Settings
from taskverse.errors import (
    AlreadyInProgress,
    ExternalCallFailed,
    InvalidTransition,
    NotFound,
    Outcome,
    ProviderUnavailable,
    TaskVerseError,
    ValidationError,
)
from taskverse.services import UserSession


# =============================================================================
# Configuration Constants
# =============================================================================

ALLOWED_ORIGINS = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:3000",
    os.getenv("TASKVERSE_ALLOWED_FRONTEND", "").strip(),
]

ERROR_STATUS = {
    ValidationError: 400,
    NotFound: 404,
    ProviderUnavailable: 503,
    AlreadyInProgress: 409,
    InvalidTransition: 409,
    ExternalCallFailed: 502,
}


# =============================================================================
# App state accessors
# =============================================================================

def get_settings(request: Request) -> Settings:
    return request.app.state.settings


async def get_session(
    request: Request,
    user: str = Depends(get_current_user),
) -> UserSession:
    """Return the caller's session, loading tasks and wallet on first use."""
    return await request.app.state.sessions.get(user)


# =============================================================================
# Error mapping
# =============================================================================

def status_for(error: TaskVerseError) -> int:
    for kind, code in ERROR_STATUS.items():
        if isinstance(error, kind):
            return code
    return 500


def raise_for_error(error: TaskVerseError) -> NoReturn:
    raise HTTPException(status_code=status_for(error), detail=error.to_api_dict())


def unwrap(outcome: Outcome[Any]) -> Any:
    """Return the outcome's value or raise the mapped HTTPException."""
    if not outcome.ok:
        raise_for_error(outcome.error)
    return outcome.value
