"""FastAPI service for TaskVerse."""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware

from api.dependencies import ALLOWED_ORIGINS, get_current_user, get_settings
from api.routers import auth_router, tasks_router, wallet_router
from taskverse import __version__
from taskverse.config import Settings, load_settings
from taskverse.logs import fetch_activity_entries
from taskverse.services import SessionRegistry

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the API. Each app owns its settings and per-user sessions."""

    settings = settings or load_settings()
    app = FastAPI(
        title="TaskVerse API",
        version=__version__,
        description="Task tracking with wallet-backed on-chain verification.",
    )
    app.state.settings = settings
    app.state.sessions = SessionRegistry(settings)

    origins = [origin for origin in ALLOWED_ORIGINS if origin]
    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.get("/health")
    def health_check(settings: Settings = Depends(get_settings)) -> dict:
        return {
            "status": "ok",
            "environment": settings.environment,
            "targetChainId": settings.target_chain_id,
            "version": __version__,
        }

    @app.get("/activity")
    def activity_feed(
        limit: int = Query(50, ge=1, le=200),
        user: str = Depends(get_current_user),
    ) -> dict:
        entries = fetch_activity_entries(limit, user=user)
        return {"entries": entries, "count": len(entries)}

    app.include_router(auth_router, prefix="/auth", tags=["auth"])
    app.include_router(tasks_router, prefix="/tasks", tags=["tasks"])
    app.include_router(wallet_router, prefix="/wallet", tags=["wallet"])

    logger.info("TaskVerse API configured for %s", settings.environment)
    return app


app = create_app()
