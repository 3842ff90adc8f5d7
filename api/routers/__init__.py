"""API routers, mounted by api.main."""

from .auth import router as auth_router
from .tasks import router as tasks_router
from .wallet import router as wallet_router

__all__ = ["auth_router", "tasks_router", "wallet_router"]
