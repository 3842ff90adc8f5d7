"""Facades shared by the CLI and API."""

from .backend import SimulatedTaskBackend, StoredTaskBackend, TaskBackend
from .blockchain_context import BlockchainContext
from .session import SessionRegistry, UserSession, build_session
from .task_context import ChainReceipt, TaskContext

__all__ = [
    "SimulatedTaskBackend",
    "StoredTaskBackend",
    "TaskBackend",
    "BlockchainContext",
    "SessionRegistry",
    "UserSession",
    "build_session",
    "ChainReceipt",
    "TaskContext",
]
