"""Per-user wiring of the task and blockchain facades."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

from ..analysis import SimulatedPrioritizer
from ..config import Settings
from ..task_store import TaskStore
from ..wallet import SimulatedLedger, SimulatedWalletProvider, WalletStateMachine
from .backend import SimulatedTaskBackend, StoredTaskBackend, TaskBackend
from .blockchain_context import BlockchainContext
from .task_context import TaskContext

logger = logging.getLogger(__name__)

# Task owner for sessions without a signed-in user (the CLI).
LOCAL_OWNER = "local"


@dataclass(slots=True)
class UserSession:
    """The two facades one user works with, plus their simulated provider."""

    user: Optional[str]
    tasks: TaskContext
    chain: BlockchainContext
    provider: SimulatedWalletProvider
    started: bool = False
    _start_lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False, repr=False)

    async def start(self) -> None:
        """Load the task list and detect the wallet, once.

        Concurrent first requests wait for the same start-up.
        """
        if self.started:
            return
        async with self._start_lock:
            if self.started:
                return
            await self.tasks.fetch_tasks()
            await self.chain.detect_provider()
            self.started = True
        logger.info("Session ready for %s", self.user or "anonymous")


def _task_backend(settings: Settings, user: Optional[str]) -> TaskBackend:
    if settings.task_backend == "store":
        return StoredTaskBackend(user or LOCAL_OWNER, seed_tasks=settings.seed_tasks)
    return SimulatedTaskBackend(
        tasks=None if settings.seed_tasks else [],
        latency_seconds=settings.latency_seconds,
    )


def build_session(settings: Settings, user: Optional[str] = None) -> UserSession:
    """Assemble a session; tasks are kept in memory or stored per ``settings``."""

    backend = _task_backend(settings, user)
    provider = SimulatedWalletProvider(latency_seconds=settings.latency_seconds)
    ledger = SimulatedLedger(latency_seconds=settings.ledger_latency_seconds)
    machine = WalletStateMachine(target_chain_id=settings.target_chain_id)

    tasks = TaskContext(
        TaskStore(),
        backend,
        prioritizer=SimulatedPrioritizer(latency_seconds=settings.latency_seconds),
        user=user,
    )
    chain = BlockchainContext(machine, provider, ledger, user=user)
    return UserSession(user=user, tasks=tasks, chain=chain, provider=provider)


@dataclass(slots=True)
class SessionRegistry:
    """Sessions keyed by user email, created on first use."""

    settings: Settings
    sessions: Dict[str, UserSession] = field(default_factory=dict)

    async def get(self, user: str) -> UserSession:
        session = self.sessions.get(user)
        if session is None:
            session = build_session(self.settings, user)
            self.sessions[user] = session
        await session.start()
        return session
