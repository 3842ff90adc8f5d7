"""Task facade: remote task API + in-memory store.

Every async operation awaits the ``TaskBackend`` first and only then
applies the matching store transition, so a failed remote call never
changes local state. Operations run on one event loop; results are applied
in the order the awaited calls finish.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Literal, Optional, TypeVar

from ..analysis import (
    PrioritizationResult,
    Prioritizer,
    SimulatedPrioritizer,
    TaskAnalytics,
    compute_analytics,
)
from ..errors import ExternalCallFailed, NotFound, Outcome, TaskVerseError, ValidationError
from ..logs import log_activity
from ..task_store import TaskFilter, TaskSort, TaskState, TaskStore, last_added
from ..tasks import Task, TaskDraft, TaskStatus
from .backend import TaskBackend
from .blockchain_context import BlockchainContext

logger = logging.getLogger(__name__)

T = TypeVar("T")
Notifier = Callable[..., Any]

ChainAction = Literal["verified", "anchored", "already_verified"]


@dataclass(frozen=True, slots=True)
class ChainReceipt:
    """What happened when a task was sent to the ledger."""

    task_id: str
    action: ChainAction
    tx_hash: Optional[str] = None

    def to_api_dict(self) -> dict:
        return {"taskId": self.task_id, "action": self.action, "txHash": self.tx_hash}


class TaskContext:
    """Orchestrates task CRUD, view settings, AI tips and analytics."""

    def __init__(
        self,
        store: TaskStore,
        backend: TaskBackend,
        *,
        prioritizer: Optional[Prioritizer] = None,
        notify: Notifier = log_activity,
        user: Optional[str] = None,
    ) -> None:
        self.store = store
        self.backend = backend
        self.prioritizer = prioritizer or SimulatedPrioritizer()
        self.user = user
        self.last_error: Optional[TaskVerseError] = None
        self.ai_motivational_tip: Optional[str] = None
        self.analytics: Optional[TaskAnalytics] = None
        self._notify = notify
        self._in_flight = 0

    # -- read side -------------------------------------------------------

    @property
    def state(self) -> TaskState:
        return self.store.state

    @property
    def pending(self) -> bool:
        """True while any remote call is awaiting a result."""
        return self._in_flight > 0

    # -- helpers ---------------------------------------------------------

    def _toast(
        self,
        kind: str,
        title: str,
        description: str,
        *,
        error: bool = False,
        task_id: Optional[str] = None,
    ) -> None:
        self._notify(
            kind=kind,
            title=title,
            description=description,
            variant="destructive" if error else "default",
            task_id=task_id,
            user=self.user,
        )

    def _record_failure(
        self,
        kind: str,
        error: TaskVerseError,
        task_id: Optional[str] = None,
        *,
        toast: bool = True,
    ) -> None:
        self.last_error = error
        logger.warning("%s failed: %s", kind, error)
        if toast:
            self._toast(kind, "Error", error.message, error=True, task_id=task_id)

    async def _remote(self, call: Awaitable[T], default: str) -> Outcome[T]:
        """Await a backend call, converting any exception to ExternalCallFailed."""
        self._in_flight += 1
        try:
            value = await call
        except Exception as exc:
            error = ExternalCallFailed(str(exc).strip() or default)
            return Outcome.failure(error)
        finally:
            self._in_flight -= 1
        return Outcome.success(value)

    def _settle(
        self,
        kind: str,
        outcome: Outcome[Any],
        task_id: Optional[str] = None,
        *,
        toast: bool = True,
    ) -> bool:
        if outcome.ok:
            self.last_error = None
            return True
        self._record_failure(kind, outcome.error, task_id, toast=toast)
        return False

    # -- CRUD ------------------------------------------------------------

    async def fetch_tasks(self) -> Outcome[tuple]:
        remote = await self._remote(self.backend.fetch_tasks(), "Failed to fetch tasks")
        if not self._settle("fetch_tasks", remote):
            return Outcome.failure(remote.error)
        loaded = self.store.load_tasks(remote.value)
        if not self._settle("fetch_tasks", loaded):
            return Outcome.failure(loaded.error)
        logger.info("Loaded %d tasks", len(loaded.value.tasks))
        return Outcome.success(loaded.value.view)

    async def add_task(self, draft: TaskDraft) -> Outcome[Task]:
        try:
            draft = draft.validated()
        except ValidationError as exc:
            self._record_failure("add_task", exc)
            return Outcome.failure(exc)

        remote = await self._remote(self.backend.create_task(draft), "Failed to add task")
        if not self._settle("add_task", remote):
            return Outcome.failure(remote.error)

        before = self.store.state
        # A backend that stores tasks returns the id it assigned.
        outcome = self.store.add_task(draft, remote.value)
        if not self._settle("add_task", outcome):
            return Outcome.failure(outcome.error)
        task = last_added(before, outcome.value)
        self._toast("add_task", "Task added", "Your task has been added successfully.", task_id=task.id)
        return Outcome.success(task)

    async def update_task(self, task: Task) -> Outcome[Task]:
        if self.store.get(task.id) is None:
            error = NotFound(f"Task {task.id!r} not found.")
            self._record_failure("update_task", error, task.id)
            return Outcome.failure(error)

        remote = await self._remote(self.backend.update_task(task), "Failed to update task")
        if not self._settle("update_task", remote, task.id):
            return Outcome.failure(remote.error)

        outcome = self.store.update_task(task)
        if not self._settle("update_task", outcome, task.id):
            return Outcome.failure(outcome.error)
        self._toast("update_task", "Task updated", "Your task has been updated successfully.", task_id=task.id)
        return Outcome.success(outcome.value.find(task.id))

    async def delete_task(self, task_id: str) -> Outcome[None]:
        remote = await self._remote(self.backend.delete_task(task_id), "Failed to delete task")
        if not self._settle("delete_task", remote, task_id):
            return Outcome.failure(remote.error)

        existed = self.store.get(task_id) is not None
        self.store.delete_task(task_id)
        if existed:
            self._toast("delete_task", "Task deleted", "Your task has been deleted successfully.", task_id=task_id)
        return Outcome.success(None)

    async def complete_task(self, task_id: str) -> Outcome[Task]:
        """Toggle a task between pending and completed."""

        current = self.store.get(task_id)
        if current is None:
            error = NotFound(f"Task {task_id!r} not found.")
            self._record_failure("complete_task", error, task_id)
            return Outcome.failure(error)

        target = TaskStatus.PENDING if current.is_completed else TaskStatus.COMPLETED
        remote = await self._remote(
            self.backend.set_status(task_id, target), "Failed to update task status"
        )
        if not self._settle("complete_task", remote, task_id):
            return Outcome.failure(remote.error)

        # Apply the status sent to the backend; an overlapping toggle may
        # already have set it.
        latest = self.store.get(task_id)
        if latest is not None and latest.status is target:
            task = latest
        else:
            outcome = self.store.complete_task(task_id)
            if not self._settle("complete_task", outcome, task_id):
                return Outcome.failure(outcome.error)
            task = outcome.value.find(task_id)
        if task.is_completed:
            self._toast("complete_task", "Task completed", "Your task has been marked as completed.", task_id=task_id)
        else:
            self._toast("complete_task", "Task reopened", "Your task has been reopened.", task_id=task_id)
        return Outcome.success(task)

    async def verify_task_on_blockchain(
        self, task_id: str, chain: BlockchainContext
    ) -> Outcome[ChainReceipt]:
        """Record a task on the ledger.

        Completed tasks are marked completed on chain and, once the ledger
        confirms, flagged ``blockchain_verified``. Pending tasks only get
        their hash anchored and stay unverified. Verified tasks are left
        alone.
        """

        task = self.store.get(task_id)
        if task is None:
            error = NotFound(f"Task {task_id!r} not found.")
            self._record_failure("verify_task", error, task_id)
            return Outcome.failure(error)

        if task.blockchain_verified:
            return Outcome.success(ChainReceipt(task_id=task_id, action="already_verified"))

        self._in_flight += 1
        try:
            if task.is_completed:
                ledger = await chain.verify_task_on_blockchain(task_id)
            else:
                ledger = await chain.add_task_to_blockchain(task_id, task.title)
        finally:
            self._in_flight -= 1

        # The blockchain facade already notified about ledger failures.
        if not self._settle("verify_task", ledger, task_id, toast=False):
            return Outcome.failure(ledger.error)

        if not task.is_completed:
            return Outcome.success(
                ChainReceipt(task_id=task_id, action="anchored", tx_hash=ledger.value)
            )

        remote = await self._remote(
            self.backend.set_verified(task_id), "Failed to save verification"
        )
        if not self._settle("verify_task", remote, task_id):
            return Outcome.failure(remote.error)

        outcome = self.store.verify_on_chain(task_id)
        if not self._settle("verify_task", outcome, task_id):
            return Outcome.failure(outcome.error)
        self._toast(
            "verify_task",
            "Task verified on blockchain",
            "Your task completion has been verified on the blockchain.",
            task_id=task_id,
        )
        return Outcome.success(ChainReceipt(task_id=task_id, action="verified"))

    # -- view ------------------------------------------------------------

    def set_filter(self, kind: TaskFilter | str) -> Outcome[TaskState]:
        outcome = self.store.set_filter(kind)
        self._settle("set_filter", outcome)
        return outcome

    def set_sort(self, key: TaskSort | str) -> Outcome[TaskState]:
        outcome = self.store.set_sort(key)
        self._settle("set_sort", outcome)
        return outcome

    # -- AI and analytics ------------------------------------------------

    async def get_ai_prioritization(self) -> Outcome[PrioritizationResult]:
        remote = await self._remote(
            self.prioritizer.prioritize(self.store.tasks), "Failed to get AI prioritization"
        )
        if not self._settle("ai_prioritize", remote):
            return remote
        self.ai_motivational_tip = remote.value.motivational_tip
        self._toast("ai_prioritize", "AI Prioritization Complete", "Your tasks have been prioritized by AI.")
        return remote

    async def fetch_analytics(self) -> Outcome[TaskAnalytics]:
        analytics = compute_analytics(self.store.tasks)
        self.analytics = analytics
        return Outcome.success(analytics)
