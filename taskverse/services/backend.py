"""Remote task API collaborators used by the task facade.

``SimulatedTaskBackend`` stands in for the HTTP task service: every call
waits ``latency_seconds`` and then succeeds. Its call log lets tests assert
which operations reached the backend.

``StoredTaskBackend`` keeps each user's tasks as persistence task records
(Firestore, or JSONL files when ``TASKVERSE_STORE_FORCE_FILE=1``), so tasks
survive a restart.
"""
from __future__ import annotations

import asyncio
from typing import Any, Dict, Iterable, List, Optional, Protocol, Tuple

from ..persistence import (
    TaskRecord,
    TaskType,
    create_task_record,
    delete_task_record,
    list_task_records,
    update_task_record,
)
from ..tasks import PRIORITY_RANK, Task, TaskDraft, TaskPriority, TaskStatus, fetch_stubbed_tasks


class TaskBackend(Protocol):
    async def fetch_tasks(self) -> List[Task]: ...

    async def create_task(self, draft: TaskDraft) -> Optional[str]:
        """Create the task; return the id the backend assigned, if any."""
        ...

    async def update_task(self, task: Task) -> None: ...

    async def delete_task(self, task_id: str) -> None: ...

    async def set_status(self, task_id: str, status: TaskStatus) -> None: ...

    async def set_verified(self, task_id: str) -> None: ...


class SimulatedTaskBackend:
    """Latency-only backend that serves the demo task list."""

    def __init__(
        self,
        *,
        tasks: Optional[Iterable[Task]] = None,
        latency_seconds: float = 0.5,
    ) -> None:
        self._tasks = list(fetch_stubbed_tasks() if tasks is None else tasks)
        self.latency_seconds = latency_seconds
        self.calls: List[Tuple[str, object]] = []

    async def _delay(self) -> None:
        if self.latency_seconds:
            await asyncio.sleep(self.latency_seconds)

    async def fetch_tasks(self) -> List[Task]:
        self.calls.append(("fetch_tasks", None))
        await self._delay()
        return list(self._tasks)

    async def create_task(self, draft: TaskDraft) -> Optional[str]:
        self.calls.append(("create_task", draft))
        await self._delay()
        return None

    async def update_task(self, task: Task) -> None:
        self.calls.append(("update_task", task))
        await self._delay()

    async def delete_task(self, task_id: str) -> None:
        self.calls.append(("delete_task", task_id))
        await self._delay()

    async def set_status(self, task_id: str, status: TaskStatus) -> None:
        self.calls.append(("set_status", (task_id, status)))
        await self._delay()

    async def set_verified(self, task_id: str) -> None:
        self.calls.append(("set_verified", task_id))
        await self._delay()


# =============================================================================
# Persistence-backed backend
# =============================================================================

_PRIORITY_BY_RANK = {rank: priority for priority, rank in PRIORITY_RANK.items()}


def record_fields(task: Task | TaskDraft) -> Dict[str, Any]:
    """Map a task onto task record fields."""

    category = task.category or None
    kind = (category or "").lower()
    return {
        "title": task.title,
        "description": task.description or "",
        "type": kind if kind in {t.value for t in TaskType} else TaskType.OTHER.value,
        "category": category,
        "deadline": task.due_date,
        "priority": PRIORITY_RANK[TaskPriority(task.priority)],
        "completed": TaskStatus(task.status) is TaskStatus.COMPLETED,
        "blockchain_verified": task.blockchain_verified,
    }


def task_from_record(record: TaskRecord) -> Task:
    """Rebuild a task from its stored record."""

    rank = min(max(record.priority, 1), 3)
    return Task.from_dict(
        {
            "id": record.id,
            "title": record.title,
            "description": record.description or None,
            "status": (TaskStatus.COMPLETED if record.completed else TaskStatus.PENDING).value,
            "priority": _PRIORITY_BY_RANK[rank].value,
            "due_date": record.deadline.isoformat() if record.deadline else None,
            "category": record.category,
            "created_at": record.created_at.isoformat(),
            "updated_at": record.updated_at.isoformat(),
            "blockchain_verified": record.blockchain_verified,
        }
    )


class StoredTaskBackend:
    """Backend that persists one user's tasks as task records.

    The persistence calls are blocking, so each runs in a worker thread.
    A user with no stored tasks can be given the demo tasks once.
    """

    def __init__(self, owner: str, *, seed_tasks: bool = False) -> None:
        self.owner = owner
        self.seed_tasks = seed_tasks

    async def fetch_tasks(self) -> List[Task]:
        records = await asyncio.to_thread(list_task_records, self.owner, 1000)
        if not records and self.seed_tasks:
            for task in fetch_stubbed_tasks():
                await asyncio.to_thread(create_task_record, self.owner, record_fields(task))
            records = await asyncio.to_thread(list_task_records, self.owner, 1000)
        # Records come back newest first; the collection keeps creation order.
        return [task_from_record(record) for record in reversed(records)]

    async def create_task(self, draft: TaskDraft) -> Optional[str]:
        record = await asyncio.to_thread(create_task_record, self.owner, record_fields(draft))
        return record.id

    async def update_task(self, task: Task) -> None:
        await asyncio.to_thread(update_task_record, self.owner, task.id, record_fields(task))

    async def delete_task(self, task_id: str) -> None:
        await asyncio.to_thread(delete_task_record, self.owner, task_id)

    async def set_status(self, task_id: str, status: TaskStatus) -> None:
        await asyncio.to_thread(
            update_task_record, self.owner, task_id, {"completed": status is TaskStatus.COMPLETED}
        )

    async def set_verified(self, task_id: str) -> None:
        await asyncio.to_thread(update_task_record, self.owner, task_id, {"blockchain_verified": True})
