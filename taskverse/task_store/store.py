"""In-memory task store built around a pure reducer.

Architecture:
- ``TaskState`` is an immutable snapshot: the canonical collection, the
  active filter/sort and the derived view.
- ``reduce(state, command, now=...)`` is the only transition function. It
  never raises for expected conditions; failures come back as an
  ``Outcome`` carrying the unchanged state and the error.
- ``TaskStore`` owns one current snapshot and exposes one method per
  command.

Missing ids:
- update/complete/verify fail with NotFound.
- delete treats a missing id as a successful no-op so repeated deletes are
  idempotent.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable, Iterable, Optional, Tuple

from ..errors import NotFound, Outcome, ValidationError
from ..tasks import Task, TaskDraft, TaskStatus
from .views import TaskFilter, TaskSort, build_view, coerce_filter, coerce_sort

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]
IdFactory = Callable[[], str]

_TICK = timedelta(microseconds=1)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TaskAction(str, Enum):
    """Closed set of store commands."""

    LOAD = "load"
    ADD = "add"
    UPDATE = "update"
    DELETE = "delete"
    COMPLETE = "complete"
    VERIFY = "verify"
    SET_FILTER = "set_filter"
    SET_SORT = "set_sort"


@dataclass(frozen=True, slots=True)
class TaskCommand:
    """A store command and its payload.

    Payloads: LOAD takes an iterable of Task, ADD a TaskDraft, UPDATE a
    Task, DELETE/COMPLETE/VERIFY a task id, SET_FILTER a TaskFilter value,
    SET_SORT a TaskSort value.
    """

    action: TaskAction
    payload: Any = None


@dataclass(frozen=True, slots=True)
class TaskState:
    """Immutable snapshot of the store."""

    tasks: Tuple[Task, ...] = ()
    filter: TaskFilter = TaskFilter.ALL
    sort: TaskSort = TaskSort.DUE_DATE
    view: Tuple[Task, ...] = field(default=())

    def find(self, task_id: str) -> Optional[Task]:
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None

    def with_tasks(self, tasks: Iterable[Task]) -> "TaskState":
        tasks = tuple(tasks)
        return replace(self, tasks=tasks, view=build_view(tasks, self.filter, self.sort))


def _bump(previous: datetime, now: datetime) -> datetime:
    """Return a timestamp strictly after ``previous``."""
    return now if now > previous else previous + _TICK


def _replace_task(state: TaskState, updated: Task) -> TaskState:
    return state.with_tasks(updated if t.id == updated.id else t for t in state.tasks)


def _not_found(state: TaskState, task_id: str) -> Outcome[TaskState]:
    return Outcome.failure(NotFound(f"Task {task_id!r} not found."), state)


def _load(state: TaskState, tasks: Iterable[Task]) -> Outcome[TaskState]:
    tasks = tuple(tasks)
    seen = set()
    for task in tasks:
        if task.id in seen:
            return Outcome.failure(ValidationError(f"Duplicate task id {task.id!r}."), state)
        seen.add(task.id)
    return Outcome.success(state.with_tasks(tasks))


def _add(state: TaskState, draft: TaskDraft, now: datetime, new_id: IdFactory) -> Outcome[TaskState]:
    try:
        draft = draft.validated()
    except ValidationError as exc:
        return Outcome.failure(exc, state)

    task_id = new_id()
    while state.find(task_id) is not None:
        task_id = new_id()

    task = Task(
        id=task_id,
        title=draft.title,
        status=draft.status,
        priority=draft.priority,
        created_at=now,
        updated_at=now,
        description=draft.description,
        due_date=draft.due_date,
        category=draft.category,
        blockchain_verified=draft.blockchain_verified,
    )
    return Outcome.success(state.with_tasks(state.tasks + (task,)))


def _update(state: TaskState, task: Task, now: datetime) -> Outcome[TaskState]:
    current = state.find(task.id)
    if current is None:
        return _not_found(state, task.id)
    if not (task.title or "").strip():
        return Outcome.failure(ValidationError("Task title is required."), state)
    updated = replace(
        task,
        title=task.title.strip(),
        created_at=current.created_at,
        updated_at=_bump(current.updated_at, now),
        # Verification is sticky.
        blockchain_verified=current.blockchain_verified or task.blockchain_verified,
    )
    return Outcome.success(_replace_task(state, updated))


def _delete(state: TaskState, task_id: str) -> Outcome[TaskState]:
    if state.find(task_id) is None:
        return Outcome.success(state)
    return Outcome.success(state.with_tasks(t for t in state.tasks if t.id != task_id))


def _complete(state: TaskState, task_id: str, now: datetime) -> Outcome[TaskState]:
    current = state.find(task_id)
    if current is None:
        return _not_found(state, task_id)
    status = TaskStatus.PENDING if current.is_completed else TaskStatus.COMPLETED
    updated = replace(current, status=status, updated_at=_bump(current.updated_at, now))
    return Outcome.success(_replace_task(state, updated))


def _verify(state: TaskState, task_id: str) -> Outcome[TaskState]:
    current = state.find(task_id)
    if current is None:
        return _not_found(state, task_id)
    if current.blockchain_verified:
        return Outcome.success(state)
    return Outcome.success(_replace_task(state, replace(current, blockchain_verified=True)))


def _set_filter(state: TaskState, value: Any) -> Outcome[TaskState]:
    try:
        kind = coerce_filter(value)
    except ValidationError as exc:
        return Outcome.failure(exc, state)
    return Outcome.success(
        replace(state, filter=kind, view=build_view(state.tasks, kind, state.sort))
    )


def _set_sort(state: TaskState, value: Any) -> Outcome[TaskState]:
    try:
        key = coerce_sort(value)
    except ValidationError as exc:
        return Outcome.failure(exc, state)
    return Outcome.success(
        replace(state, sort=key, view=build_view(state.tasks, state.filter, key))
    )


def reduce(
    state: TaskState,
    command: TaskCommand,
    *,
    now: Optional[datetime] = None,
    new_id: IdFactory = lambda: str(uuid.uuid4()),
) -> Outcome[TaskState]:
    """Apply ``command`` to ``state`` and return the resulting snapshot."""

    now = now or utc_now()
    action = command.action
    payload = command.payload

    if action is TaskAction.LOAD:
        return _load(state, payload or ())
    if action is TaskAction.ADD:
        return _add(state, payload, now, new_id)
    if action is TaskAction.UPDATE:
        return _update(state, payload, now)
    if action is TaskAction.DELETE:
        return _delete(state, payload)
    if action is TaskAction.COMPLETE:
        return _complete(state, payload, now)
    if action is TaskAction.VERIFY:
        return _verify(state, payload)
    if action is TaskAction.SET_FILTER:
        return _set_filter(state, payload)
    if action is TaskAction.SET_SORT:
        return _set_sort(state, payload)
    return Outcome.failure(ValidationError(f"Unknown task action {action!r}."), state)


class TaskStore:
    """Owner of the canonical task collection.

    Reads return the current immutable snapshot; writes go through the
    command methods, each of which returns the ``Outcome`` of the
    transition. The snapshot is only replaced on success.
    """

    def __init__(
        self,
        tasks: Iterable[Task] = (),
        *,
        task_filter: TaskFilter = TaskFilter.ALL,
        task_sort: TaskSort = TaskSort.DUE_DATE,
        clock: Clock = utc_now,
        id_factory: Optional[IdFactory] = None,
    ) -> None:
        self._clock = clock
        self._id_factory = id_factory or (lambda: str(uuid.uuid4()))
        self._state = TaskState(filter=task_filter, sort=task_sort)
        tasks = tuple(tasks)
        if tasks:
            outcome = self.dispatch(TaskCommand(TaskAction.LOAD, tasks))
            if outcome.error is not None:
                raise outcome.error

    @property
    def state(self) -> TaskState:
        return self._state

    @property
    def tasks(self) -> Tuple[Task, ...]:
        return self._state.tasks

    @property
    def view(self) -> Tuple[Task, ...]:
        return self._state.view

    def get(self, task_id: str) -> Optional[Task]:
        return self._state.find(task_id)

    def dispatch(self, command: TaskCommand, *, new_id: Optional[IdFactory] = None) -> Outcome[TaskState]:
        outcome = reduce(self._state, command, now=self._clock(), new_id=new_id or self._id_factory)
        if outcome.ok:
            self._state = outcome.value
        else:
            logger.debug("Task command %s rejected: %s", command.action.value, outcome.error)
        return outcome

    def load_tasks(self, tasks: Iterable[Task]) -> Outcome[TaskState]:
        return self.dispatch(TaskCommand(TaskAction.LOAD, tuple(tasks)))

    def add_task(self, draft: TaskDraft, task_id: Optional[str] = None) -> Outcome[TaskState]:
        """Add a task; ``task_id`` keeps an id already assigned by the backend."""
        if task_id is None:
            return self.dispatch(TaskCommand(TaskAction.ADD, draft))
        if self.get(task_id) is not None:
            return Outcome.failure(ValidationError(f"Duplicate task id {task_id!r}."), self._state)
        return self.dispatch(TaskCommand(TaskAction.ADD, draft), new_id=lambda: task_id)

    def update_task(self, task: Task) -> Outcome[TaskState]:
        return self.dispatch(TaskCommand(TaskAction.UPDATE, task))

    def delete_task(self, task_id: str) -> Outcome[TaskState]:
        return self.dispatch(TaskCommand(TaskAction.DELETE, task_id))

    def complete_task(self, task_id: str) -> Outcome[TaskState]:
        return self.dispatch(TaskCommand(TaskAction.COMPLETE, task_id))

    def verify_on_chain(self, task_id: str) -> Outcome[TaskState]:
        return self.dispatch(TaskCommand(TaskAction.VERIFY, task_id))

    def set_filter(self, kind: TaskFilter | str) -> Outcome[TaskState]:
        return self.dispatch(TaskCommand(TaskAction.SET_FILTER, kind))

    def set_sort(self, key: TaskSort | str) -> Outcome[TaskState]:
        return self.dispatch(TaskCommand(TaskAction.SET_SORT, key))


def last_added(before: TaskState, after: TaskState) -> Optional[Task]:
    """Return the task present in ``after`` but not ``before`` (add results)."""
    known = {t.id for t in before.tasks}
    for task in reversed(after.tasks):
        if task.id not in known:
            return task
    return None

