"""Filter and sort helpers that derive the visible task list.

Every function here is pure: it takes the canonical collection and returns
a new tuple. The store calls ``build_view`` after every transition so the
view never lags behind the collection.
"""
from __future__ import annotations

from datetime import date
from enum import Enum
from typing import Iterable, Tuple

from ..errors import ValidationError
from ..tasks import PRIORITY_RANK, Task, TaskStatus


class TaskFilter(str, Enum):
    ALL = "all"
    PENDING = "pending"
    COMPLETED = "completed"


class TaskSort(str, Enum):
    DUE_DATE = "dueDate"
    PRIORITY = "priority"
    CREATED_AT = "createdAt"


def coerce_filter(value) -> TaskFilter:
    try:
        return TaskFilter(value)
    except ValueError as exc:
        raise ValidationError(
            f"Invalid filter {value!r}. Must be one of: all, pending, completed."
        ) from exc


def coerce_sort(value) -> TaskSort:
    try:
        return TaskSort(value)
    except ValueError as exc:
        raise ValidationError(
            f"Invalid sort {value!r}. Must be one of: dueDate, priority, createdAt."
        ) from exc


def apply_filter(tasks: Iterable[Task], kind: TaskFilter) -> Tuple[Task, ...]:
    """Keep the tasks matching ``kind``, preserving order."""
    if kind is TaskFilter.PENDING:
        return tuple(t for t in tasks if t.status is TaskStatus.PENDING)
    if kind is TaskFilter.COMPLETED:
        return tuple(t for t in tasks if t.status is TaskStatus.COMPLETED)
    return tuple(tasks)


def _due_date_key(task: Task) -> Tuple[int, date]:
    # Undated tasks go last; sorted() is stable so they keep input order.
    if task.due_date is None:
        return (1, date.max)
    return (0, task.due_date)


def apply_sort(tasks: Iterable[Task], key: TaskSort) -> Tuple[Task, ...]:
    """Return ``tasks`` ordered by ``key``. All orderings are stable."""
    if key is TaskSort.DUE_DATE:
        return tuple(sorted(tasks, key=_due_date_key))
    if key is TaskSort.PRIORITY:
        return tuple(sorted(tasks, key=lambda t: PRIORITY_RANK[t.priority], reverse=True))
    if key is TaskSort.CREATED_AT:
        return tuple(sorted(tasks, key=lambda t: t.created_at, reverse=True))
    return tuple(tasks)


def build_view(
    tasks: Iterable[Task], kind: TaskFilter, key: TaskSort
) -> Tuple[Task, ...]:
    """Filter then sort, always from the full collection."""
    return apply_sort(apply_filter(tasks, kind), key)
