"""Task store package - reducer, snapshot state and derived views."""
from __future__ import annotations

from .store import (
    TaskAction,
    TaskCommand,
    TaskState,
    TaskStore,
    last_added,
    reduce,
)
from .views import (
    TaskFilter,
    TaskSort,
    apply_filter,
    apply_sort,
    build_view,
)

__all__ = [
    "TaskAction",
    "TaskCommand",
    "TaskState",
    "TaskStore",
    "last_added",
    "reduce",
    "TaskFilter",
    "TaskSort",
    "apply_filter",
    "apply_sort",
    "build_view",
]
