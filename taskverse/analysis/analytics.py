"""Completion analytics over the task collection."""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional

from ..tasks import Task

_DAY_NAMES = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")


@dataclass(slots=True)
class DailyActivity:
    day: str
    date: date
    completed: int = 0
    created: int = 0


@dataclass(slots=True)
class TaskAnalytics:
    """Totals, per-category counts and the trailing week of activity."""

    total_tasks: int
    completed_tasks: int
    pending_tasks: int
    completion_rate: float
    category_counts: Dict[str, int] = field(default_factory=dict)
    weekly_completion: List[DailyActivity] = field(default_factory=list)

    def to_api_dict(self) -> dict:
        return {
            "totalTasks": self.total_tasks,
            "completedTasks": self.completed_tasks,
            "pendingTasks": self.pending_tasks,
            "completionRate": self.completion_rate,
            "categoryCounts": dict(self.category_counts),
            "weeklyCompletion": [
                {
                    "day": entry.day,
                    "date": entry.date.isoformat(),
                    "completed": entry.completed,
                    "created": entry.created,
                }
                for entry in self.weekly_completion
            ],
        }


def compute_analytics(
    tasks: Iterable[Task], *, today: Optional[date] = None
) -> TaskAnalytics:
    """Summarize ``tasks``.

    A completed task counts toward the day of its last update, which is the
    closest record of when it was completed. Days are UTC calendar days.
    """

    tasks = list(tasks)
    today = today or datetime.now(timezone.utc).date()

    total = len(tasks)
    completed = sum(1 for t in tasks if t.is_completed)
    rate = (completed / total) * 100 if total else 0.0
    categories = Counter(t.category for t in tasks if t.category)

    week: List[DailyActivity] = []
    for offset in range(6, -1, -1):
        day = today - timedelta(days=offset)
        week.append(
            DailyActivity(
                day=_DAY_NAMES[day.weekday()],
                date=day,
                completed=sum(
                    1
                    for t in tasks
                    if t.is_completed and t.updated_at.astimezone(timezone.utc).date() == day
                ),
                created=sum(
                    1 for t in tasks if t.created_at.astimezone(timezone.utc).date() == day
                ),
            )
        )

    return TaskAnalytics(
        total_tasks=total,
        completed_tasks=completed,
        pending_tasks=total - completed,
        completion_rate=rate,
        category_counts=dict(categories),
        weekly_completion=week,
    )
