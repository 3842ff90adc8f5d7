"""Task records, drafts and the demo seed data."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from .errors import ValidationError


class TaskStatus(str, Enum):
    """Task status values. Tasks only move between these two."""

    PENDING = "pending"
    COMPLETED = "completed"


class TaskPriority(str, Enum):
    """Task priority levels."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


PRIORITY_RANK = {
    TaskPriority.HIGH: 3,
    TaskPriority.MEDIUM: 2,
    TaskPriority.LOW: 1,
}


def _parse_date(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError as exc:
        raise ValidationError(f"Invalid date {value!r}; expected YYYY-MM-DD.") from exc


def _parse_datetime(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value)
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError as exc:
            raise ValidationError(f"Invalid timestamp {value!r}.") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _coerce_status(value: Any) -> TaskStatus:
    try:
        return TaskStatus(value)
    except ValueError as exc:
        raise ValidationError(
            f"Invalid status {value!r}. Must be one of: pending, completed."
        ) from exc


def _coerce_priority(value: Any) -> TaskPriority:
    try:
        return TaskPriority(value)
    except ValueError as exc:
        raise ValidationError(
            f"Invalid priority {value!r}. Must be one of: high, medium, low."
        ) from exc


@dataclass(frozen=True, slots=True)
class TaskDraft:
    """Caller-supplied fields of a task that does not exist yet."""

    title: str
    priority: TaskPriority = TaskPriority.MEDIUM
    status: TaskStatus = TaskStatus.PENDING
    description: Optional[str] = None
    due_date: Optional[date] = None
    category: Optional[str] = None
    blockchain_verified: bool = False

    def validated(self) -> "TaskDraft":
        """Return a normalized copy, raising ValidationError if malformed."""
        title = (self.title or "").strip()
        if not title:
            raise ValidationError("Task title is required.")
        return TaskDraft(
            title=title,
            priority=_coerce_priority(self.priority),
            status=_coerce_status(self.status),
            description=self.description,
            due_date=_parse_date(self.due_date),
            category=self.category or None,
            blockchain_verified=bool(self.blockchain_verified),
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TaskDraft":
        """Build a draft from a snake_case or camelCase mapping."""
        return cls(
            title=data.get("title", ""),
            priority=data.get("priority", TaskPriority.MEDIUM.value),
            status=data.get("status", TaskStatus.PENDING.value),
            description=data.get("description"),
            due_date=_parse_date(data.get("due_date", data.get("dueDate"))),
            category=data.get("category"),
            blockchain_verified=bool(
                data.get("blockchain_verified", data.get("blockchainVerified", False))
            ),
        )


@dataclass(frozen=True, slots=True)
class Task:
    """A task in the canonical collection.

    Instances are immutable; every store transition produces new records.
    """

    id: str
    title: str
    status: TaskStatus
    priority: TaskPriority
    created_at: datetime
    updated_at: datetime
    description: Optional[str] = None
    due_date: Optional[date] = None
    category: Optional[str] = None
    blockchain_verified: bool = False

    @property
    def is_completed(self) -> bool:
        return self.status is TaskStatus.COMPLETED

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for storage."""
        return {
            "id": self.id,
            "title": self.title,
            "status": self.status.value,
            "priority": self.priority.value,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "description": self.description,
            "due_date": self.due_date.isoformat() if self.due_date else None,
            "category": self.category,
            "blockchain_verified": self.blockchain_verified,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Task":
        """Create from a storage or API dictionary (snake_case or camelCase)."""
        now = datetime.now(timezone.utc)
        created = _parse_datetime(data.get("created_at", data.get("createdAt"))) or now
        updated = _parse_datetime(data.get("updated_at", data.get("updatedAt"))) or created
        title = (data.get("title") or "").strip()
        if not title:
            raise ValidationError("Task title is required.")
        if not data.get("id"):
            raise ValidationError("Task id is required.")
        return cls(
            id=str(data["id"]),
            title=title,
            status=_coerce_status(data.get("status", TaskStatus.PENDING.value)),
            priority=_coerce_priority(data.get("priority", TaskPriority.MEDIUM.value)),
            created_at=created,
            updated_at=max(updated, created),
            description=data.get("description"),
            due_date=_parse_date(data.get("due_date", data.get("dueDate"))),
            category=data.get("category"),
            blockchain_verified=bool(
                data.get("blockchain_verified", data.get("blockchainVerified", False))
            ),
        )

    def to_api_dict(self) -> Dict[str, Any]:
        """Convert to API response format (camelCase)."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "dueDate": self.due_date.isoformat() if self.due_date else None,
            "status": self.status.value,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
            "priority": self.priority.value,
            "category": self.category,
            "blockchainVerified": self.blockchain_verified,
        }


def _seed(
    task_id: str,
    title: str,
    description: str,
    due: str,
    status: str,
    created: str,
    updated: str,
    priority: str,
    category: str,
    verified: bool = False,
) -> Task:
    return Task.from_dict(
        {
            "id": task_id,
            "title": title,
            "description": description,
            "dueDate": due,
            "status": status,
            "createdAt": created,
            "updatedAt": updated,
            "priority": priority,
            "category": category,
            "blockchainVerified": verified,
        }
    )


def fetch_stubbed_tasks(*, limit: Optional[int] = None) -> List[Task]:
    """Return a deterministic list of demo tasks."""

    sample: List[Task] = [
        _seed(
            "1",
            "Complete DApp MVP",
            "Finish the initial version of the decentralized todo app",
            "2025-05-01",
            "pending",
            "2025-04-15T10:00:00.000Z",
            "2025-04-15T10:00:00.000Z",
            "high",
            "Development",
        ),
        _seed(
            "2",
            "Write Smart Contract Tests",
            "Create comprehensive test suite for the TaskManager contract",
            "2025-04-20",
            "pending",
            "2025-04-15T11:00:00.000Z",
            "2025-04-15T11:00:00.000Z",
            "medium",
            "Blockchain",
        ),
        _seed(
            "3",
            "Design Analytics Dashboard",
            "Create UI for the task completion analytics dashboard",
            "2025-04-25",
            "pending",
            "2025-04-15T12:00:00.000Z",
            "2025-04-15T12:00:00.000Z",
            "medium",
            "Design",
        ),
        _seed(
            "4",
            "Implement MetaMask Integration",
            "Connect the app with MetaMask wallet",
            "2025-04-22",
            "completed",
            "2025-04-15T13:00:00.000Z",
            "2025-04-16T09:00:00.000Z",
            "high",
            "Blockchain",
            verified=True,
        ),
        _seed(
            "5",
            "Set up CI/CD Pipeline",
            "Configure GitHub Actions for automated deployment",
            "2025-04-30",
            "pending",
            "2025-04-15T14:00:00.000Z",
            "2025-04-15T14:00:00.000Z",
            "low",
            "DevOps",
        ),
    ]

    if limit is None:
        return sample[:]
    return sample[:limit]


def format_task_rows(tasks: Iterable[Task]) -> str:
    """Return a human-friendly summary table string."""

    lines = ["ID | Title | Status | Priority | Due | Category | Verified"]
    for task in tasks:
        due = f"{task.due_date:%Y-%m-%d}" if task.due_date else "-"
        lines.append(
            f"{task.id} | {task.title} | {task.status.value} | {task.priority.value} | "
            f"{due} | {task.category or '-'} | {'yes' if task.blockchain_verified else 'no'}"
        )
    return "\n".join(lines)
