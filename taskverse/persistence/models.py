"""Stored user and task record shapes."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from ..errors import ValidationError

MIN_PASSWORD_LENGTH = 8


class TaskType(str, Enum):
    WORK = "work"
    PERSONAL = "personal"
    STUDY = "study"
    HEALTH = "health"
    OTHER = "other"


def _iso(value: Optional[datetime | date]) -> Optional[str]:
    return value.isoformat() if value else None


def _parse_dt(value: Any) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _parse_day(value: Any) -> Optional[date]:
    if not value:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError as exc:
        raise ValidationError(f"Invalid deadline {value!r}.") from exc


@dataclass(slots=True)
class UserRecord:
    """A registered account. ``password_hash`` never leaves the server."""

    id: str
    name: str
    email: str
    password_hash: str
    created_at: datetime
    updated_at: datetime
    wallet_address: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "password_hash": self.password_hash,
            "wallet_address": self.wallet_address,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserRecord":
        return cls(
            id=data["id"],
            name=data["name"],
            email=data["email"],
            password_hash=data["password_hash"],
            wallet_address=data.get("wallet_address") or "",
            created_at=_parse_dt(data.get("created_at")) or datetime.now(timezone.utc),
            updated_at=_parse_dt(data.get("updated_at")) or datetime.now(timezone.utc),
        )

    def to_api_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "walletAddress": self.wallet_address,
            "createdAt": self.created_at.isoformat(),
        }


@dataclass(slots=True)
class TaskRecord:
    """Server-side task document owned by a user."""

    id: str
    user_id: str
    title: str
    created_at: datetime
    updated_at: datetime
    description: str = ""
    type: str = TaskType.OTHER.value
    deadline: Optional[date] = None
    priority: int = 2
    completed: bool = False
    completed_at: Optional[datetime] = None
    category: Optional[str] = None
    blockchain_verified: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "title": self.title,
            "description": self.description,
            "type": self.type,
            "deadline": _iso(self.deadline),
            "priority": self.priority,
            "completed": self.completed,
            "completed_at": _iso(self.completed_at),
            "category": self.category,
            "blockchain_verified": self.blockchain_verified,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TaskRecord":
        now = datetime.now(timezone.utc)
        return cls(
            id=data["id"],
            user_id=data["user_id"],
            title=data["title"],
            description=data.get("description") or "",
            type=data.get("type") or TaskType.OTHER.value,
            deadline=_parse_day(data.get("deadline")),
            priority=int(data.get("priority", 2)),
            completed=bool(data.get("completed", False)),
            completed_at=_parse_dt(data.get("completed_at")),
            category=data.get("category") or None,
            blockchain_verified=bool(data.get("blockchain_verified", False)),
            created_at=_parse_dt(data.get("created_at")) or now,
            updated_at=_parse_dt(data.get("updated_at")) or now,
        )


def validate_task_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Normalize incoming task record fields, applying schema defaults."""

    title = str(fields.get("title") or "").strip()
    if not title:
        raise ValidationError("Task title is required.")

    kind = str(fields.get("type") or TaskType.OTHER.value).lower()
    try:
        kind = TaskType(kind).value
    except ValueError as exc:
        allowed = ", ".join(t.value for t in TaskType)
        raise ValidationError(f"Task type must be one of: {allowed}.") from exc

    try:
        priority = int(fields.get("priority", 2))
    except (TypeError, ValueError) as exc:
        raise ValidationError("Task priority must be an integer.") from exc

    completed = bool(fields.get("completed", False))
    return {
        "title": title,
        "description": str(fields.get("description") or ""),
        "type": kind,
        "deadline": _parse_day(fields.get("deadline")),
        "priority": priority,
        "completed": completed,
        "category": str(fields.get("category") or "").strip() or None,
        "blockchain_verified": bool(fields.get("blockchain_verified", False)),
    }
