"""User and task record storage.

Follows the Firestore + file fallback pattern used by the activity log:

- Firestore paths: ``users/{user_id}`` and ``users/{user_id}/tasks/{task_id}``
- File fallback: ``users.jsonl`` and ``{user}_tasks.jsonl`` under
  ``TASKVERSE_STORE_DIR`` (set ``TASKVERSE_STORE_FORCE_FILE=1`` to skip
  Firestore entirely)
"""
from __future__ import annotations

import json
import logging
import os
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import bcrypt

from ..errors import NotFound, ValidationError
from .models import MIN_PASSWORD_LENGTH, TaskRecord, UserRecord, validate_task_fields

logger = logging.getLogger(__name__)

USERS_COLLECTION = "users"
TASKS_COLLECTION = "tasks"

# bcrypt cost factor (2**10 rounds).
BCRYPT_ROUNDS = 10
# bcrypt only reads the first 72 bytes of a password.
MAX_PASSWORD_BYTES = 72


def _use_file_storage() -> bool:
    return os.getenv("TASKVERSE_STORE_FORCE_FILE", "").strip() == "1"


def _get_store_dir() -> Path:
    env_dir = os.getenv("TASKVERSE_STORE_DIR", "").strip()
    if env_dir:
        return Path(env_dir)
    return Path(__file__).resolve().parents[2] / "data_store"


def _get_firestore_client():
    """Return a Firestore client, or None when running on files."""
    if _use_file_storage():
        return None
    try:
        from ..firestore import get_firestore_client

        return get_firestore_client()
    except Exception as exc:  # pragma: no cover - network/auth path
        logger.warning("Firestore unavailable, using local store: %s", exc)
        return None


# =============================================================================
# Password hashing
# =============================================================================

def hash_password(plain: str, *, rounds: int = BCRYPT_ROUNDS) -> str:
    """Return a bcrypt hash of ``plain``."""
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds)).decode("ascii")


def compare_hash(plain: str, hashed: str) -> bool:
    """Check ``plain`` against a bcrypt hash; malformed hashes never match."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("ascii"))
    except ValueError:
        return False


# =============================================================================
# Users
# =============================================================================

def create_user(name: str, email: str, password: str) -> UserRecord:
    """Register a user.

    Raises:
        ValidationError: missing name, short password or an email that is
            already registered.
    """
    name = (name or "").strip()
    email = (email or "").strip().lower()
    if not name:
        raise ValidationError("Name is required.")
    if not email or "@" not in email:
        raise ValidationError("A valid email is required.")
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters.")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes.")
    if find_user_by_email(email) is not None:
        raise ValidationError("User already exists.")

    now = datetime.now(timezone.utc)
    user = UserRecord(
        id=str(uuid.uuid4()),
        name=name,
        email=email,
        password_hash=hash_password(password),
        created_at=now,
        updated_at=now,
    )
    _save_user(user)
    logger.info("Registered user %s", user.id)
    return user


def find_user_by_email(email: str) -> Optional[UserRecord]:
    email = (email or "").strip().lower()
    db = _get_firestore_client()
    if db is not None:
        try:
            query = db.collection(USERS_COLLECTION).where("email", "==", email).limit(1)
            for doc in query.stream():
                return UserRecord.from_dict(doc.to_dict())
            return None
        except Exception as exc:  # pragma: no cover - network/auth path
            logger.warning("Firestore read failed, falling back to local store: %s", exc)
    return _read_users_file().get(email)


def authenticate(email: str, password: str) -> Optional[UserRecord]:
    """Return the user when the credentials match, else None."""
    user = find_user_by_email(email)
    if user is None or not compare_hash(password or "", user.password_hash):
        return None
    return user


def update_user_wallet(email: str, address: str) -> UserRecord:
    user = find_user_by_email(email)
    if user is None:
        raise NotFound(f"User {email!r} not found.")
    user.wallet_address = address or ""
    user.updated_at = datetime.now(timezone.utc)
    _save_user(user)
    return user


def _save_user(user: UserRecord) -> None:
    db = _get_firestore_client()
    if db is not None:
        try:
            db.collection(USERS_COLLECTION).document(user.id).set(user.to_dict())
            return
        except Exception as exc:  # pragma: no cover - network/auth path
            logger.warning("Firestore write failed, falling back to local store: %s", exc)
    users = _read_users_file()
    users[user.email] = user
    path = _users_file()
    with path.open("w", encoding="utf-8") as handle:
        for record in users.values():
            handle.write(json.dumps(record.to_dict()) + "\n")


def _users_file() -> Path:
    store_dir = _get_store_dir()
    store_dir.mkdir(parents=True, exist_ok=True)
    return store_dir / "users.jsonl"


def _read_users_file() -> Dict[str, UserRecord]:
    path = _users_file()
    users: Dict[str, UserRecord] = {}
    if not path.exists():
        return users
    for line in path.read_text(encoding="utf-8").splitlines():
        try:
            user = UserRecord.from_dict(json.loads(line))
        except (json.JSONDecodeError, KeyError, ValueError):
            continue
        users[user.email] = user
    return users


# =============================================================================
# Task records
# =============================================================================

def create_task_record(user_id: str, fields: Dict[str, Any]) -> TaskRecord:
    """Store a new task for ``user_id``; see ``validate_task_fields``."""
    values = validate_task_fields(fields)
    now = datetime.now(timezone.utc)
    record = TaskRecord(
        id=str(uuid.uuid4()),
        user_id=user_id,
        created_at=now,
        updated_at=now,
        completed_at=now if values["completed"] else None,
        **values,
    )
    _save_task_record(record)
    logger.info("Created task record %s for %s", record.id, user_id)
    return record


def get_task_record(user_id: str, record_id: str) -> Optional[TaskRecord]:
    db = _get_firestore_client()
    if db is not None:
        try:
            snapshot = _task_collection(db, user_id).document(record_id).get()
            return TaskRecord.from_dict(snapshot.to_dict()) if snapshot.exists else None
        except Exception as exc:  # pragma: no cover - network/auth path
            logger.warning("Firestore read failed, falling back to local store: %s", exc)
    return _read_task_file(user_id).get(record_id)


def update_task_record(user_id: str, record_id: str, fields: Dict[str, Any]) -> TaskRecord:
    """Merge ``fields`` into an existing record.

    ``completed_at`` follows ``completed``: it is stamped when a task is
    first completed and cleared when it is reopened.

    Raises:
        NotFound: no record with ``record_id`` for this user.
        ValidationError: the merged fields are invalid.
    """
    current = get_task_record(user_id, record_id)
    if current is None:
        raise NotFound(f"Task record {record_id!r} not found.")

    values = validate_task_fields({**current.to_dict(), **fields})
    now = datetime.now(timezone.utc)
    if not values["completed"]:
        completed_at = None
    else:
        completed_at = current.completed_at or now
    record = TaskRecord(
        id=current.id,
        user_id=user_id,
        created_at=current.created_at,
        updated_at=now,
        completed_at=completed_at,
        **values,
    )
    _save_task_record(record)
    return record


def delete_task_record(user_id: str, record_id: str) -> bool:
    """Remove a record; returns False when it did not exist."""
    db = _get_firestore_client()
    if db is not None:
        try:
            document = _task_collection(db, user_id).document(record_id)
            existed = document.get().exists
            document.delete()
            return existed
        except Exception as exc:  # pragma: no cover - network/auth path
            logger.warning("Firestore delete failed, falling back to local store: %s", exc)

    records = _read_task_file(user_id)
    if records.pop(record_id, None) is None:
        return False
    _write_task_file(user_id, records.values())
    return True


def list_task_records(user_id: str, limit: int = 100) -> List[TaskRecord]:
    """Return the user's task records, newest first."""
    db = _get_firestore_client()
    if db is not None:
        try:
            query = _task_collection(db, user_id).order_by("created_at", direction="DESCENDING").limit(limit)
            return [TaskRecord.from_dict(doc.to_dict()) for doc in query.stream()]
        except Exception as exc:  # pragma: no cover - network/auth path
            logger.warning("Firestore read failed, falling back to local store: %s", exc)

    records = sorted(_read_task_file(user_id).values(), key=lambda r: r.created_at, reverse=True)
    return records[:limit]


def _task_collection(db, user_id: str):
    return db.collection(USERS_COLLECTION).document(user_id).collection(TASKS_COLLECTION)


def _save_task_record(record: TaskRecord) -> None:
    db = _get_firestore_client()
    if db is not None:
        try:
            _task_collection(db, record.user_id).document(record.id).set(record.to_dict())
            return
        except Exception as exc:  # pragma: no cover - network/auth path
            logger.warning("Firestore write failed, falling back to local store: %s", exc)
    records = _read_task_file(record.user_id)
    records[record.id] = record
    _write_task_file(record.user_id, records.values())


def _task_file(user_id: str) -> Path:
    store_dir = _get_store_dir()
    store_dir.mkdir(parents=True, exist_ok=True)
    safe_id = user_id.replace("@", "_at_").replace(".", "_")
    return store_dir / f"{safe_id}_tasks.jsonl"


def _read_task_file(user_id: str) -> Dict[str, TaskRecord]:
    path = _task_file(user_id)
    records: Dict[str, TaskRecord] = {}
    if not path.exists():
        return records
    for line in path.read_text(encoding="utf-8").splitlines():
        try:
            record = TaskRecord.from_dict(json.loads(line))
        except (json.JSONDecodeError, KeyError, ValueError):
            continue
        records[record.id] = record
    return records


def _write_task_file(user_id: str, records) -> None:
    with _task_file(user_id).open("w", encoding="utf-8") as handle:
        for record in records:
            handle.write(json.dumps(record.to_dict()) + "\n")
