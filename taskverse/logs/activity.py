"""Activity log: the notifications a user sees after each task or wallet action.

Entries go to the Firestore ``activity_log`` collection. When Firestore is
unreachable, or ``TASKVERSE_ACTIVITY_FORCE_FILE=1``, they are appended to a
JSONL file instead (``TASKVERSE_ACTIVITY_LOG`` overrides its location).
"""
from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, Literal, Optional

logger = logging.getLogger(__name__)

DEFAULT_LOG_PATH = Path(__file__).resolve().parents[2] / "activity_log.jsonl"
ACTIVITY_COLLECTION = os.getenv("TASKVERSE_ACTIVITY_COLLECTION", "activity_log")

Variant = Literal["default", "destructive"]
Entry = Dict[str, Any]


def _force_file() -> bool:
    return os.getenv("TASKVERSE_ACTIVITY_FORCE_FILE", "0") == "1"


def _log_path() -> Path:
    return Path(os.getenv("TASKVERSE_ACTIVITY_LOG") or DEFAULT_LOG_PATH)


def log_activity(
    *,
    title: str,
    description: str,
    variant: Variant = "default",
    kind: str,
    task_id: Optional[str] = None,
    user: Optional[str] = None,
) -> Entry:
    """Record a notification and return the stored entry."""

    entry: Entry = {
        "ts": datetime.now(timezone.utc).isoformat(),
        "kind": kind,
        "title": title,
        "description": description,
        "variant": variant,
        "task_id": task_id,
        "user": user,
    }

    if not _force_file():
        try:
            from ..firestore import get_firestore_client

            get_firestore_client().collection(ACTIVITY_COLLECTION).add(entry)
            return entry
        except Exception as exc:  # pragma: no cover - network/auth path
            logger.warning("Activity write to Firestore failed (%s); using %s", exc, _log_path())

    _append(entry)
    return entry


def fetch_activity_entries(limit: int = 50, *, user: Optional[str] = None) -> list[Entry]:
    """Return up to ``limit`` entries, newest first, optionally for one user."""

    if not _force_file():
        try:
            from firebase_admin import firestore as fb_firestore

            from ..firestore import get_firestore_client

            query = get_firestore_client().collection(ACTIVITY_COLLECTION)
            if user is not None:
                query = query.where("user", "==", user)
            query = query.order_by("ts", direction=fb_firestore.Query.DESCENDING).limit(limit)
            return [doc.to_dict() for doc in query.stream()]
        except Exception as exc:  # pragma: no cover - network/auth path
            logger.warning("Activity read from Firestore failed (%s); using %s", exc, _log_path())

    entries: list[Entry] = []
    for entry in _iter_newest_first():
        if user is not None and entry.get("user") != user:
            continue
        entries.append(entry)
        if len(entries) >= limit:
            break
    return entries


def _append(entry: Entry) -> None:
    path = _log_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("a", encoding="utf-8") as handle:
        handle.write(json.dumps(entry) + "\n")


def _iter_newest_first() -> Iterator[Entry]:
    path = _log_path()
    if not path.exists():
        return
    for line in reversed(path.read_text(encoding="utf-8").splitlines()):
        try:
            yield json.loads(line)
        except json.JSONDecodeError:
            logger.debug("Skipping unreadable activity line in %s", path)
