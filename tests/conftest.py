"""Shared fixtures and fakes for the TaskVerse test suite."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List

import pytest

from taskverse.config import MUMBAI_CHAIN_ID
from taskverse.wallet import ProviderError


@pytest.fixture(autouse=True)
def local_storage(tmp_path, monkeypatch):
    """Keep activity and persistence writes on disk under tmp_path."""
    monkeypatch.setenv("TASKVERSE_ACTIVITY_FORCE_FILE", "1")
    monkeypatch.setenv("TASKVERSE_ACTIVITY_LOG", str(tmp_path / "activity.jsonl"))
    monkeypatch.setenv("TASKVERSE_STORE_FORCE_FILE", "1")
    monkeypatch.setenv("TASKVERSE_STORE_DIR", str(tmp_path / "store"))
    return tmp_path


class Notifications:
    """Collects notifier calls in place of the activity log."""

    def __init__(self) -> None:
        self.entries: List[Dict[str, Any]] = []

    def __call__(self, **entry: Any) -> Dict[str, Any]:
        self.entries.append(entry)
        return entry

    @property
    def titles(self) -> List[str]:
        return [entry["title"] for entry in self.entries]


class FrozenClock:
    """Clock that returns the same instant until advanced."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2025, 4, 16, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class FailingBackend:
    """Task backend whose every call raises."""

    def __init__(self, message: str = "Service unavailable") -> None:
        self.message = message

    async def fetch_tasks(self):
        raise RuntimeError(self.message)

    async def create_task(self, draft):
        raise RuntimeError(self.message)

    async def update_task(self, task):
        raise RuntimeError(self.message)

    async def delete_task(self, task_id):
        raise RuntimeError(self.message)

    async def set_status(self, task_id, status):
        raise RuntimeError(self.message)

    async def set_verified(self, task_id):
        raise RuntimeError(self.message)


class FailingLedger:
    """Ledger that rejects every transaction."""

    async def add_task_hash(self, task_id, task_hash):
        raise ProviderError("execution reverted")

    async def mark_completed(self, task_id):
        raise ProviderError("execution reverted")

    async def is_completed(self, task_id):
        return False


@pytest.fixture
def notifications() -> Notifications:
    return Notifications()


@pytest.fixture
def frozen_clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def target_chain() -> str:
    return MUMBAI_CHAIN_ID
