"""Configuration helpers for TaskVerse."""
from __future__ import annotations

from dataclasses import dataclass
import os
from typing import Optional

from dotenv import load_dotenv

MUMBAI_CHAIN_ID = "0x13881"

# "memory": demo tasks, nothing saved. "store": task records via persistence.
TASK_BACKENDS = ("memory", "store")


class ConfigError(RuntimeError):
    """Raised when configuration is present but unusable."""


@dataclass(slots=True)
class Settings:
    """Runtime configuration for the API and CLI."""

    environment: str = "local"
    target_chain_id: str = MUMBAI_CHAIN_ID
    latency_seconds: float = 0.5
    ledger_latency_seconds: float = 2.0
    seed_tasks: bool = True
    task_backend: str = "memory"


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be a number, got {raw!r}.") from exc
    if value < 0:
        raise ConfigError(f"{name} must not be negative, got {value}.")
    return value


def load_settings(*, dotenv_path: Optional[str] = None) -> Settings:
    """Load settings from environment variables.

    A ``.env`` file is read first (without overriding variables that are
    already exported).

    Raises:
        ConfigError: if a numeric or chain id variable is malformed.
    """

    load_dotenv(dotenv_path)

    chain_id = os.getenv("TASKVERSE_TARGET_CHAIN_ID", MUMBAI_CHAIN_ID).strip().lower()
    if not chain_id.startswith("0x"):
        raise ConfigError(
            "TASKVERSE_TARGET_CHAIN_ID must be a hex chain id such as '0x13881'."
        )

    task_backend = os.getenv("TASKVERSE_TASK_BACKEND", "memory").strip().lower()
    if task_backend not in TASK_BACKENDS:
        raise ConfigError(
            f"TASKVERSE_TASK_BACKEND must be one of {', '.join(TASK_BACKENDS)}, got {task_backend!r}."
        )

    return Settings(
        environment=os.getenv("TASKVERSE_ENV", "local"),
        target_chain_id=chain_id,
        latency_seconds=_float_env("TASKVERSE_LATENCY_SECONDS", 0.5),
        ledger_latency_seconds=_float_env("TASKVERSE_LEDGER_LATENCY_SECONDS", 2.0),
        seed_tasks=os.getenv("TASKVERSE_SEED_TASKS", "1").strip() != "0",
        task_backend=task_backend,
    )
