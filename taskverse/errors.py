"""Error taxonomy and typed outcomes shared by the store, wallet and facades."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class TaskVerseError(Exception):
    """Base class for expected TaskVerse failures."""

    code = "error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_api_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


class ValidationError(TaskVerseError):
    """Malformed input, e.g. a task draft without a title."""

    code = "validation_error"


class NotFound(TaskVerseError):
    """An operation referenced an unknown task id."""

    code = "not_found"


class ProviderUnavailable(TaskVerseError):
    """No wallet provider was detected."""

    code = "provider_unavailable"


class AlreadyInProgress(TaskVerseError):
    """Another mutating wallet operation is still in flight."""

    code = "already_in_progress"


class InvalidTransition(TaskVerseError):
    """The wallet is not in a phase that permits the requested operation."""

    code = "invalid_transition"


class ExternalCallFailed(TaskVerseError):
    """A ledger, provider, backend or AI call was rejected or timed out."""

    code = "external_call_failed"


@dataclass(frozen=True, slots=True)
class Outcome(Generic[T]):
    """Result of a transition: the resulting value plus an optional failure.

    On failure ``value`` holds the unchanged prior state (or None for
    facade results that carry no state).
    """

    value: Optional[T]
    error: Optional[TaskVerseError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: Optional[T] = None) -> "Outcome[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: TaskVerseError, value: Optional[T] = None) -> "Outcome[T]":
        return cls(value=value, error=error)
