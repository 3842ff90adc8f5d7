"""AI prioritization collaborator.

The assistant only produces a motivational tip. Task order is returned
exactly as given; no scoring is applied.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Iterable, List, Protocol

from ..tasks import Task

DEFAULT_MOTIVATIONAL_TIP = (
    "Focus on completing your high-priority blockchain tasks first to maintain "
    "momentum on your project. Remember: small consistent steps lead to big "
    "accomplishments!"
)


@dataclass(slots=True)
class PrioritizationResult:
    """Response of the prioritization assistant."""

    motivational_tip: str
    prioritized_tasks: List[Task] = field(default_factory=list)

    def to_api_dict(self) -> dict:
        return {
            "motivationalTip": self.motivational_tip,
            "prioritizedTasks": [task.to_api_dict() for task in self.prioritized_tasks],
        }


class Prioritizer(Protocol):
    async def prioritize(self, tasks: Iterable[Task]) -> PrioritizationResult: ...


class SimulatedPrioritizer:
    """Canned assistant that waits, then answers with a fixed tip."""

    def __init__(
        self,
        *,
        tip: str = DEFAULT_MOTIVATIONAL_TIP,
        latency_seconds: float = 1.5,
    ) -> None:
        self.tip = tip
        self.latency_seconds = latency_seconds

    async def prioritize(self, tasks: Iterable[Task]) -> PrioritizationResult:
        tasks = list(tasks)
        if self.latency_seconds:
            await asyncio.sleep(self.latency_seconds)
        return PrioritizationResult(motivational_tip=self.tip, prioritized_tasks=tasks)
