"""Task analysis helpers: completion analytics and AI prioritization."""

from .analytics import DailyActivity, TaskAnalytics, compute_analytics
from .prioritizer import (
    DEFAULT_MOTIVATIONAL_TIP,
    PrioritizationResult,
    Prioritizer,
    SimulatedPrioritizer,
)

__all__ = [
    "DailyActivity",
    "TaskAnalytics",
    "compute_analytics",
    "DEFAULT_MOTIVATIONAL_TIP",
    "PrioritizationResult",
    "Prioritizer",
    "SimulatedPrioritizer",
]
