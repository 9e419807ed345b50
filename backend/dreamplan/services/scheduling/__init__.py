"""Occurrence scheduling engine."""

from dreamplan.services.scheduling.engine import schedule_dream_actions, schedule_dream_actions_result
from dreamplan.services.scheduling.errors import SchedulingValidationError
from dreamplan.services.scheduling.policy import DAILY_CAP, REST_WEEKDAY, SchedulingPolicy
from dreamplan.services.scheduling.result import (
    Failed,
    ScheduleOutcome,
    Scheduled,
    ScheduledTight,
    ScheduledWithCompaction,
    to_result,
)

__all__ = [
    "DAILY_CAP",
    "REST_WEEKDAY",
    "Failed",
    "ScheduleOutcome",
    "Scheduled",
    "ScheduledTight",
    "ScheduledWithCompaction",
    "SchedulingPolicy",
    "SchedulingValidationError",
    "schedule_dream_actions",
    "schedule_dream_actions_result",
    "to_result",
]
