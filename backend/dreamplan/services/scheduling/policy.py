"""Tunable constants for the occurrence scheduler."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

DAILY_CAP = 5
REST_WEEKDAY = 6  # Sunday


@dataclass(frozen=True)
class SchedulingPolicy:
    daily_cap: int = DAILY_CAP
    rest_weekday: Optional[int] = REST_WEEKDAY
    # Compaction fires only when the nominal window is more than
    # ``compaction_ratio`` times the required one and the slack is at least
    # ``compaction_min_slack_days``.
    compaction_ratio: float = 2.0
    compaction_min_slack_days: int = 7
    round_to_week: bool = True
    max_repeat_occurrences: int = 366
    default_window_days: int = 90

    def __post_init__(self) -> None:
        if self.daily_cap < 1:
            raise ValueError("daily_cap must be at least 1")
        if self.rest_weekday is not None and not 0 <= self.rest_weekday <= 6:
            raise ValueError("rest_weekday must be between 0 (Monday) and 6 (Sunday)")
        if self.compaction_ratio < 1.0:
            raise ValueError("compaction_ratio must be >= 1.0")
        if self.max_repeat_occurrences < 1:
            raise ValueError("max_repeat_occurrences must be at least 1")
        if self.default_window_days < 1:
            raise ValueError("default_window_days must be at least 1")

    @classmethod
    def from_settings(cls, settings=None) -> "SchedulingPolicy":
        """Build a policy from application settings (defaults to the global settings)."""
        if settings is None:
            from dreamplan.core.config import settings as app_settings

            settings = app_settings
        return cls(
            daily_cap=settings.scheduling_daily_cap,
            rest_weekday=settings.scheduling_rest_weekday,
            compaction_ratio=settings.scheduling_compaction_ratio,
            compaction_min_slack_days=settings.scheduling_compaction_min_slack_days,
            max_repeat_occurrences=settings.scheduling_max_repeat_occurrences,
            default_window_days=settings.scheduling_default_window_days,
        )
