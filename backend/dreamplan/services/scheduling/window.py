"""Dream window validation and auto-compaction."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date
from typing import Optional, Sequence, Tuple

from dreamplan.services.scheduling.days import (
    DateLike,
    from_day,
    is_rest_day,
    parse_date,
    span_for_working_days,
    to_day,
)
from dreamplan.services.scheduling.errors import SchedulingValidationError
from dreamplan.services.scheduling.policy import SchedulingPolicy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedWindow:
    window_start: int
    window_end: int
    nominal_end: int
    recommended_end: Optional[int] = None
    auto_compacted: bool = False

    @property
    def nominal_length(self) -> int:
        return self.nominal_end - self.window_start + 1

    def without_compaction(self) -> "ResolvedWindow":
        return ResolvedWindow(
            window_start=self.window_start,
            window_end=self.nominal_end,
            nominal_end=self.nominal_end,
        )

    @property
    def start_date(self) -> date:
        return from_day(self.window_start)

    @property
    def end_date(self) -> date:
        return from_day(self.window_end)


def resolve_window(
    start_date: Optional[DateLike],
    end_date: Optional[DateLike],
    estimated_unit_count: Optional[int],
    *,
    series: Sequence[Tuple[int, int]] = (),
    policy: SchedulingPolicy | None = None,
) -> ResolvedWindow:
    """
    Validate the dream window and decide whether it should be compacted.

    ``estimated_unit_count`` is the number of bounded occurrences the dream
    needs. None means the dream holds open-ended repeats that fill any
    window, which disables compaction. ``series`` lists ``(count, spacing)``
    pairs for finite series; the longest one bounds the required length from
    below.
    """
    policy = policy or SchedulingPolicy()
    start = _parse_or_fail(start_date, "start_date")
    if start is None:
        raise SchedulingValidationError("Dream start_date is required")
    end = _parse_or_fail(end_date, "end_date")

    window_start = to_day(start)
    if end is None:
        nominal_end = window_start + policy.default_window_days - 1
        logger.debug("Dream has no end_date; defaulting to %s", from_day(nominal_end))
    else:
        nominal_end = to_day(end)
    if nominal_end < window_start:
        raise SchedulingValidationError(
            f"Dream end_date {from_day(nominal_end).isoformat()} is before start_date {start.isoformat()}"
        )

    nominal_length = nominal_end - window_start + 1
    if not estimated_unit_count:
        return ResolvedWindow(window_start=window_start, window_end=nominal_end, nominal_end=nominal_end)

    required = minimum_required_length(
        window_start,
        estimated_unit_count,
        series=series,
        policy=policy,
    )
    slack = nominal_length - required
    if nominal_length > required * policy.compaction_ratio and slack >= policy.compaction_min_slack_days:
        # Inclusive end: the compacted window spans exactly ``required`` days.
        recommended_end = window_start + required - 1
        logger.info(
            "Window of %s days exceeds required %s days for %s units; recommending end %s",
            nominal_length,
            required,
            estimated_unit_count,
            from_day(recommended_end),
        )
        return ResolvedWindow(
            window_start=window_start,
            window_end=recommended_end,
            nominal_end=nominal_end,
            recommended_end=recommended_end,
            auto_compacted=True,
        )
    return ResolvedWindow(window_start=window_start, window_end=nominal_end, nominal_end=nominal_end)


def minimum_required_length(
    window_start: int,
    unit_count: int,
    *,
    series: Sequence[Tuple[int, int]] = (),
    policy: SchedulingPolicy | None = None,
) -> int:
    """Calendar days needed to place ``unit_count`` units at the daily cap, skipping rest days."""
    policy = policy or SchedulingPolicy()
    working_days = max(math.ceil(unit_count / policy.daily_cap), 1)
    length = span_for_working_days(window_start, working_days, policy.rest_weekday)
    for count, spacing in series:
        length = max(length, series_span_days(window_start, count, spacing, policy.rest_weekday))
    if policy.round_to_week:
        length = math.ceil(length / 7) * 7
    return length


def series_span_days(window_start: int, count: int, spacing_days: int, rest_weekday: Optional[int]) -> int:
    """Calendar days a spaced series needs when it has the calendar to itself."""
    if count <= 0:
        return 0
    day = window_start
    last = window_start
    for _ in range(count):
        while is_rest_day(day, rest_weekday):
            day += 1
        last = day
        day += max(spacing_days, 1)
    return last - window_start + 1


def _parse_or_fail(value: Optional[DateLike], field_name: str) -> Optional[date]:
    try:
        return parse_date(value)
    except ValueError as exc:
        raise SchedulingValidationError(f"Invalid {field_name}: {value!r}") from exc
