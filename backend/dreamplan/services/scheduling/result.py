"""Scheduling outcomes and their flat API rendering."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Sequence, Tuple, Union

from dreamplan.api.schemas.scheduling import OccurrencePayload, SchedulingResult
from dreamplan.services.scheduling.allocator import Allocation, PlacedOccurrence
from dreamplan.services.scheduling.window import ResolvedWindow


@dataclass(frozen=True)
class Scheduled:
    occurrences: Tuple[OccurrencePayload, ...]
    warnings: Tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class ScheduledWithCompaction:
    occurrences: Tuple[OccurrencePayload, ...]
    recommended_end: date
    warnings: Tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class ScheduledTight:
    occurrences: Tuple[OccurrencePayload, ...]
    warnings: Tuple[str, ...]


@dataclass(frozen=True)
class Failed:
    errors: Tuple[str, ...]


ScheduleOutcome = Union[Scheduled, ScheduledWithCompaction, ScheduledTight, Failed]


def aggregate(
    window: ResolvedWindow,
    allocation: Allocation,
    extra_warnings: Sequence[str] = (),
) -> ScheduleOutcome:
    """Fold a window decision and an allocation into a single outcome."""
    occurrences = tuple(_payload(placed) for placed in allocation.occurrences)
    warnings = tuple(extra_warnings) + allocation.warnings
    if allocation.too_tight:
        return ScheduledTight(occurrences=occurrences, warnings=warnings)
    if window.auto_compacted and window.recommended_end is not None:
        return ScheduledWithCompaction(
            occurrences=occurrences,
            recommended_end=window.end_date,
            warnings=warnings,
        )
    return Scheduled(occurrences=occurrences, warnings=warnings)


def fail(message: str) -> Failed:
    return Failed(errors=(message,))


def to_result(outcome: ScheduleOutcome) -> SchedulingResult:
    """Render an outcome as the flat result consumed by callers."""
    if isinstance(outcome, Failed):
        return SchedulingResult(success=False, errors=list(outcome.errors))
    if isinstance(outcome, ScheduledTight):
        return SchedulingResult(
            success=True,
            occurrences=list(outcome.occurrences),
            warnings=list(outcome.warnings),
            too_tight=True,
        )
    if isinstance(outcome, ScheduledWithCompaction):
        return SchedulingResult(
            success=True,
            occurrences=list(outcome.occurrences),
            warnings=list(outcome.warnings),
            auto_compacted=True,
            recommended_end=outcome.recommended_end,
        )
    if isinstance(outcome, Scheduled):
        return SchedulingResult(
            success=True,
            occurrences=list(outcome.occurrences),
            warnings=list(outcome.warnings),
        )
    raise TypeError(f"Unknown scheduling outcome: {type(outcome).__name__}")


def _payload(placed: PlacedOccurrence) -> OccurrencePayload:
    due_on = placed.due_on
    return OccurrencePayload(
        action_id=placed.action_id,
        area_id=placed.area_id,
        occurrence_no=placed.occurrence_no,
        due_on=due_on,
        planned_due_on=due_on,
        defer_count=0,
        difficulty=placed.difficulty,
        est_minutes=placed.est_minutes,
    )
