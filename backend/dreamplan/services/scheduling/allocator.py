"""Walk the calendar and place slot requests under the daily cap."""
from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Deque, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from dreamplan.api.schemas.scheduling import ExistingOccurrenceInput
from dreamplan.services.scheduling.days import from_day, is_rest_day, to_day
from dreamplan.services.scheduling.policy import SchedulingPolicy
from dreamplan.services.scheduling.queue import SlotRequest

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AllocationState:
    """Per-action last assigned day and per-day load, carried across allocation."""

    last_assigned: Mapping[str, int] = field(default_factory=lambda: MappingProxyType({}))
    day_load: Mapping[int, int] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def from_existing(cls, existing_occurrences: Iterable[ExistingOccurrenceInput]) -> "AllocationState":
        last_assigned: Dict[str, int] = {}
        day_load: Dict[int, int] = {}
        for occurrence in existing_occurrences:
            day = to_day(occurrence.due_on)
            if day > last_assigned.get(occurrence.action_id, day - 1):
                last_assigned[occurrence.action_id] = day
            day_load[day] = day_load.get(day, 0) + 1
        return cls(last_assigned=MappingProxyType(last_assigned), day_load=MappingProxyType(day_load))


@dataclass(frozen=True)
class PlacedOccurrence:
    action_id: str
    area_id: str
    occurrence_no: int
    due_day: int
    priority: int
    difficulty: Optional[str] = None
    est_minutes: Optional[int] = None

    @property
    def due_on(self):
        return from_day(self.due_day)


@dataclass(frozen=True)
class Allocation:
    occurrences: Tuple[PlacedOccurrence, ...]
    too_tight: bool
    warnings: Tuple[str, ...]
    state: AllocationState
    stranded: Tuple[SlotRequest, ...] = ()


def allocate(
    queue: Sequence[SlotRequest],
    window_start: int,
    window_end: int,
    state: AllocationState | None = None,
    policy: SchedulingPolicy | None = None,
) -> Allocation:
    """
    Assign slot requests to calendar days.

    Days are visited from ``window_start`` to ``window_end``; rest days are
    skipped. Each day accepts up to the daily cap minus what existing
    occurrences already use. Actions are scanned in priority order and only
    the head of each action's pending requests can be placed, once its
    spacing since the action's last assigned day has elapsed.
    """
    policy = policy or SchedulingPolicy()
    state = state or AllocationState()
    last_assigned: Dict[str, int] = dict(state.last_assigned)
    day_load: Dict[int, int] = dict(state.day_load)

    pending: Dict[str, Deque[SlotRequest]] = {}
    for request in queue:
        pending.setdefault(request.action_id, deque()).append(request)
    order: List[str] = sorted(pending, key=lambda action_id: pending[action_id][0].priority)

    placed: List[PlacedOccurrence] = []
    dropped: List[SlotRequest] = []
    day = window_start
    while order and day <= window_end:
        if is_rest_day(day, policy.rest_weekday):
            day += 1
            continue

        capacity = policy.daily_cap - day_load.get(day, 0)
        exhausted: List[str] = []
        for action_id in order:
            if capacity <= 0:
                break
            requests = pending[action_id]
            while requests and requests[0].latest_day is not None and requests[0].latest_day < day:
                dropped.append(requests.popleft())
            if not requests:
                exhausted.append(action_id)
                continue
            head = requests[0]
            if not _eligible(head, day, last_assigned.get(action_id)):
                continue
            requests.popleft()
            placed.append(
                PlacedOccurrence(
                    action_id=head.action_id,
                    area_id=head.area_id,
                    occurrence_no=head.occurrence_no,
                    due_day=day,
                    priority=head.priority,
                    difficulty=head.difficulty,
                    est_minutes=head.est_minutes,
                )
            )
            last_assigned[action_id] = day
            day_load[day] = day_load.get(day, 0) + 1
            capacity -= 1
            if not requests:
                exhausted.append(action_id)

        if exhausted:
            order = [action_id for action_id in order if action_id not in exhausted]
        day += 1

    leftovers = [request for action_id in order for request in pending[action_id]]
    stranded = tuple(request for request in leftovers if request.required)
    dropped.extend(request for request in leftovers if not request.required)
    if dropped:
        logger.debug("Dropped %s optional repeat requests outside the window", len(dropped))

    warnings = _stranded_warnings(stranded, window_end)
    if stranded:
        logger.info(
            "Schedule too tight: %s required requests did not fit before %s",
            len(stranded),
            from_day(window_end),
        )

    return Allocation(
        occurrences=tuple(placed),
        too_tight=bool(stranded),
        warnings=warnings,
        state=AllocationState(
            last_assigned=MappingProxyType(last_assigned),
            day_load=MappingProxyType(day_load),
        ),
        stranded=stranded,
    )


def _eligible(request: SlotRequest, day: int, last_day: Optional[int]) -> bool:
    if day < request.earliest_day:
        return False
    if last_day is None or request.spacing_days <= 0:
        return True
    return day >= last_day + request.spacing_days


def _stranded_warnings(stranded: Sequence[SlotRequest], window_end: int) -> Tuple[str, ...]:
    counts: Dict[str, int] = {}
    for request in stranded:
        counts[request.action_id] = counts.get(request.action_id, 0) + 1
    end_iso = from_day(window_end).isoformat()
    return tuple(
        f"Action {action_id}: {count} occurrence(s) could not be scheduled on or before {end_iso}"
        for action_id, count in counts.items()
    )
