"""Flatten a dream's area/action tree into priority-ordered slot requests."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from dreamplan.api.schemas.scheduling import ActionInput, AreaInput
from dreamplan.services.scheduling.days import to_day
from dreamplan.services.scheduling.policy import SchedulingPolicy
from dreamplan.services.scheduling.window import ResolvedWindow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SlotRequest:
    """One occurrence the allocator should try to place."""

    action_id: str
    area_id: str
    occurrence_no: int
    earliest_day: int
    priority: int
    spacing_days: int = 0
    required: bool = True
    latest_day: Optional[int] = None
    difficulty: Optional[str] = None
    est_minutes: Optional[int] = None


@dataclass(frozen=True)
class QueueBuild:
    requests: Tuple[SlotRequest, ...]
    warnings: Tuple[str, ...] = field(default_factory=tuple)


def ordered_actions(
    areas: Sequence[AreaInput],
    actions: Sequence[ActionInput],
    dream_id: Optional[str] = None,
) -> Tuple[List[ActionInput], List[str]]:
    """
    Return live actions in base priority order plus warnings for skipped ones.

    Areas sort by position, actions by position within their area; ids break
    ties so the order is deterministic. Deleted areas, deleted or inactive
    actions and actions pointing at unknown areas contribute nothing.
    """
    warnings: List[str] = []
    live_areas = [
        area
        for area in areas
        if area.deleted_at is None and (dream_id is None or area.dream_id in (None, dream_id))
    ]
    live_areas.sort(key=lambda area: (area.position, area.id))
    area_ids = {area.id for area in live_areas}
    all_area_ids = {area.id for area in areas}

    by_area: Dict[str, List[ActionInput]] = {}
    for action in actions:
        if not action.is_active or action.deleted_at is not None:
            continue
        if action.area_id not in area_ids:
            if action.area_id not in all_area_ids:
                warnings.append(f"Action {action.id} references unknown area {action.area_id}; skipped")
            continue
        by_area.setdefault(action.area_id, []).append(action)

    ordered: List[ActionInput] = []
    for area in live_areas:
        ordered.extend(sorted(by_area.get(area.id, []), key=lambda action: (action.position, action.id)))
    return ordered, warnings


def estimate_bounded_units(actions: Sequence[ActionInput]) -> Optional[int]:
    """Count occurrences the dream needs; None when open-ended repeats fill any window."""
    total = 0
    for action in actions:
        if action.is_open_ended:
            return None
        total += action.slice_count_target if action.is_series else 1
    return total


def series_shapes(actions: Sequence[ActionInput]) -> List[Tuple[int, int]]:
    """Return ``(slice count, spacing)`` for every finite series."""
    return [(action.slice_count_target, action.repeat_every_days or 1) for action in actions if action.is_series]


def build_queue(
    areas: Sequence[AreaInput],
    actions: Sequence[ActionInput],
    window: ResolvedWindow,
    policy: SchedulingPolicy | None = None,
    *,
    dream_id: Optional[str] = None,
) -> QueueBuild:
    """
    Expand the area/action tree into slot requests in base priority order.

    Each action's requests appear contiguously in ascending occurrence order.
    """
    policy = policy or SchedulingPolicy()
    ordered, warnings = ordered_actions(areas, actions, dream_id)
    requests: List[SlotRequest] = []
    for priority, action in enumerate(ordered):
        requests.extend(_requests_for_action(action, priority, window, policy))
    logger.debug("Built queue of %s slot requests for %s actions", len(requests), len(ordered))
    return QueueBuild(requests=tuple(requests), warnings=tuple(warnings))


def _requests_for_action(
    action: ActionInput,
    priority: int,
    window: ResolvedWindow,
    policy: SchedulingPolicy,
) -> List[SlotRequest]:
    base = dict(
        action_id=action.id,
        area_id=action.area_id,
        earliest_day=window.window_start,
        priority=priority,
        difficulty=action.difficulty,
        est_minutes=action.est_minutes,
    )

    if action.is_series:
        spacing = action.repeat_every_days or 1
        return [
            SlotRequest(occurrence_no=number, spacing_days=spacing, **base)
            for number in range(1, action.slice_count_target + 1)
        ]

    if action.is_open_ended:
        spacing = action.repeat_every_days
        cutoff = window.window_end
        if action.repeat_until_date is not None:
            cutoff = min(cutoff, to_day(action.repeat_until_date))
        cycles = 1
        if cutoff >= window.window_start:
            cycles = (cutoff - window.window_start) // spacing + 1
        cycles = min(cycles, policy.max_repeat_occurrences)
        requests = [SlotRequest(occurrence_no=1, spacing_days=spacing, **base)]
        requests.extend(
            SlotRequest(
                occurrence_no=number,
                spacing_days=spacing,
                required=False,
                latest_day=cutoff,
                **base,
            )
            for number in range(2, cycles + 1)
        )
        return requests

    return [SlotRequest(occurrence_no=1, **base)]
