"""Occurrence scheduling engine entry point."""
from __future__ import annotations

import logging
from typing import Optional

from dreamplan.api.schemas.scheduling import DreamSchedulingInput, SchedulingContext, SchedulingResult
from dreamplan.services.scheduling.allocator import AllocationState, allocate
from dreamplan.services.scheduling.errors import SchedulingValidationError
from dreamplan.services.scheduling.idempotency import filter_already_seeded
from dreamplan.services.scheduling.policy import SchedulingPolicy
from dreamplan.services.scheduling.queue import (
    build_queue,
    estimate_bounded_units,
    ordered_actions,
    series_shapes,
)
from dreamplan.services.scheduling.result import ScheduleOutcome, aggregate, fail, to_result
from dreamplan.services.scheduling.window import resolve_window

logger = logging.getLogger(__name__)


def schedule_dream_actions(
    context: SchedulingContext,
    data: DreamSchedulingInput,
    policy: Optional[SchedulingPolicy] = None,
) -> ScheduleOutcome:
    """
    Compute new occurrences for one dream.

    The run is pure: it only reads ``data`` and never mutates the existing
    occurrences it is given. Malformed dream input yields ``Failed`` with a
    single error; everything else, including an empty action list or a
    window too small for the workload, succeeds.
    """
    policy = policy or SchedulingPolicy()
    try:
        return _run(context, data, policy)
    except SchedulingValidationError as exc:
        logger.warning("Scheduling rejected for user %s: %s", context.user_id, exc)
        return fail(str(exc))


def schedule_dream_actions_result(
    context: SchedulingContext,
    data: DreamSchedulingInput,
    policy: Optional[SchedulingPolicy] = None,
) -> SchedulingResult:
    """Same as ``schedule_dream_actions`` but rendered as the flat result."""
    return to_result(schedule_dream_actions(context, data, policy))


def _run(context: SchedulingContext, data: DreamSchedulingInput, policy: SchedulingPolicy) -> ScheduleOutcome:
    dream = data.dream
    if dream is None:
        raise SchedulingValidationError("Dream is required")

    ordered, _ = ordered_actions(data.areas, data.actions, dream.id)
    window = resolve_window(
        dream.start_date,
        dream.end_date,
        estimate_bounded_units(ordered),
        series=series_shapes(ordered),
        policy=policy,
    )

    existing = data.existing_occurrences
    state = AllocationState.from_existing(existing)

    built = build_queue(data.areas, data.actions, window, policy, dream_id=dream.id)
    queue = filter_already_seeded(built.requests, existing)
    allocation = allocate(queue, window.window_start, window.window_end, state, policy)

    if window.auto_compacted and allocation.too_tight:
        logger.info("Compacted window for dream %s is too tight; using the nominal end instead", dream.id)
        window = window.without_compaction()
        built = build_queue(data.areas, data.actions, window, policy, dream_id=dream.id)
        queue = filter_already_seeded(built.requests, existing)
        allocation = allocate(queue, window.window_start, window.window_end, state, policy)

    logger.info(
        "Scheduled dream %s for user %s: %s new occurrences from %s requests (tight=%s, compacted=%s)",
        dream.id,
        context.user_id,
        len(allocation.occurrences),
        len(queue),
        allocation.too_tight,
        window.auto_compacted,
    )
    return aggregate(window, allocation, built.warnings)
