"""Drop slot requests that existing occurrences already cover."""
from __future__ import annotations

from typing import Dict, Iterable, Sequence, Tuple

from dreamplan.api.schemas.scheduling import ExistingOccurrenceInput
from dreamplan.services.scheduling.queue import SlotRequest


def max_seeded_numbers(existing_occurrences: Iterable[ExistingOccurrenceInput]) -> Dict[str, int]:
    seeded: Dict[str, int] = {}
    for occurrence in existing_occurrences:
        current = seeded.get(occurrence.action_id, 0)
        if occurrence.occurrence_no > current:
            seeded[occurrence.action_id] = occurrence.occurrence_no
    return seeded


def filter_already_seeded(
    queue: Sequence[SlotRequest],
    existing_occurrences: Iterable[ExistingOccurrenceInput],
) -> Tuple[SlotRequest, ...]:
    """Keep only requests numbered above the highest existing occurrence of their action."""
    seeded = max_seeded_numbers(existing_occurrences)
    if not seeded:
        return tuple(queue)
    return tuple(request for request in queue if request.occurrence_no > seeded.get(request.action_id, 0))
