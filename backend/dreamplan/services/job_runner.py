"""Batch job runners for the daily occurrence top-up."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from dreamplan.db.models.dream import Dream
from dreamplan.services.dream_scheduling import schedule_dream
from dreamplan.services.scheduling import SchedulingPolicy


logger = logging.getLogger(__name__)


@dataclass
class JobRunResult:
    dreams_processed: int
    occurrences_written: int
    failures: int = 0


def _active_dream_ids(db: Session) -> List[UUID]:
    rows = (
        db.query(Dream.id)
        .filter(
            Dream.activated_at.isnot(None),
            Dream.archived_at.is_(None),
            Dream.completed_at.is_(None),
        )
        .order_by(Dream.created_at.asc())
        .all()
    )
    return [row[0] for row in rows]


def run_topup_for_dream(
    db: Session,
    dream_id: UUID,
    *,
    policy: Optional[SchedulingPolicy] = None,
) -> int:
    """Schedule missing occurrences for one dream and return how many were written."""
    dream = db.get(Dream, dream_id)
    if not dream:
        raise ValueError("Dream not found")
    run = schedule_dream(db, dream, policy=policy)
    if run.result.too_tight:
        logger.info("Top-up for dream %s is too tight: %s", dream_id, run.result.warnings)
    return run.scheduled_count


def run_topup_for_active_dreams(
    db: Session,
    *,
    dream_ids: Optional[Iterable[UUID]] = None,
    policy: Optional[SchedulingPolicy] = None,
) -> JobRunResult:
    ids = _normalize_dream_ids(dream_ids, db)
    policy = policy or SchedulingPolicy.from_settings()
    dreams_processed = 0
    occurrences_written = 0
    failures = 0
    for dream_id in ids:
        try:
            written = run_topup_for_dream(db, dream_id, policy=policy)
        except Exception:
            failures += 1
            logger.exception("Top-up job failed for dream %s", dream_id)
            continue
        dreams_processed += 1
        occurrences_written += written
    return JobRunResult(
        dreams_processed=dreams_processed,
        occurrences_written=occurrences_written,
        failures=failures,
    )


def _normalize_dream_ids(dream_ids: Optional[Iterable[UUID]], db: Session) -> List[UUID]:
    if dream_ids is None:
        return _active_dream_ids(db)
    return list(dict.fromkeys(dream_ids))
