"""Load dream snapshots, run the scheduling engine and persist new occurrences."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional, Set, Tuple
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from dreamplan.api.schemas.scheduling import (
    ActionInput,
    AreaInput,
    DreamSchedulingInput,
    DreamWindowInput,
    ExistingOccurrenceInput,
    SchedulingContext,
    SchedulingResult,
)
from dreamplan.core.config import settings
from dreamplan.db.models.action import Action
from dreamplan.db.models.action_occurrence import ActionOccurrence
from dreamplan.db.models.agent_action_log import AgentActionLog
from dreamplan.db.models.area import Area
from dreamplan.db.models.dream import Dream
from dreamplan.db.models.user import User
from dreamplan.services.scheduling import SchedulingPolicy, SchedulingValidationError, schedule_dream_actions, to_result

logger = logging.getLogger(__name__)


@dataclass
class DreamScheduleRun:
    result: SchedulingResult
    created: List[ActionOccurrence] = field(default_factory=list)
    removed_count: int = 0

    @property
    def scheduled_count(self) -> int:
        return len(self.created)


def schedule_dream(
    db: Session,
    dream: Dream,
    *,
    request_id: str | None = None,
    policy: SchedulingPolicy | None = None,
) -> DreamScheduleRun:
    """
    Schedule new occurrences for a dream and persist them.

    The dream row is locked for the duration of the transaction so two runs
    for the same dream cannot both compute against the same snapshot.
    Raises SchedulingValidationError when the engine rejects the dream.
    """
    try:
        _lock_dream(db, dream.id)
        run = _schedule_locked(
            db,
            dream,
            action_type="dream_actions_scheduled",
            request_id=request_id,
            policy=policy,
            removed_count=0,
        )
        db.commit()
    except (HTTPException, SchedulingValidationError):
        db.rollback()
        raise
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Occurrences changed while scheduling; retry the request",
        ) from exc
    except Exception:
        db.rollback()
        raise
    return run


def reschedule_dream(
    db: Session,
    dream: Dream,
    *,
    end_date: Optional[date] = None,
    reset_completed: bool = False,
    request_id: str | None = None,
    policy: SchedulingPolicy | None = None,
) -> DreamScheduleRun:
    """
    Optionally move the dream's end date, drop pending occurrences and schedule again.

    Completed occurrences survive unless ``reset_completed`` is set. Survivors
    are renumbered 1..n per action in their original order, then passed to the
    engine as the existing snapshot so numbering and spacing continue from them.
    """
    try:
        _lock_dream(db, dream.id)
        if end_date is not None and end_date != dream.end_date:
            logger.info("Moving end date of dream %s from %s to %s", dream.id, dream.end_date, end_date)
            dream.end_date = end_date
            db.add(dream)

        occurrences = db.query(ActionOccurrence).filter(ActionOccurrence.dream_id == dream.id).all()
        to_remove: List[ActionOccurrence] = []
        survivors: List[ActionOccurrence] = []
        for occurrence in occurrences:
            if reset_completed or occurrence.completed_at is None:
                to_remove.append(occurrence)
            else:
                survivors.append(occurrence)
        for occurrence in to_remove:
            db.delete(occurrence)
        if to_remove:
            db.flush()
            renumbered = _renumber_survivors(db, survivors)
            if renumbered:
                logger.info("Renumbered %s kept occurrence(s) of dream %s", renumbered, dream.id)

        run = _schedule_locked(
            db,
            dream,
            action_type="dream_rescheduled",
            request_id=request_id,
            policy=policy,
            removed_count=len(to_remove),
        )
        db.commit()
    except (HTTPException, SchedulingValidationError):
        db.rollback()
        raise
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Occurrences changed while rescheduling; retry the request",
        ) from exc
    except Exception:
        db.rollback()
        raise
    return run


def build_scheduling_input(db: Session, dream: Dream) -> DreamSchedulingInput:
    """Snapshot the live areas, actions and occurrences of a dream for the engine."""
    areas = (
        db.query(Area)
        .filter(Area.dream_id == dream.id, Area.deleted_at.is_(None))
        .order_by(Area.position.asc())
        .all()
    )
    area_ids = [area.id for area in areas]
    actions: List[Action] = []
    if area_ids:
        actions = (
            db.query(Action)
            .filter(
                Action.area_id.in_(area_ids),
                Action.deleted_at.is_(None),
                Action.is_active.is_(True),
            )
            .order_by(Action.position.asc())
            .all()
        )
    # Every occurrence on the dream's calendar takes a slot, including those of
    # paused or deleted actions; numbering and spacing stay keyed by action.
    occurrences = db.query(ActionOccurrence).filter(ActionOccurrence.dream_id == dream.id).all()

    return DreamSchedulingInput(
        dream=DreamWindowInput(id=str(dream.id), start_date=dream.start_date, end_date=dream.end_date),
        areas=[AreaInput(id=str(area.id), dream_id=str(area.dream_id), position=area.position or 0) for area in areas],
        actions=[_action_input(action) for action in actions],
        existing_occurrences=[
            ExistingOccurrenceInput(
                action_id=str(occ.action_id),
                occurrence_no=occ.occurrence_no,
                due_on=occ.due_on,
            )
            for occ in occurrences
        ],
    )


def scheduling_context_for(db: Session, dream: Dream) -> SchedulingContext:
    user = db.get(User, dream.user_id)
    timezone = (user.timezone if user else None) or settings.default_timezone
    return SchedulingContext(user_id=str(dream.user_id), timezone=timezone)


def list_dream_occurrences(db: Session, dream_id: UUID) -> List[Tuple[ActionOccurrence, int, int]]:
    """Return occurrences with their area and action positions, ordered for display."""
    rows = (
        db.query(ActionOccurrence, Area.position, Action.position)
        .join(Action, Action.id == ActionOccurrence.action_id)
        .join(Area, Area.id == ActionOccurrence.area_id)
        .filter(ActionOccurrence.dream_id == dream_id)
        .all()
    )
    rows.sort(key=lambda row: (row[0].due_on, row[1], row[2], row[0].occurrence_no))
    return rows


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _schedule_locked(
    db: Session,
    dream: Dream,
    *,
    action_type: str,
    request_id: str | None,
    policy: SchedulingPolicy | None,
    removed_count: int,
) -> DreamScheduleRun:
    policy = policy or SchedulingPolicy.from_settings()
    data = build_scheduling_input(db, dream)
    context = scheduling_context_for(db, dream)
    result = to_result(schedule_dream_actions(context, data, policy))
    if not result.success:
        raise SchedulingValidationError("; ".join(result.errors))

    created = _persist_occurrences(db, dream, result, data)
    _log_agent_action(
        db,
        dream=dream,
        action_type=action_type,
        reason=f"Scheduled {len(created)} occurrence(s) for dream {dream.id}",
        payload={
            "dream_id": str(dream.id),
            "scheduled_count": len(created),
            "removed_count": removed_count,
            "auto_compacted": result.auto_compacted,
            "recommended_end": result.recommended_end,
            "too_tight": result.too_tight,
            "warnings": result.warnings,
            "request_id": request_id,
        },
    )
    return DreamScheduleRun(result=result, created=created, removed_count=removed_count)


def _persist_occurrences(
    db: Session,
    dream: Dream,
    result: SchedulingResult,
    data: DreamSchedulingInput,
) -> List[ActionOccurrence]:
    existing_keys: Set[Tuple[str, int]] = {
        (occ.action_id, occ.occurrence_no) for occ in data.existing_occurrences
    }
    area_by_action = {action.id: action.area_id for action in data.actions}

    created: List[ActionOccurrence] = []
    for occurrence in result.occurrences:
        key = (occurrence.action_id, occurrence.occurrence_no)
        if key in existing_keys:
            logger.debug("Skipping duplicate occurrence %s #%s", *key)
            continue
        existing_keys.add(key)
        row = ActionOccurrence(
            user_id=dream.user_id,
            dream_id=dream.id,
            area_id=UUID(occurrence.area_id or area_by_action[occurrence.action_id]),
            action_id=UUID(occurrence.action_id),
            occurrence_no=occurrence.occurrence_no,
            planned_due_on=occurrence.planned_due_on,
            due_on=occurrence.due_on,
            defer_count=occurrence.defer_count,
        )
        db.add(row)
        created.append(row)
    if created:
        db.flush()
    return created


def _renumber_survivors(db: Session, survivors: List[ActionOccurrence]) -> int:
    """Close the numbering gaps left by removed occurrences, keeping each action's order."""
    by_action: Dict[UUID, List[ActionOccurrence]] = {}
    for occurrence in survivors:
        by_action.setdefault(occurrence.action_id, []).append(occurrence)

    renumbered = 0
    for rows in by_action.values():
        rows.sort(key=lambda occ: occ.occurrence_no)
        for number, occurrence in enumerate(rows, start=1):
            if occurrence.occurrence_no == number:
                continue
            occurrence.occurrence_no = number
            # Numbers only move down, one row per flush, so the unique key never collides.
            db.flush()
            renumbered += 1
    return renumbered


def _lock_dream(db: Session, dream_id: UUID) -> None:
    # Row lock serializes concurrent runs per dream; SQLite ignores FOR UPDATE.
    db.query(Dream.id).filter(Dream.id == dream_id).with_for_update().one()


def _action_input(action: Action) -> ActionInput:
    return ActionInput(
        id=str(action.id),
        area_id=str(action.area_id),
        position=action.position or 0,
        repeat_every_days=action.repeat_every_days,
        repeat_until_date=action.repeat_until_date,
        slice_count_target=action.slice_count_target,
        is_active=bool(action.is_active),
        difficulty=action.difficulty,
        est_minutes=action.est_minutes,
    )


def _log_agent_action(
    db: Session,
    *,
    dream: Dream,
    action_type: str,
    reason: str,
    payload: dict,
) -> None:
    log = AgentActionLog(
        user_id=dream.user_id,
        dream_id=dream.id,
        action_type=action_type,
        action_payload=payload,
        reason=reason,
        undo_available=False,
    )
    db.add(log)
