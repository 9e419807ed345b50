"""Dream scheduling endpoints backed by the database."""
from __future__ import annotations

from time import perf_counter
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session

from dreamplan.api.schemas.scheduling import (
    DreamRescheduleRequest,
    DreamScheduleRequest,
    DreamScheduleResponse,
    OccurrenceSummary,
)
from dreamplan.db.deps import get_db
from dreamplan.db.models.dream import Dream
from dreamplan.observability.metrics import log_metric, log_schedule_metrics
from dreamplan.observability.tracing import record_schedule_output, trace
from dreamplan.services.dream_scheduling import (
    DreamScheduleRun,
    list_dream_occurrences,
    reschedule_dream,
    schedule_dream,
)
from dreamplan.services.scheduling import SchedulingValidationError

router = APIRouter()


@router.post("/dreams/{dream_id}/schedule", response_model=DreamScheduleResponse, tags=["dreams"])
def schedule_dream_endpoint(
    dream_id: UUID,
    payload: DreamScheduleRequest,
    http_request: Request,
    db: Session = Depends(get_db),
) -> DreamScheduleResponse:
    """Schedule any missing occurrences for a dream's actions."""
    dream = _get_owned_dream(db, dream_id, payload.user_id)
    request_id = getattr(http_request.state, "request_id", None)

    start = perf_counter()
    with trace(
        "dream.schedule",
        metadata={"route": f"/dreams/{dream_id}/schedule"},
        user_id=str(payload.user_id),
        request_id=request_id,
        dream_id=str(dream_id),
    ) as opik_trace:
        try:
            run = schedule_dream(db, dream, request_id=request_id)
        except SchedulingValidationError as exc:
            log_metric("dream.schedule.success", 0, metadata={"user_id": str(payload.user_id)})
            raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))
        record_schedule_output(opik_trace, run.result)

    latency_ms = (perf_counter() - start) * 1000
    log_schedule_metrics("dream.schedule", run.result, latency_ms, metadata={"user_id": str(payload.user_id)})
    return _response(dream_id, run, request_id)


@router.post("/dreams/{dream_id}/reschedule", response_model=DreamScheduleResponse, tags=["dreams"])
def reschedule_dream_endpoint(
    dream_id: UUID,
    payload: DreamRescheduleRequest,
    http_request: Request,
    db: Session = Depends(get_db),
) -> DreamScheduleResponse:
    """Move the end date and/or rebuild pending occurrences for a dream."""
    dream = _get_owned_dream(db, dream_id, payload.user_id)
    request_id = getattr(http_request.state, "request_id", None)

    start = perf_counter()
    with trace(
        "dream.reschedule",
        metadata={
            "route": f"/dreams/{dream_id}/reschedule",
            "end_date": payload.end_date.isoformat() if payload.end_date else None,
            "reset_completed": payload.reset_completed,
        },
        user_id=str(payload.user_id),
        request_id=request_id,
        dream_id=str(dream_id),
    ) as opik_trace:
        try:
            run = reschedule_dream(
                db,
                dream,
                end_date=payload.end_date,
                reset_completed=payload.reset_completed,
                request_id=request_id,
            )
        except SchedulingValidationError as exc:
            log_metric("dream.reschedule.success", 0, metadata={"user_id": str(payload.user_id)})
            raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))
        record_schedule_output(opik_trace, run.result)

    latency_ms = (perf_counter() - start) * 1000
    log_schedule_metrics("dream.reschedule", run.result, latency_ms, metadata={"user_id": str(payload.user_id)})
    log_metric("dream.reschedule.removed", run.removed_count, metadata={"user_id": str(payload.user_id)})
    return _response(dream_id, run, request_id)


@router.get("/dreams/{dream_id}/occurrences", response_model=List[OccurrenceSummary], tags=["dreams"])
def list_occurrences_endpoint(
    dream_id: UUID,
    http_request: Request,
    user_id: UUID = Query(..., description="User ID owning the dream"),
    db: Session = Depends(get_db),
) -> List[OccurrenceSummary]:
    """List persisted occurrences in calendar, then priority, order."""
    _get_owned_dream(db, dream_id, user_id)
    request_id = getattr(http_request.state, "request_id", None)
    with trace(
        "dream.occurrences",
        metadata={"route": f"/dreams/{dream_id}/occurrences"},
        user_id=str(user_id),
        request_id=request_id,
        dream_id=str(dream_id),
    ):
        rows = list_dream_occurrences(db, dream_id)

    log_metric("dream.occurrences.count", len(rows), metadata={"user_id": str(user_id)})
    return [
        OccurrenceSummary(
            id=occurrence.id,
            action_id=occurrence.action_id,
            area_id=occurrence.area_id,
            occurrence_no=occurrence.occurrence_no,
            due_on=occurrence.due_on,
            planned_due_on=occurrence.planned_due_on,
            defer_count=occurrence.defer_count or 0,
            completed=occurrence.completed_at is not None,
        )
        for occurrence, _area_position, _action_position in rows
    ]


def _get_owned_dream(db: Session, dream_id: UUID, user_id: UUID) -> Dream:
    dream = db.get(Dream, dream_id)
    if not dream:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Dream not found")
    if dream.user_id != user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Dream does not belong to user")
    return dream


def _response(dream_id: UUID, run: DreamScheduleRun, request_id: str | None) -> DreamScheduleResponse:
    result = run.result
    return DreamScheduleResponse(
        dream_id=dream_id,
        scheduled_count=run.scheduled_count,
        removed_count=run.removed_count,
        warnings=result.warnings,
        auto_compacted=result.auto_compacted,
        recommended_end=result.recommended_end,
        too_tight=result.too_tight,
        request_id=request_id or "",
    )
