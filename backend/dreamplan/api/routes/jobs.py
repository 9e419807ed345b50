"""Operational endpoints for scheduler jobs."""
from __future__ import annotations

from time import perf_counter

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from dreamplan.api.schemas.jobs import JobRunRequest, JobRunResponse
from dreamplan.core.config import settings
from dreamplan.db.deps import get_db
from dreamplan.observability.metrics import log_metric
from dreamplan.observability.tracing import trace
from dreamplan.services.job_runner import JobRunResult, run_topup_for_active_dreams, run_topup_for_dream
from dreamplan.services.scheduling import SchedulingValidationError

router = APIRouter()


@router.get("/jobs", tags=["jobs"])
def get_jobs_config(request: Request) -> dict:
    request_id = getattr(request.state, "request_id", None)
    with trace("jobs.config", metadata={"request_id": request_id}, request_id=request_id):
        data = {
            "scheduler_enabled": settings.scheduler_enabled,
            "schedule": {
                "timezone": settings.scheduler_timezone,
                "topup_time": f"{settings.topup_job_hour:02d}:{settings.topup_job_minute:02d}",
            },
            "policy": {
                "daily_cap": settings.scheduling_daily_cap,
                "rest_weekday": settings.scheduling_rest_weekday,
                "compaction_ratio": settings.scheduling_compaction_ratio,
            },
        }
    return {**data, "request_id": request_id or ""}


@router.post("/jobs/run-now", response_model=JobRunResponse, tags=["jobs"])
def run_job_now(
    request: Request,
    payload: JobRunRequest,
    db: Session = Depends(get_db),
) -> JobRunResponse:
    if not settings.debug:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Run-now only allowed in debug mode")

    request_id = getattr(request.state, "request_id", None)
    metadata = {"job": payload.job, "request_id": request_id}
    start = perf_counter()
    with trace(
        "jobs.run_now",
        metadata=metadata,
        request_id=request_id,
        dream_id=str(payload.dream_id) if payload.dream_id else None,
    ):
        result = _run_topup_job(db, payload)

    latency_ms = (perf_counter() - start) * 1000
    log_metric("jobs.run_now.success", 1 if result.failures == 0 else 0, metadata={"job": payload.job})
    log_metric("jobs.run_now.latency_ms", latency_ms, metadata={"job": payload.job})

    return JobRunResponse(
        job=payload.job,
        dreams_processed=result.dreams_processed,
        occurrences_written=result.occurrences_written,
        failures=result.failures,
        request_id=request_id or "",
    )


def _run_topup_job(db: Session, payload: JobRunRequest) -> JobRunResult:
    if payload.dream_id:
        try:
            written = run_topup_for_dream(db, payload.dream_id)
        except SchedulingValidationError as exc:
            raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))
        except ValueError:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Dream not found")
        return JobRunResult(dreams_processed=1, occurrences_written=written)
    return run_topup_for_active_dreams(db)
