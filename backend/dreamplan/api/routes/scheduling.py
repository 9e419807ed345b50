"""Stateless scheduling preview endpoint."""
from __future__ import annotations

from time import perf_counter

from fastapi import APIRouter, Request

from dreamplan.api.schemas.scheduling import SchedulingPreviewRequest, SchedulingResult
from dreamplan.observability.metrics import log_schedule_metrics
from dreamplan.observability.tracing import record_schedule_output, trace
from dreamplan.services.scheduling import SchedulingPolicy, schedule_dream_actions_result

router = APIRouter()


@router.post("/scheduling/preview", response_model=SchedulingResult, tags=["scheduling"])
def scheduling_preview(request: Request, payload: SchedulingPreviewRequest) -> SchedulingResult:
    """Run the scheduling engine on a caller-supplied snapshot without persisting anything."""
    request_id = getattr(request.state, "request_id", None)
    dream_id = payload.input.dream.id if payload.input.dream else None
    metadata = {
        "route": "/scheduling/preview",
        "actions": len(payload.input.actions),
        "existing_occurrences": len(payload.input.existing_occurrences),
    }
    start = perf_counter()
    with trace(
        "scheduling.preview",
        metadata=metadata,
        user_id=payload.context.user_id,
        request_id=request_id,
        dream_id=dream_id,
    ) as opik_trace:
        result = schedule_dream_actions_result(payload.context, payload.input, SchedulingPolicy.from_settings())
        record_schedule_output(opik_trace, result)

    latency_ms = (perf_counter() - start) * 1000
    log_schedule_metrics("scheduling.preview", result, latency_ms, metadata={"user_id": payload.context.user_id})
    return result
