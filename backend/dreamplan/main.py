"""Main FastAPI application for the DreamPlan scheduling backend."""
from fastapi import FastAPI, Request

from dreamplan.api.routes.agent_log import router as agent_log_router
from dreamplan.api.routes.dreams import router as dreams_router
from dreamplan.api.routes.jobs import router as jobs_router
from dreamplan.api.routes.scheduling import router as scheduling_router
from dreamplan.core.config import settings
from dreamplan.core.logging import configure_logging
from dreamplan.core.middleware import RequestIDMiddleware
from dreamplan.observability.client import flush_opik, init_opik
from dreamplan.observability.tracing import trace

configure_logging(log_level=settings.log_level)

app = FastAPI(title=settings.app_name, version="0.1.0")
app.add_middleware(RequestIDMiddleware)
app.include_router(scheduling_router)
app.include_router(dreams_router)
app.include_router(agent_log_router)
app.include_router(jobs_router)


@app.on_event("startup")
async def startup_observability() -> None:
    """Initialize observability backends after the event loop starts."""
    init_opik()


@app.on_event("shutdown")
async def shutdown_observability() -> None:
    flush_opik()


@app.get("/health", tags=["health"], summary="Readiness probe")
async def health_check(request: Request) -> dict[str, str]:
    """Return a simple status payload so automation can probe the API."""
    with trace("http.health_check", metadata={"route": "/health"}, request_id=request.state.request_id):
        return {"status": "ok"}
