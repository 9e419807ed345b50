"""Tracing utilities wrapping Opik."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Dict, Iterator, Optional

from dreamplan.core.context import get_request_id
from dreamplan.observability.client import get_opik_client

if TYPE_CHECKING:  # pragma: no cover - typing helper
    from opik.api_objects.trace.trace_client import Trace
else:  # pragma: no cover - typing helper
    Trace = object  # type: ignore[assignment]

logger = logging.getLogger(__name__)


@contextmanager
def trace(
    name: str,
    metadata: Optional[Dict[str, Any]] = None,
    user_id: Optional[str] = None,
    request_id: Optional[str] = None,
    dream_id: Optional[str] = None,
) -> Iterator[Optional["Trace"]]:
    """
    Create an Opik trace context manager.

    The request id defaults to the one bound by the request middleware.
    When Opik is disabled or unavailable the context yields None.
    """
    client = get_opik_client()
    opik_trace: Optional["Trace"] = None

    if client:
        trace_metadata = _trace_metadata(metadata, user_id, request_id or get_request_id(), dream_id)
        try:
            opik_trace = client.trace(name=name, metadata=trace_metadata or None)
        except Exception as exc:  # pragma: no cover - tracing must not break requests
            logger.debug("Unable to start Opik trace %s: %s", name, exc)
            opik_trace = None

    try:
        yield opik_trace
    except Exception as exc:
        if opik_trace:
            try:
                opik_trace.update(error_info={"exception_type": type(exc).__name__, "message": str(exc)})
            except Exception:  # pragma: no cover
                logger.debug("Failed to attach error info to Opik trace %s", name, exc_info=True)
        raise
    finally:
        if opik_trace:
            try:
                opik_trace.end()
            except Exception:  # pragma: no cover
                logger.debug("Failed to close Opik trace %s cleanly", name, exc_info=True)


def record_schedule_output(opik_trace: Optional["Trace"], result) -> None:
    """Attach the summary of a scheduling result as the trace output."""
    if not opik_trace:
        return
    output = {
        "success": result.success,
        "occurrences": len(result.occurrences),
        "too_tight": result.too_tight,
        "auto_compacted": result.auto_compacted,
        "recommended_end": result.recommended_end.isoformat() if result.recommended_end else None,
        "warnings": len(result.warnings),
        "errors": list(result.errors),
    }
    try:
        opik_trace.update(output=output)
    except Exception:  # pragma: no cover
        logger.debug("Failed to attach scheduling output to Opik trace", exc_info=True)


def _trace_metadata(
    metadata: Optional[Dict[str, Any]],
    user_id: Optional[str],
    request_id: Optional[str],
    dream_id: Optional[str],
) -> Dict[str, Any]:
    trace_metadata = dict(metadata or {})
    for key, value in (("user_id", user_id), ("dream_id", dream_id), ("request_id", request_id)):
        if value:
            trace_metadata.setdefault(key, str(value))
    return trace_metadata
