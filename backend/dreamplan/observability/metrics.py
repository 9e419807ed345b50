"""Lightweight metrics helpers recorded as short-lived Opik traces."""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from dreamplan.observability.tracing import trace

logger = logging.getLogger(__name__)


def log_metric(name: str, value: float | int, metadata: Optional[Dict[str, Any]] = None) -> None:
    """Record a metric; a no-op when Opik is disabled."""
    payload: Dict[str, Any] = {"value": value}
    if metadata:
        payload.update({key: val for key, val in metadata.items() if val is not None})
    with trace(f"metric:{name}", metadata=payload):
        logger.debug("metric %s=%s", name, value)


def log_schedule_metrics(prefix: str, result, latency_ms: float, metadata: Optional[Dict[str, Any]] = None) -> None:
    """Emit the standard counters for one scheduling run."""
    base = dict(metadata or {})
    log_metric(f"{prefix}.success", 1 if result.success else 0, metadata=base)
    log_metric(f"{prefix}.occurrences", len(result.occurrences), metadata=base)
    log_metric(f"{prefix}.too_tight", 1 if result.too_tight else 0, metadata=base)
    log_metric(f"{prefix}.auto_compacted", 1 if result.auto_compacted else 0, metadata=base)
    log_metric(f"{prefix}.latency_ms", latency_ms, metadata=base)
