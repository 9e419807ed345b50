"""Audit trail endpoints for scheduling runs."""
from __future__ import annotations

import base64
from datetime import datetime
from time import perf_counter
from typing import Any, Tuple
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy import and_, desc, or_
from sqlalchemy.orm import Session

from dreamplan.api.schemas.agent_log import AgentLogDetailResponse, AgentLogListItem, AgentLogListResponse
from dreamplan.db.deps import get_db
from dreamplan.db.models.agent_action_log import AgentActionLog
from dreamplan.observability.metrics import log_metric
from dreamplan.observability.tracing import trace

router = APIRouter()

_SUMMARIES = {
    "dream_actions_scheduled": "Occurrences scheduled",
    "dream_rescheduled": "Dream rescheduled",
}


@router.get("/agent-log", response_model=AgentLogListResponse, tags=["agent-log"])
def list_agent_log(
    request: Request,
    user_id: UUID = Query(..., description="User ID"),
    dream_id: UUID | None = Query(None, description="Only entries for this dream"),
    limit: int = Query(50, ge=1, le=100),
    cursor: str | None = Query(None),
    action_type: str | None = Query(None, description="Filter by action type"),
    db: Session = Depends(get_db),
) -> AgentLogListResponse:
    request_id = getattr(request.state, "request_id", None)
    metadata = {
        "limit": limit,
        "cursor": bool(cursor),
        "action_type": action_type,
    }
    start = perf_counter()
    with trace(
        "agent_log.list",
        metadata=metadata,
        user_id=str(user_id),
        request_id=request_id,
        dream_id=str(dream_id) if dream_id else None,
    ):
        query = db.query(AgentActionLog).filter(AgentActionLog.user_id == user_id)
        if dream_id:
            query = query.filter(AgentActionLog.dream_id == dream_id)
        if action_type:
            query = query.filter(AgentActionLog.action_type == action_type)
        if cursor:
            try:
                cursor_created, cursor_id = _decode_cursor(cursor)
            except ValueError:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid cursor")
            query = query.filter(
                or_(
                    AgentActionLog.created_at < cursor_created,
                    and_(AgentActionLog.created_at == cursor_created, AgentActionLog.id < cursor_id),
                )
            )
        logs = (
            query.order_by(desc(AgentActionLog.created_at), desc(AgentActionLog.id))
            .limit(limit + 1)
            .all()
        )

    latency_ms = (perf_counter() - start) * 1000
    has_more = len(logs) > limit
    items = [_serialize_log_item(log) for log in logs[:limit]]
    next_cursor = _encode_cursor(logs[limit - 1]) if has_more else None

    log_metric("agent_log.list.count", len(items), metadata={"user_id": str(user_id)})
    log_metric("agent_log.list.latency_ms", latency_ms, metadata={"user_id": str(user_id)})

    return AgentLogListResponse(
        user_id=user_id,
        items=items,
        next_cursor=next_cursor,
        request_id=request_id or "",
    )


@router.get("/agent-log/{log_id}", response_model=AgentLogDetailResponse, tags=["agent-log"])
def get_agent_log(
    log_id: UUID,
    request: Request,
    user_id: UUID = Query(..., description="User ID"),
    db: Session = Depends(get_db),
) -> AgentLogDetailResponse:
    request_id = getattr(request.state, "request_id", None)
    with trace("agent_log.get", metadata={"log_id": str(log_id)}, user_id=str(user_id), request_id=request_id):
        log_entry = db.get(AgentActionLog, log_id)
        if not log_entry:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Agent log entry not found")
        if log_entry.user_id != user_id:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Log does not belong to user")

    payload = _ensure_payload_dict(log_entry.action_payload)
    return AgentLogDetailResponse(
        id=log_entry.id,
        user_id=log_entry.user_id,
        dream_id=log_entry.dream_id,
        created_at=log_entry.created_at.isoformat() if log_entry.created_at else "",
        action_type=log_entry.action_type,
        payload=payload,
        summary=_derive_summary(log_entry.action_type, payload),
        request_id=_extract_request_id(payload),
        request_id_header=request_id or "",
    )


def _serialize_log_item(log: AgentActionLog) -> AgentLogListItem:
    payload = _ensure_payload_dict(log.action_payload)
    return AgentLogListItem(
        id=log.id,
        dream_id=log.dream_id,
        created_at=log.created_at.isoformat() if log.created_at else "",
        action_type=log.action_type,
        summary=_derive_summary(log.action_type, payload),
        scheduled_count=payload.get("scheduled_count"),
        too_tight=bool(payload.get("too_tight")),
        request_id=_extract_request_id(payload),
    )


def _derive_summary(action_type: str, payload: dict[str, Any]) -> str:
    label = _SUMMARIES.get(action_type)
    if label is None:
        return action_type.replace("_", " ").title()

    count = payload.get("scheduled_count")
    parts = [label]
    if isinstance(count, int):
        parts.append(f"{count} new")
    if payload.get("auto_compacted"):
        parts.append("window compacted")
    if payload.get("too_tight"):
        parts.append("too tight")
    return parts[0] if len(parts) == 1 else f"{parts[0]} ({', '.join(parts[1:])})"


def _extract_request_id(payload: dict[str, Any]) -> str | None:
    value = payload.get("request_id")
    if isinstance(value, str) and value:
        return value
    return None


def _encode_cursor(log: AgentActionLog) -> str | None:
    if not log.created_at:
        return None
    raw = f"{log.created_at.isoformat()}|{log.id}"
    return base64.urlsafe_b64encode(raw.encode("utf-8")).decode("utf-8")


def _decode_cursor(cursor: str) -> Tuple[datetime, UUID]:
    try:
        decoded = base64.urlsafe_b64decode(cursor.encode("utf-8")).decode("utf-8")
        created_str, log_id_str = decoded.split("|", 1)
        return datetime.fromisoformat(created_str), UUID(log_id_str)
    except (ValueError, UnicodeDecodeError) as exc:
        raise ValueError("invalid cursor") from exc


def _ensure_payload_dict(payload: Any) -> dict[str, Any]:
    if isinstance(payload, dict):
        return payload
    return {}
