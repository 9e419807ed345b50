"""Schemas for the scheduling audit trail endpoints."""
from __future__ import annotations

from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel


class AgentLogListItem(BaseModel):
    id: UUID
    dream_id: Optional[UUID] = None
    created_at: str
    action_type: str
    summary: str
    scheduled_count: Optional[int] = None
    too_tight: bool = False
    request_id: Optional[str] = None


class AgentLogListResponse(BaseModel):
    user_id: UUID
    items: List[AgentLogListItem]
    next_cursor: Optional[str]
    request_id: str


class AgentLogDetailResponse(BaseModel):
    id: UUID
    user_id: UUID
    dream_id: Optional[UUID] = None
    created_at: str
    action_type: str
    payload: Dict[str, Any]
    summary: str
    request_id: Optional[str] = None
    request_id_header: str
