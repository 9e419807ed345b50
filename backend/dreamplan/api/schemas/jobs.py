"""Schemas for job operations endpoints."""
from __future__ import annotations

from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel


class JobRunRequest(BaseModel):
    job: Literal["occurrence_topup"] = "occurrence_topup"
    dream_id: Optional[UUID] = None


class JobRunResponse(BaseModel):
    job: str
    dreams_processed: int
    occurrences_written: int
    failures: int
    request_id: str
