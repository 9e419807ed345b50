"""Schemas for the occurrence scheduling engine and its endpoints."""
from __future__ import annotations

from datetime import date, datetime
from typing import List, Literal, Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Dream dates are parsed by the engine itself so that malformed values
# surface as a scheduling failure rather than a request validation error.
RawDate = Union[date, str, None]


class SchedulingContext(BaseModel):
    user_id: str
    timezone: str = "UTC"


class DreamWindowInput(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    start_date: RawDate = None
    end_date: RawDate = None


class AreaInput(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    dream_id: Optional[str] = None
    position: int = 0
    deleted_at: Optional[datetime] = None


class ActionInput(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    area_id: str
    position: int = 0
    repeat_every_days: Optional[int] = Field(default=None, ge=1)
    repeat_until_date: Optional[date] = None
    slice_count_target: Optional[int] = Field(default=None, ge=1)
    is_active: bool = True
    deleted_at: Optional[datetime] = None
    difficulty: Optional[Literal["easy", "medium", "hard"]] = None
    est_minutes: Optional[int] = Field(default=None, ge=0)

    @property
    def is_series(self) -> bool:
        return (self.slice_count_target or 0) >= 2

    @property
    def is_open_ended(self) -> bool:
        return self.repeat_every_days is not None and not self.is_series


class ExistingOccurrenceInput(BaseModel):
    model_config = ConfigDict(extra="ignore")

    action_id: str
    occurrence_no: int = Field(..., ge=1)
    due_on: date


class DreamSchedulingInput(BaseModel):
    dream: Optional[DreamWindowInput] = None
    areas: List[AreaInput] = Field(default_factory=list)
    actions: List[ActionInput] = Field(default_factory=list)
    existing_occurrences: List[ExistingOccurrenceInput] = Field(default_factory=list)

    @field_validator("areas", "actions", "existing_occurrences", mode="before")
    @classmethod
    def none_as_empty(cls, value):
        return [] if value is None else value


class OccurrencePayload(BaseModel):
    action_id: str
    area_id: Optional[str] = None
    occurrence_no: int
    due_on: date
    planned_due_on: date
    defer_count: int = 0
    difficulty: Optional[str] = None
    est_minutes: Optional[int] = None


class SchedulingResult(BaseModel):
    success: bool
    occurrences: List[OccurrencePayload] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    auto_compacted: bool = False
    recommended_end: Optional[date] = None
    too_tight: bool = False


class SchedulingPreviewRequest(BaseModel):
    context: SchedulingContext
    input: DreamSchedulingInput


class DreamScheduleRequest(BaseModel):
    user_id: UUID


class DreamRescheduleRequest(BaseModel):
    user_id: UUID
    end_date: Optional[date] = None
    reset_completed: bool = False


class DreamScheduleResponse(BaseModel):
    dream_id: UUID
    scheduled_count: int
    removed_count: int = 0
    warnings: List[str] = Field(default_factory=list)
    auto_compacted: bool
    recommended_end: Optional[date]
    too_tight: bool
    request_id: str


class OccurrenceSummary(BaseModel):
    id: UUID
    action_id: UUID
    area_id: UUID
    occurrence_no: int
    due_on: date
    planned_due_on: date
    defer_count: int
    completed: bool
