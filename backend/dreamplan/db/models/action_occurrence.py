"""Action occurrence ORM model."""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import Column, Date, DateTime, ForeignKey, Index, Integer, Text, UniqueConstraint, func, text as sa_text
from sqlalchemy.dialects.postgresql import UUID

from dreamplan.db.base import Base


class ActionOccurrence(Base):
    __tablename__ = "action_occurrences"
    __table_args__ = (
        UniqueConstraint("action_id", "occurrence_no", name="uq_action_occurrences_action_no"),
        Index("ix_action_occurrences_action_date", "action_id", "due_on"),
        Index("ix_action_occurrences_dream_date", "dream_id", "due_on"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    dream_id = Column(UUID(as_uuid=True), ForeignKey("dreams.id", ondelete="CASCADE"), nullable=False)
    area_id = Column(UUID(as_uuid=True), ForeignKey("areas.id", ondelete="CASCADE"), nullable=False)
    action_id = Column(UUID(as_uuid=True), ForeignKey("actions.id", ondelete="CASCADE"), nullable=False)
    occurrence_no = Column(Integer, nullable=False)
    planned_due_on = Column(Date, nullable=False)
    due_on = Column(Date, nullable=False)
    defer_count = Column(Integer, nullable=False, server_default=sa_text("0"))
    note = Column(Text, nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
