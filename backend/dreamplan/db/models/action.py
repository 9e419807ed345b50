"""Action ORM model."""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
    text as sa_text,
)
from sqlalchemy.dialects.postgresql import UUID

from dreamplan.db.base import Base


class Action(Base):
    __tablename__ = "actions"
    __table_args__ = (
        Index("ix_actions_area_id", "area_id"),
        Index("ix_actions_dream_id", "dream_id"),
        CheckConstraint("repeat_every_days IS NULL OR repeat_every_days >= 1", name="ck_actions_repeat_every_days"),
        CheckConstraint("slice_count_target IS NULL OR slice_count_target >= 1", name="ck_actions_slice_count"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    dream_id = Column(UUID(as_uuid=True), ForeignKey("dreams.id", ondelete="CASCADE"), nullable=False)
    area_id = Column(UUID(as_uuid=True), ForeignKey("areas.id", ondelete="CASCADE"), nullable=False)
    title = Column(Text, nullable=False)
    est_minutes = Column(Integer, nullable=True)
    difficulty = Column(String(length=20), nullable=False, server_default=sa_text("'medium'"))
    repeat_every_days = Column(Integer, nullable=True)
    repeat_until_date = Column(Date, nullable=True)
    slice_count_target = Column(Integer, nullable=True)
    position = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, server_default=sa_text("true"))
    deleted_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
