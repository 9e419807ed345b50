"""Database column type helpers."""
from __future__ import annotations

from pydantic_core import to_jsonable_python
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.types import JSON, TypeDecorator


class JSONBCompat(TypeDecorator):
    """
    JSONB on PostgreSQL, plain JSON on SQLite.

    Bound values pass through pydantic's encoder first so audit payloads may
    carry dates, UUIDs and models directly.
    """

    impl = JSONB
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "sqlite":  # pragma: no cover - dialect specific
            return dialect.type_descriptor(JSON())
        return dialect.type_descriptor(JSONB())

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return to_jsonable_python(value)
