"""Database utilities and models."""

from dreamplan.db.base import Base
from dreamplan.db import models  # noqa: F401  (imported for side effects)

__all__ = ["Base"]
