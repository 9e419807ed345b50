"""Scheduling engine exceptions."""
from __future__ import annotations


class SchedulingValidationError(ValueError):
    """Raised when dream input is malformed; the whole scheduling call fails."""
