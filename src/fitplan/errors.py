"""Exceptions raised by the scheduling engine."""

from __future__ import annotations


class FitplanError(Exception):
    """Base class for all engine errors."""


class ValidationError(FitplanError, ValueError):
    """Input rejected before any date computation happens."""

    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")


class InconsistentStateError(FitplanError):
    """Operation needs state that has not been computed yet."""
