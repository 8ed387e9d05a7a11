"""
Custom exceptions for the ADAGE engine.

Per-call failures are reported as typed results; exceptions are reserved for
malformed input and for wiring mistakes.
"""

from __future__ import annotations


class AdageError(Exception):
    """Base exception for all engine errors."""

    pass


class ValidationError(AdageError, ValueError):
    """Input rejected at the call site before any state was changed."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class ConfigurationError(AdageError):
    """A required collaborator or setting is missing."""

    pass
