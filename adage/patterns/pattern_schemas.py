"""
Schemas for error pattern matching.

An ErrorPattern is a reusable signature of a recurring problem, described by
optional regex fields that are compared against the fields of a Signal.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, Optional

# Regex fields compiled and validated at registration
PATTERN_FIELDS = (
    "error_type_pattern",
    "message_pattern",
    "stack_trace_pattern",
    "class_name_pattern",
    "method_name_pattern",
)


class MatchQuality(Enum):
    """Discrete quality band of a pattern match score."""

    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"
    NO_MATCH = "no_match"


@dataclass(frozen=True)
class Signal:
    """An incoming problem signature, typically extracted from an error log."""

    error_type: Optional[str] = None
    message: Optional[str] = None
    stack_trace: Optional[str] = None
    class_name: Optional[str] = None
    method_name: Optional[str] = None
    severity: Optional[float] = None  # 0.0-1.0, set when extracted from a log entry

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "error_type": self.error_type,
            "message": self.message,
            "stack_trace": self.stack_trace,
            "class_name": self.class_name,
            "method_name": self.method_name,
            "severity": self.severity,
        }


@dataclass
class ErrorPattern:
    """
    A learned error pattern with self-adjusting confidence.

    Confidence and occurrence statistics are mutated only through
    PatternLibrary, under the pattern's lock.
    """

    pattern_id: str
    name: str
    category: Optional[str] = None

    # Regex-style fields, each optional
    error_type_pattern: Optional[str] = None
    message_pattern: Optional[str] = None
    stack_trace_pattern: Optional[str] = None
    class_name_pattern: Optional[str] = None
    method_name_pattern: Optional[str] = None

    description: Optional[str] = None
    confidence: float = 0.7  # 0.0-1.0
    occurrence_count: int = 0
    first_occurrence: datetime = field(default_factory=datetime.now)
    last_occurrence: datetime = field(default_factory=datetime.now)
    active: bool = True

    def is_active(
        self,
        now: Optional[datetime] = None,
        min_confidence: float = 0.3,
        window_days: int = 30,
    ) -> bool:
        """
        Check whether the pattern takes part in matching.

        Args:
            now: Reference time (current time if None)
            min_confidence: Lowest confidence of an active pattern
            window_days: Maximum age of the last occurrence

        Returns:
            True if flagged active, confident enough, and seen recently
        """
        if not self.active or self.confidence < min_confidence:
            return False

        now = now or datetime.now()
        return now - self.last_occurrence <= timedelta(days=window_days)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "pattern_id": self.pattern_id,
            "name": self.name,
            "category": self.category,
            "error_type_pattern": self.error_type_pattern,
            "message_pattern": self.message_pattern,
            "stack_trace_pattern": self.stack_trace_pattern,
            "class_name_pattern": self.class_name_pattern,
            "method_name_pattern": self.method_name_pattern,
            "description": self.description,
            "confidence": self.confidence,
            "occurrence_count": self.occurrence_count,
            "first_occurrence": self.first_occurrence.isoformat(),
            "last_occurrence": self.last_occurrence.isoformat(),
            "active": self.active,
        }


@dataclass(frozen=True)
class PatternMatch:
    """A scored candidate pattern for a signal."""

    pattern: ErrorPattern
    score: float
    quality: MatchQuality

    @property
    def pattern_id(self) -> str:
        return self.pattern.pattern_id

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "pattern_id": self.pattern.pattern_id,
            "name": self.pattern.name,
            "score": self.score,
            "quality": self.quality.value,
        }
