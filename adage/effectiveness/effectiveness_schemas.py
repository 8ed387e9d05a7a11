"""
Schemas for guideline effectiveness tracking.

Defines the experience and outcome records consumed from host collaborators,
the measurements derived from them, and the read-only effectiveness snapshot
returned to callers.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from adage.validators import validate_identifier, validate_score


class OutcomeCategory(str, Enum):
    """Closed set of project outcome categories."""

    SUCCESS = "success"
    PARTIAL_SUCCESS = "partial_success"
    FAILURE = "failure"

    @classmethod
    def classify(
        cls, score: float, success_threshold: float = 0.5, partial_threshold: float = 0.3
    ) -> "OutcomeCategory":
        """
        Classify a score into an outcome category.

        Args:
            score: Outcome score in [0, 1]
            success_threshold: Lowest score counted as SUCCESS
            partial_threshold: Lowest score counted as PARTIAL_SUCCESS

        Returns:
            The matching OutcomeCategory
        """
        if score >= success_threshold:
            return cls.SUCCESS
        if score >= partial_threshold:
            return cls.PARTIAL_SUCCESS
        return cls.FAILURE


@dataclass(frozen=True)
class ExperienceRecord:
    """One completed project's measured use of a guideline."""

    experience_id: str
    guideline_id: str
    success_rate: float  # 0.0-1.0
    time_efficiency: float  # 0.0-1.0
    code_quality_score: float  # 0.0-1.0
    project_size: Optional[str] = None  # "small", "medium", "large"
    complexity: Optional[str] = None
    failure_points: List[str] = field(default_factory=list)
    recorded_at: datetime = field(default_factory=datetime.now)

    def overall_score(
        self,
        success_weight: float = 0.4,
        time_weight: float = 0.3,
        quality_weight: float = 0.3,
    ) -> float:
        """
        Composite score fed into the effectiveness tracker.

        Returns:
            Weighted average of success rate, time efficiency and code quality
        """
        total_weight = success_weight + time_weight + quality_weight
        if total_weight == 0:
            return 0.0

        weighted = (
            self.success_rate * success_weight
            + self.time_efficiency * time_weight
            + self.code_quality_score * quality_weight
        )
        return weighted / total_weight

    def validate(self) -> None:
        """Raise ValidationError if any field is malformed."""
        validate_identifier(self.experience_id, "experience_id")
        validate_identifier(self.guideline_id, "guideline_id")
        validate_score(self.success_rate, "success_rate")
        validate_score(self.time_efficiency, "time_efficiency")
        validate_score(self.code_quality_score, "code_quality_score")


@dataclass(frozen=True)
class OutcomeRecord:
    """Long-term production outcome of a project that applied a guideline."""

    experience_id: str
    overall_score: float  # 0.0-1.0
    months_in_production: int = 0
    production_stability: Optional[float] = None
    result: Optional[OutcomeCategory] = None
    project_size: Optional[str] = None
    complexity: Optional[str] = None

    def category(
        self, success_threshold: float = 0.5, partial_threshold: float = 0.3
    ) -> OutcomeCategory:
        """Reported category, or one derived from the overall score."""
        if self.result is not None:
            return self.result
        return OutcomeCategory.classify(self.overall_score, success_threshold, partial_threshold)


@dataclass(frozen=True)
class Measurement:
    """A single effectiveness observation for a guideline."""

    score: float
    experience_id: str
    timestamp: datetime = field(default_factory=datetime.now)
    project_size: Optional[str] = None
    complexity: Optional[str] = None
    is_real_world: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "score": self.score,
            "experience_id": self.experience_id,
            "timestamp": self.timestamp.isoformat(),
            "project_size": self.project_size,
            "complexity": self.complexity,
            "is_real_world": self.is_real_world,
        }


@dataclass(frozen=True)
class EffectivenessSnapshot:
    """Read-only view of a tracker's derived state."""

    guideline_id: str
    current_score: float
    needs_improvement: bool
    total_measurements: int
    has_statistical_significance: bool
    declining_trend: bool
    baseline_score: float
    last_measured_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "guideline_id": self.guideline_id,
            "current_score": self.current_score,
            "needs_improvement": self.needs_improvement,
            "total_measurements": self.total_measurements,
            "has_statistical_significance": self.has_statistical_significance,
            "declining_trend": self.declining_trend,
            "baseline_score": self.baseline_score,
            "last_measured_at": (
                self.last_measured_at.isoformat() if self.last_measured_at else None
            ),
        }
