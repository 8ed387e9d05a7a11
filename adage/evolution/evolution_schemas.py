"""
Data structures for guideline evolution.

Guidelines are owned by the host's guideline store; this engine only reads
them and packages evolution proposals and reports.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class Priority(Enum):
    """Priority of a guideline."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @classmethod
    def from_severity(cls, severity: Optional[str]) -> "Priority":
        """
        Map a severity label onto a priority.

        Unknown or missing labels map to MEDIUM.
        """
        try:
            return cls((severity or "").strip().lower())
        except ValueError:
            return cls.MEDIUM


class EvolutionStatus(Enum):
    """Outcome of an evolution evaluation."""

    IMPROVED = "improved"  # Candidate produced
    NO_CHANGE_NEEDED = "no_change_needed"
    NOT_FOUND = "not_found"  # No tracker or no guideline


@dataclass(frozen=True)
class Guideline:
    """A published guideline. Immutable from the engine's point of view."""

    guideline_id: str
    category: str
    content: str
    title: str = ""
    priority: Priority = Priority.MEDIUM
    evolvable: bool = True
    usage_count: int = 0
    original_effectiveness: float = 0.7  # 0.0-1.0
    last_updated: datetime = field(default_factory=datetime.now)

    def age_days(self, now: Optional[datetime] = None) -> int:
        """Whole days since the guideline was last updated."""
        now = now or datetime.now()
        return (now - self.last_updated).days

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "guideline_id": self.guideline_id,
            "category": self.category,
            "title": self.title,
            "content": self.content,
            "priority": self.priority.value,
            "evolvable": self.evolvable,
            "usage_count": self.usage_count,
            "original_effectiveness": self.original_effectiveness,
            "last_updated": self.last_updated.isoformat(),
        }


@dataclass
class EvolvedGuideline:
    """Candidate replacement for a guideline, produced by an EvolutionStrategy."""

    original_id: str
    version: str  # "v1.0", "v2.0", ...
    content: str
    title: str = ""
    category: Optional[str] = None
    improved_aspects: List[str] = field(default_factory=list)
    based_on_experience: Optional[str] = None
    effectiveness_score: Optional[float] = None  # Set once measured
    created_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "original_id": self.original_id,
            "version": self.version,
            "title": self.title,
            "category": self.category,
            "content": self.content,
            "improved_aspects": self.improved_aspects,
            "based_on_experience": self.based_on_experience,
            "effectiveness_score": self.effectiveness_score,
            "created_at": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class EvolutionResult:
    """Tagged result of EvolutionEngine.evaluate."""

    status: EvolutionStatus
    guideline_id: str
    current_effectiveness: float
    original: Optional[Guideline] = None
    evolved: Optional[EvolvedGuideline] = None
    improvement_rate: float = 0.0
    reason: str = ""
    timestamp: datetime = field(default_factory=datetime.now)

    @classmethod
    def improved(
        cls,
        guideline_id: str,
        current_effectiveness: float,
        original: Guideline,
        evolved: EvolvedGuideline,
    ) -> "EvolutionResult":
        """Result carrying a new candidate and its improvement over the baseline."""
        if evolved.effectiveness_score is None:
            improvement = 0.0
        else:
            improvement = evolved.effectiveness_score - original.original_effectiveness

        return cls(
            status=EvolutionStatus.IMPROVED,
            guideline_id=guideline_id,
            current_effectiveness=current_effectiveness,
            original=original,
            evolved=evolved,
            improvement_rate=improvement,
            reason="guideline needs improvement",
        )

    @classmethod
    def no_change_needed(
        cls,
        guideline_id: str,
        current_effectiveness: float,
        reason: str = "guideline remains effective",
        original: Optional[Guideline] = None,
    ) -> "EvolutionResult":
        return cls(
            status=EvolutionStatus.NO_CHANGE_NEEDED,
            guideline_id=guideline_id,
            current_effectiveness=current_effectiveness,
            original=original,
            reason=reason,
        )

    @classmethod
    def not_found(cls, guideline_id: str, reason: str) -> "EvolutionResult":
        return cls(
            status=EvolutionStatus.NOT_FOUND,
            guideline_id=guideline_id,
            current_effectiveness=0.0,
            reason=reason,
        )

    @property
    def is_improved(self) -> bool:
        return self.status == EvolutionStatus.IMPROVED

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "status": self.status.value,
            "guideline_id": self.guideline_id,
            "current_effectiveness": self.current_effectiveness,
            "original_id": self.original.guideline_id if self.original else None,
            "evolved_version": self.evolved.version if self.evolved else None,
            "improvement_rate": self.improvement_rate,
            "reason": self.reason,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class EvolutionSuccess:
    """A finished A/B test whose candidate clearly beat the original."""

    guideline_id: str
    improvement_rate: float
    improved_aspects: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "guideline_id": self.guideline_id,
            "improvement_rate": self.improvement_rate,
            "improved_aspects": list(self.improved_aspects),
        }


@dataclass(frozen=True)
class EvolutionReport:
    """Aggregate view of evolution activity."""

    total_original_guidelines: int
    evolved_guidelines_count: int
    deprecated_guidelines_count: int
    average_improvement_rate: float
    top_successful_evolutions: List[EvolutionSuccess] = field(default_factory=list)
    generated_at: datetime = field(default_factory=datetime.now)

    def summary(self) -> str:
        """Generate human-readable summary of the report."""
        lines = [
            "Guideline Evolution Report:",
            f"  Original guidelines: {self.total_original_guidelines}",
            f"  Evolved guidelines: {self.evolved_guidelines_count}",
            f"  Deprecated guidelines: {self.deprecated_guidelines_count}",
            f"  Average improvement: {self.average_improvement_rate:.1%}",
        ]
        if self.top_successful_evolutions:
            lines.append("")
            lines.append("Top evolutions:")
            for i, success in enumerate(self.top_successful_evolutions, 1):
                lines.append(f"  {i}. {success.guideline_id}: {success.improvement_rate:+.1%}")
        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "total_original_guidelines": self.total_original_guidelines,
            "evolved_guidelines_count": self.evolved_guidelines_count,
            "deprecated_guidelines_count": self.deprecated_guidelines_count,
            "average_improvement_rate": self.average_improvement_rate,
            "top_successful_evolutions": [s.to_dict() for s in self.top_successful_evolutions],
            "generated_at": self.generated_at.isoformat(),
        }


@dataclass(frozen=True)
class Recommendation:
    """Best guideline for a domain, with alternatives."""

    original_guideline_id: str
    confidence_score: float
    reasoning: str
    evolved_guideline: Optional[EvolvedGuideline] = None
    alternatives: List[EvolvedGuideline] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "original_guideline_id": self.original_guideline_id,
            "confidence_score": self.confidence_score,
            "reasoning": self.reasoning,
            "evolved_version": self.evolved_guideline.version if self.evolved_guideline else None,
            "alternatives": [g.version for g in self.alternatives],
        }
