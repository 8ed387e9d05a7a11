"""
Schemas for guideline A/B testing.

Defines the two-arm test comparing an original guideline with an evolved
candidate, the observations recorded per arm, and the analysis returned to
callers.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from adage.effectiveness import OutcomeCategory
from adage.evolution import EvolvedGuideline, Guideline


class TestArm(str, Enum):
    """The two arms of a guideline A/B test."""

    __test__ = False  # keep pytest from collecting this enum

    ORIGINAL = "original"
    EVOLVED = "evolved"


@dataclass(frozen=True)
class ArmMeasurement:
    """One observation recorded in an arm."""

    score: float
    outcome: OutcomeCategory
    experience_id: Optional[str] = None
    recorded_at: datetime = field(default_factory=datetime.now)


@dataclass
class ABTest:
    """
    A running or finished comparison of a guideline and its candidate.

    Mutated only by ABTestCoordinator, under the test's lock.
    """

    test_id: str
    guideline_id: str
    original: Guideline
    evolved: EvolvedGuideline
    required_sample_size: int
    start_time: datetime = field(default_factory=datetime.now)
    end_time: Optional[datetime] = None

    original_measurements: List[ArmMeasurement] = field(default_factory=list)
    evolved_measurements: List[ArmMeasurement] = field(default_factory=list)

    # Derived on every measurement
    original_success_rate: float = 0.0
    evolved_success_rate: float = 0.0
    z_score: float = 0.0
    p_value: float = 1.0
    confidence_level: float = 0.0
    statistically_significant: bool = False

    @property
    def current_sample_size(self) -> int:
        """Measurements recorded across both arms."""
        return len(self.original_measurements) + len(self.evolved_measurements)

    @property
    def is_finalized(self) -> bool:
        return self.end_time is not None

    def measurements_for(self, arm: TestArm) -> List[ArmMeasurement]:
        if arm == TestArm.ORIGINAL:
            return self.original_measurements
        return self.evolved_measurements

    def is_complete(self) -> bool:
        """True once the sample size is reached and the test was finalized."""
        return self.current_sample_size >= self.required_sample_size and self.is_finalized

    def is_statistically_significant(self) -> bool:
        return self.statistically_significant

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "test_id": self.test_id,
            "guideline_id": self.guideline_id,
            "evolved_version": self.evolved.version,
            "required_sample_size": self.required_sample_size,
            "current_sample_size": self.current_sample_size,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "original_samples": len(self.original_measurements),
            "evolved_samples": len(self.evolved_measurements),
            "original_success_rate": self.original_success_rate,
            "evolved_success_rate": self.evolved_success_rate,
            "z_score": self.z_score,
            "p_value": self.p_value,
            "confidence_level": self.confidence_level,
            "statistically_significant": self.statistically_significant,
            "complete": self.is_complete(),
        }


@dataclass(frozen=True)
class ABTestAnalysis:
    """Statistical read-out of an A/B test."""

    test_id: str
    original_success_rate: float
    evolved_success_rate: float
    original_samples: int
    evolved_samples: int
    z_score: float
    p_value: float
    confidence_level: float
    is_significant: bool
    is_complete: bool
    effect_size: float  # Cohen's h
    confidence_interval: Tuple[float, float]  # evolved - original
    improvement_rate: float
    winner: Optional[EvolvedGuideline]
    recommendation: str

    def summary(self) -> str:
        """Generate human-readable summary of the analysis."""
        lines = [
            f"A/B Test {self.test_id}:",
            f"  Original: {self.original_success_rate:.1%} (n={self.original_samples})",
            f"  Evolved:  {self.evolved_success_rate:.1%} (n={self.evolved_samples})",
            f"  Improvement: {self.improvement_rate:+.1%}",
            f"  Confidence: {self.confidence_level:.1%} (p={self.p_value:.4f})",
            f"  Effect size (h): {self.effect_size:.3f}",
            f"  95% CI of difference: [{self.confidence_interval[0]:+.3f}, "
            f"{self.confidence_interval[1]:+.3f}]",
            f"  Winner: {self.winner.version if self.winner else 'none'}",
            f"  Recommendation: {self.recommendation}",
        ]
        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "test_id": self.test_id,
            "original_success_rate": self.original_success_rate,
            "evolved_success_rate": self.evolved_success_rate,
            "original_samples": self.original_samples,
            "evolved_samples": self.evolved_samples,
            "z_score": self.z_score,
            "p_value": self.p_value,
            "confidence_level": self.confidence_level,
            "is_significant": self.is_significant,
            "is_complete": self.is_complete,
            "effect_size": self.effect_size,
            "confidence_interval": list(self.confidence_interval),
            "improvement_rate": self.improvement_rate,
            "winner": self.winner.version if self.winner else None,
            "recommendation": self.recommendation,
        }
