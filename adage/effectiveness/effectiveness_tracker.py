"""
Recency-weighted effectiveness tracking for guidelines.

Each guideline gets one EffectivenessTracker holding its measurement log. The
current score is a weighted average in which later measurements weigh more
(weight 1 + i/N) and real-world outcomes get an extra multiplier. The
EffectivenessMonitor owns the trackers and serializes writes per guideline.
"""

from datetime import datetime
from typing import Any, List, Optional

from loguru import logger

from adage.config import EffectivenessConfig, config as global_config
from adage.effectiveness.effectiveness_schemas import (
    EffectivenessSnapshot,
    ExperienceRecord,
    Measurement,
    OutcomeRecord,
)
from adage.errors import ValidationError
from adage.storage import InMemoryRepository, Repository
from adage.validators import validate_identifier, validate_score


class EffectivenessTracker:
    """
    Recency-weighted score aggregator and trend detector for one guideline.

    Not thread-safe on its own; EffectivenessMonitor holds the guideline's
    lock around every mutation.
    """

    def __init__(
        self,
        guideline_id: str,
        baseline_score: Optional[float] = None,
        config: Optional[EffectivenessConfig] = None,
    ):
        """
        Initialize tracker.

        Args:
            guideline_id: Guideline this tracker measures
            baseline_score: Score reported before any measurement exists
            config: Weights and thresholds (global config if None)
        """
        self.guideline_id = validate_identifier(guideline_id, "guideline_id")
        self.config = config or global_config.effectiveness
        self.baseline_score = validate_score(
            self.config.default_baseline if baseline_score is None else baseline_score,
            "baseline_score",
        )
        self.measurements: List[Measurement] = []
        self.current_score = self.baseline_score
        self.last_measured_at: Optional[datetime] = None

    @property
    def total_measurements(self) -> int:
        """Number of measurements recorded."""
        return len(self.measurements)

    def add_measurement(self, score: float, experience: Any) -> Measurement:
        """
        Record a measurement derived from a project experience.

        Args:
            score: Effectiveness score in [0, 1]
            experience: Record carrying a non-empty ``experience_id``

        Returns:
            The appended Measurement

        Raises:
            ValidationError: If the score or experience id is invalid
        """
        return self._append(score, experience, is_real_world=False)

    def add_real_world_result(self, outcome: OutcomeRecord) -> Measurement:
        """
        Record a production outcome; weighted higher than project experiences.

        Raises:
            ValidationError: If the outcome score or experience id is invalid
        """
        if outcome is None:
            raise ValidationError("outcome is required", field="outcome")
        return self._append(outcome.overall_score, outcome, is_real_world=True)

    def _append(self, score: Any, source: Any, is_real_world: bool) -> Measurement:
        score = validate_score(score)
        experience_id = validate_identifier(
            getattr(source, "experience_id", None), "experience_id"
        )

        measurement = Measurement(
            score=score,
            experience_id=experience_id,
            timestamp=datetime.now(),
            project_size=getattr(source, "project_size", None),
            complexity=getattr(source, "complexity", None),
            is_real_world=is_real_world,
        )

        self.measurements.append(measurement)
        self.last_measured_at = measurement.timestamp
        self._recompute()

        logger.debug(
            f"Recorded {'real-world ' if is_real_world else ''}measurement for "
            f"{self.guideline_id}: score={score:.3f}, current={self.current_score:.3f}, "
            f"n={self.total_measurements}"
        )
        return measurement

    def recency_weight(self, index: int, count: Optional[int] = None) -> float:
        """
        Weight of the measurement at ``index`` before the real-world multiplier.

        Args:
            index: Zero-based position in the measurement log
            count: Log length (current length if None)
        """
        n = self.total_measurements if count is None else count
        if n == 0:
            return 0.0
        return 1.0 + index / n

    def _recompute(self) -> None:
        """Recompute current_score as the weighted average of all measurements."""
        n = len(self.measurements)
        weighted_sum = 0.0
        total_weight = 0.0

        for i, measurement in enumerate(self.measurements):
            weight = self.recency_weight(i, n)
            if measurement.is_real_world:
                weight *= self.config.real_world_multiplier

            weighted_sum += measurement.score * weight
            total_weight += weight

        self.current_score = weighted_sum / total_weight if total_weight > 0 else self.baseline_score

    def has_declining_trend(self) -> bool:
        """
        Check whether the most recent measurements are dropping.

        Returns:
            True if the first of the last ``trend_window`` measurements exceeds
            the last one by more than ``trend_drop_threshold``
        """
        window = self.config.trend_window
        if len(self.measurements) < window:
            return False

        recent = self.measurements[-window:]
        return (recent[0].score - recent[-1].score) > self.config.trend_drop_threshold

    def needs_improvement(self) -> bool:
        """True if the score is below threshold or a decline is detected."""
        if self.current_score < self.config.improvement_threshold:
            return True
        return self.has_declining_trend()

    def has_statistical_significance(self) -> bool:
        """True once enough measurements exist to act on the score."""
        return self.total_measurements >= self.config.min_significant_samples

    def snapshot(self) -> EffectivenessSnapshot:
        """Return a read-only view of the tracker's derived state."""
        return EffectivenessSnapshot(
            guideline_id=self.guideline_id,
            current_score=self.current_score,
            needs_improvement=self.needs_improvement(),
            total_measurements=self.total_measurements,
            has_statistical_significance=self.has_statistical_significance(),
            declining_trend=self.has_declining_trend(),
            baseline_score=self.baseline_score,
            last_measured_at=self.last_measured_at,
        )


class EffectivenessMonitor:
    """
    Registry of effectiveness trackers keyed by guideline id.

    Trackers are created lazily on the first measurement. Every write runs
    under the guideline's lock from the injected repository.
    """

    def __init__(
        self,
        repository: Optional[Repository[EffectivenessTracker]] = None,
        config: Optional[EffectivenessConfig] = None,
    ):
        """
        Initialize monitor.

        Args:
            repository: Tracker storage (in-memory if None)
            config: Effectiveness settings (global config if None)
        """
        if repository is None:
            repository = InMemoryRepository(name="effectiveness")
        self.repository = repository
        self.config = config or global_config.effectiveness
        logger.info("Initialized EffectivenessMonitor")

    def _new_tracker(
        self, guideline_id: str, baseline_score: Optional[float]
    ) -> EffectivenessTracker:
        return EffectivenessTracker(guideline_id, baseline_score=baseline_score, config=self.config)

    def initialize_baseline(
        self, guideline_id: str, baseline_score: Optional[float] = None
    ) -> EffectivenessTracker:
        """
        Ensure a tracker exists for a guideline without recording anything.

        Args:
            guideline_id: Guideline to track
            baseline_score: Baseline for a newly created tracker

        Returns:
            The existing or newly created tracker
        """
        validate_identifier(guideline_id, "guideline_id")
        return self.repository.get_or_create(
            guideline_id, lambda: self._new_tracker(guideline_id, baseline_score)
        )

    def record_measurement(
        self,
        guideline_id: str,
        score: float,
        experience: Any,
        baseline_score: Optional[float] = None,
    ) -> EffectivenessSnapshot:
        """
        Add a measurement, creating the tracker on first use.

        Raises:
            ValidationError: If any input is malformed (nothing is recorded)
        """
        validate_identifier(guideline_id, "guideline_id")
        validate_score(score)
        validate_identifier(getattr(experience, "experience_id", None), "experience_id")

        with self.repository.locked(guideline_id):
            tracker = self.repository.get(guideline_id)
            if tracker is None:
                tracker = self._new_tracker(guideline_id, baseline_score)
                self.repository.put(guideline_id, tracker)
                logger.info(f"Started tracking effectiveness for {guideline_id}")

            tracker.add_measurement(score, experience)
            return tracker.snapshot()

    def record_experience(
        self, record: ExperienceRecord, baseline_score: Optional[float] = None
    ) -> EffectivenessSnapshot:
        """
        Convert an experience record to a composite score and record it.

        Raises:
            ValidationError: If the record is malformed
        """
        if record is None:
            raise ValidationError("experience record is required", field="experience")
        record.validate()

        score = record.overall_score(
            self.config.success_rate_weight,
            self.config.time_efficiency_weight,
            self.config.code_quality_weight,
        )
        return self.record_measurement(record.guideline_id, score, record, baseline_score)

    def record_outcome(
        self, guideline_id: str, outcome: OutcomeRecord
    ) -> Optional[EffectivenessSnapshot]:
        """
        Attach a real-world outcome to an already tracked guideline.

        Returns:
            Updated snapshot, or None if the guideline is not tracked

        Raises:
            ValidationError: If the outcome is malformed
        """
        if outcome is None:
            raise ValidationError("outcome is required", field="outcome")
        validate_score(outcome.overall_score, "overall_score")
        validate_identifier(outcome.experience_id, "experience_id")

        if self.repository.get(guideline_id) is None:
            logger.debug(f"Ignoring outcome for untracked guideline {guideline_id}")
            return None

        with self.repository.locked(guideline_id):
            tracker = self.repository.get(guideline_id)
            if tracker is None:
                return None

            tracker.add_real_world_result(outcome)
            return tracker.snapshot()

    def get_tracker(self, guideline_id: str) -> Optional[EffectivenessTracker]:
        """Get the tracker for a guideline, if any."""
        return self.repository.get(guideline_id)

    def get_effectiveness(self, guideline_id: str) -> Optional[EffectivenessSnapshot]:
        """
        Current score and improvement flag for a guideline.

        Returns:
            Snapshot, or None if the guideline has no tracker
        """
        tracker = self.repository.get(guideline_id)
        if tracker is None:
            return None

        with self.repository.locked(guideline_id):
            return tracker.snapshot()

    def list_snapshots(self) -> List[EffectivenessSnapshot]:
        """Snapshots of every tracked guideline."""
        return [tracker.snapshot() for tracker in self.repository.list()]
