"""
A/B testing of evolved guidelines against their originals.

Each test has two arms. Measurements are classified into outcome categories,
per-arm success rates are recomputed on every measurement, and a pooled
two-proportion z-test decides significance. A test completes only when the
caller finalizes it.
"""

import uuid
from datetime import datetime
from typing import Any, List, Optional, Union

from loguru import logger

from adage.config import ABTestConfig, SuccessCriterion, config as global_config
from adage.core.ab_statistics import (
    cohens_h,
    difference_confidence_interval,
    relative_improvement,
    two_proportion_z_test,
)
from adage.core.ab_testing_schemas import ABTest, ABTestAnalysis, ArmMeasurement, TestArm
from adage.effectiveness import OutcomeCategory
from adage.errors import ValidationError
from adage.evolution import EvolvedGuideline, Guideline
from adage.logging import get_adage_logger, log_ab_test_event
from adage.storage import InMemoryRepository, Repository
from adage.validators import validate_identifier, validate_sample_size, validate_score


class ABTestCoordinator:
    """
    Runs two-arm comparisons between an original guideline and a candidate.

    Workflow:
    1. start() a test when a candidate is proposed
    2. record_measurement() for either arm as experiences arrive
    3. finalize() once enough data was collected
    4. get_winner() / analyze() for the decision
    """

    def __init__(
        self,
        repository: Optional[Repository[ABTest]] = None,
        config: Optional[ABTestConfig] = None,
    ):
        """
        Initialize A/B test coordinator.

        Args:
            repository: Test storage (in-memory if None)
            config: A/B test settings (global config if None)
        """
        if repository is None:
            repository = InMemoryRepository(name="ab_tests")
        self.repository = repository
        self.config = config or global_config.ab_testing
        self.log = get_adage_logger("ab_testing")

        logger.info(
            f"Initialized ABTestCoordinator (criterion: {self.config.success_criterion.value}, "
            f"confidence threshold: {self.config.confidence_threshold:.2f})"
        )

    def start(
        self,
        guideline_id: str,
        original: Guideline,
        evolved: EvolvedGuideline,
        required_sample_size: int,
        test_id: Optional[str] = None,
    ) -> ABTest:
        """
        Create a new test with no measurements.

        Args:
            guideline_id: Guideline under test
            original: Original guideline (arm ORIGINAL)
            evolved: Candidate guideline (arm EVOLVED)
            required_sample_size: Measurements needed across both arms
            test_id: Explicit id (generated if None)

        Returns:
            The created ABTest

        Raises:
            ValidationError: If the id or sample size is invalid
        """
        validate_identifier(guideline_id, "guideline_id")
        validate_sample_size(required_sample_size)
        if original is None or evolved is None:
            raise ValidationError("both original and evolved guidelines are required")

        test_id = test_id or f"abtest_{guideline_id}_{uuid.uuid4().hex[:8]}"
        test = ABTest(
            test_id=test_id,
            guideline_id=guideline_id,
            original=original,
            evolved=evolved,
            required_sample_size=required_sample_size,
        )

        with self.repository.locked(test_id):
            self.repository.put(test_id, test)

        log_ab_test_event(
            self.log,
            test_id,
            "started",
            guideline_id=guideline_id,
            evolved_version=evolved.version,
            required_sample_size=required_sample_size,
        )
        return test

    def get_test(self, test_id: str) -> Optional[ABTest]:
        """Get a test by id."""
        return self.repository.get(test_id)

    def list_tests(self, guideline_id: Optional[str] = None) -> List[ABTest]:
        """All tests, optionally restricted to one guideline, oldest first."""
        tests = self.repository.list()
        if guideline_id is not None:
            tests = [t for t in tests if t.guideline_id == guideline_id]
        return sorted(tests, key=lambda t: t.start_time)

    def record_measurement(
        self, test_id: str, arm: Union[TestArm, str], measurement: Any
    ) -> Optional[ABTest]:
        """
        Add a measurement to one arm and refresh the test statistics.

        Args:
            test_id: Test to update
            arm: TestArm or its string value
            measurement: Score in [0, 1], or a record with ``overall_score``
                or ``score`` (an OutcomeRecord's ``result`` is honored)

        Returns:
            The updated test, or None if the id is unknown

        Raises:
            ValidationError: If the arm or score is invalid, or the test is finalized
        """
        resolved_arm = self._resolve_arm(arm)
        observation = self._observe(measurement)

        if self.repository.get(test_id) is None:
            return None

        with self.repository.locked(test_id):
            test = self.repository.get(test_id)
            if test is None:
                return None
            if test.is_finalized:
                raise ValidationError(
                    f"A/B test {test_id} is finalized and accepts no measurements",
                    field="test_id",
                )

            test.measurements_for(resolved_arm).append(observation)
            self._recompute(test)

        logger.debug(
            f"A/B test {test_id}: {resolved_arm.value} += {observation.score:.3f} "
            f"({test.current_sample_size}/{test.required_sample_size})"
        )
        return test

    def finalize(self, test_id: str) -> Optional[ABTest]:
        """
        Close a test. Calling it again has no effect.

        Returns:
            The test, or None if the id is unknown
        """
        if self.repository.get(test_id) is None:
            return None

        with self.repository.locked(test_id):
            test = self.repository.get(test_id)
            if test is None:
                return None
            if test.is_finalized:
                return test

            test.end_time = datetime.now()

        if test.current_sample_size < test.required_sample_size:
            logger.warning(
                f"A/B test {test_id} finalized below its sample size "
                f"({test.current_sample_size}/{test.required_sample_size})"
            )

        log_ab_test_event(
            self.log,
            test_id,
            "finalized",
            complete=test.is_complete(),
            confidence_level=test.confidence_level,
            significant=test.statistically_significant,
        )
        return test

    def get_winner(self, test_id: str) -> Optional[EvolvedGuideline]:
        """
        The evolved guideline, if it won.

        Returns:
            The candidate only when the test is complete, significant and the
            candidate's success rate is strictly higher; otherwise None
        """
        test = self.repository.get(test_id)
        if test is None:
            return None
        return self._winner(test)

    def _winner(self, test: ABTest) -> Optional[EvolvedGuideline]:
        if not test.is_complete() or not test.is_statistically_significant():
            return None
        if test.evolved_success_rate > test.original_success_rate:
            return test.evolved
        return None

    def get_improvement_rate(self, test: Union[ABTest, str, None]) -> float:
        """
        Relative success-rate change of the candidate over the original.

        Accepts a test or a test id; unknown tests report 0.0.
        """
        if isinstance(test, str):
            test = self.repository.get(test)
        if test is None:
            return 0.0
        return relative_improvement(test.original_success_rate, test.evolved_success_rate)

    def analyze(self, test_id: str) -> Optional[ABTestAnalysis]:
        """
        Statistical read-out of a test.

        Returns:
            ABTestAnalysis, or None if the id is unknown
        """
        if self.repository.get(test_id) is None:
            return None

        with self.repository.locked(test_id):
            test = self.repository.get(test_id)
            if test is None:
                return None

            original_n = len(test.original_measurements)
            evolved_n = len(test.evolved_measurements)
            original_successes = self._successes(test.original_measurements)
            evolved_successes = self._successes(test.evolved_measurements)

            if original_n and evolved_n:
                effect_size = cohens_h(test.original_success_rate, test.evolved_success_rate)
            else:
                effect_size = 0.0

            interval = difference_confidence_interval(
                original_successes, original_n, evolved_successes, evolved_n
            )
            winner = self._winner(test)
            improvement = self.get_improvement_rate(test)

            return ABTestAnalysis(
                test_id=test.test_id,
                original_success_rate=test.original_success_rate,
                evolved_success_rate=test.evolved_success_rate,
                original_samples=original_n,
                evolved_samples=evolved_n,
                z_score=test.z_score,
                p_value=test.p_value,
                confidence_level=test.confidence_level,
                is_significant=test.statistically_significant,
                is_complete=test.is_complete(),
                effect_size=effect_size,
                confidence_interval=interval,
                improvement_rate=improvement,
                winner=winner,
                recommendation=self._recommendation(test, winner, improvement),
            )

    def _recommendation(
        self, test: ABTest, winner: Optional[EvolvedGuideline], improvement: float
    ) -> str:
        if test.current_sample_size < test.required_sample_size:
            remaining = test.required_sample_size - test.current_sample_size
            return f"Keep collecting data: {remaining} more measurements needed."

        if not test.statistically_significant:
            return (
                "No significant difference detected. Consider extending the test "
                "or trying a more different candidate."
            )

        if not test.is_finalized:
            return "Significant result reached. Finalize the test to act on it."

        if winner is not None:
            return (
                f"Adopt {winner.version}: success rate improved by {improvement:.1%} "
                f"({test.original_success_rate:.1%} -> {test.evolved_success_rate:.1%})."
            )

        return "Keep the original guideline: the candidate did not perform better."

    def _resolve_arm(self, arm: Union[TestArm, str]) -> TestArm:
        if isinstance(arm, TestArm):
            return arm
        if isinstance(arm, str):
            try:
                return TestArm(arm.strip().lower())
            except ValueError:
                pass
        raise ValidationError(
            f"arm must be one of {[a.value for a in TestArm]}, got {arm!r}", field="arm"
        )

    def _observe(self, measurement: Any) -> ArmMeasurement:
        if isinstance(measurement, (int, float)) and not isinstance(measurement, bool):
            score = validate_score(measurement)
            return ArmMeasurement(score=score, outcome=self._classify(score))

        raw_score = getattr(measurement, "overall_score", None)
        if raw_score is None:
            raw_score = getattr(measurement, "score", None)
        score = validate_score(raw_score)

        outcome = getattr(measurement, "result", None)
        if outcome is None:
            outcome = self._classify(score)
        elif not isinstance(outcome, OutcomeCategory):
            raise ValidationError(f"unknown outcome category {outcome!r}", field="result")

        return ArmMeasurement(
            score=score,
            outcome=outcome,
            experience_id=getattr(measurement, "experience_id", None),
        )

    def _classify(self, score: float) -> OutcomeCategory:
        return OutcomeCategory.classify(
            score, self.config.success_threshold, self.config.partial_success_threshold
        )

    def _is_success(self, outcome: OutcomeCategory) -> bool:
        if outcome == OutcomeCategory.SUCCESS:
            return True
        if outcome == OutcomeCategory.PARTIAL_SUCCESS:
            return self.config.success_criterion == SuccessCriterion.LENIENT
        if outcome == OutcomeCategory.FAILURE:
            return False
        raise ValidationError(f"unknown outcome category {outcome!r}", field="outcome")

    def _successes(self, measurements: List[ArmMeasurement]) -> int:
        return sum(1 for m in measurements if self._is_success(m.outcome))

    def _recompute(self, test: ABTest) -> None:
        """Refresh success rates and significance after a measurement."""
        original_n = len(test.original_measurements)
        evolved_n = len(test.evolved_measurements)
        original_successes = self._successes(test.original_measurements)
        evolved_successes = self._successes(test.evolved_measurements)

        test.original_success_rate = original_successes / original_n if original_n else 0.0
        test.evolved_success_rate = evolved_successes / evolved_n if evolved_n else 0.0

        test.z_score, test.p_value = two_proportion_z_test(
            original_successes, original_n, evolved_successes, evolved_n
        )
        test.confidence_level = 1.0 - test.p_value
        test.statistically_significant = test.confidence_level >= self.config.confidence_threshold


def create_ab_coordinator(
    repository: Optional[Repository[ABTest]] = None,
    confidence_threshold: Optional[float] = None,
    success_threshold: Optional[float] = None,
    success_criterion: Optional[SuccessCriterion] = None,
) -> ABTestCoordinator:
    """
    Factory function to create an ABTestCoordinator.

    Unspecified settings come from the global configuration.

    Args:
        repository: Test storage (in-memory if None)
        confidence_threshold: Confidence required for significance
        success_threshold: Score counted as a success
        success_criterion: STRICT or LENIENT success counting

    Returns:
        Configured ABTestCoordinator
    """
    overrides = {}
    if confidence_threshold is not None:
        overrides["confidence_threshold"] = confidence_threshold
    if success_threshold is not None:
        overrides["success_threshold"] = success_threshold
    if success_criterion is not None:
        overrides["success_criterion"] = success_criterion

    ab_config = global_config.ab_testing.model_copy(update=overrides)
    return ABTestCoordinator(repository=repository, config=ab_config)
