"""
Guideline evolution system.

Wires the effectiveness monitor, evolution engine, A/B test coordinator and
pattern matcher over injected repositories, and exposes the operations a host
application calls.

Example usage:
    >>> from adage.core import GuidelineEvolutionSystem
    >>> from adage.evolution import Guideline
    >>>
    >>> system = GuidelineEvolutionSystem(strategy=my_strategy)
    >>> system.register_guideline(
    ...     Guideline(guideline_id="REPO_001", category="repository", content="...")
    ... )
    >>> result = system.analyze_and_evolve("REPO_001", experience)
    >>> if result.is_improved:
    ...     test = system.latest_ab_test("REPO_001")
"""

import threading
from datetime import datetime
from typing import Any, Dict, List, Optional, Set, Union

from loguru import logger

from adage.config import Config, config as global_config
from adage.core.ab_testing import ABTestCoordinator
from adage.core.ab_testing_schemas import ABTest, TestArm
from adage.effectiveness import (
    EffectivenessMonitor,
    EffectivenessSnapshot,
    EffectivenessTracker,
    ExperienceRecord,
    OutcomeRecord,
)
from adage.errors import ValidationError
from adage.evolution import (
    EvolutionEngine,
    EvolutionReport,
    EvolutionResult,
    EvolutionStrategy,
    EvolutionSuccess,
    EvolvedGuideline,
    Guideline,
    Recommendation,
)
from adage.patterns import (
    ErrorPattern,
    PatternLibrary,
    PatternMatch,
    PatternMatcher,
    Signal,
    SignalExtractor,
)
from adage.storage import InMemoryRepository, Repository
from adage.validators import validate_identifier, validate_score

# Report limits
TOP_SUCCESS_LIMIT = 10
TOP_SUCCESS_MIN_IMPROVEMENT = 0.1
DEFAULT_RECOMMENDATION_CONFIDENCE = 0.5
MAX_ALTERNATIVES = 2


class GuidelineEvolutionSystem:
    """
    Entry point tying together effectiveness tracking, evolution, A/B tests
    and error pattern matching.
    """

    def __init__(
        self,
        strategy: Optional[EvolutionStrategy],
        guidelines: Optional[Repository[Guideline]] = None,
        trackers: Optional[Repository[EffectivenessTracker]] = None,
        patterns: Optional[Repository[ErrorPattern]] = None,
        ab_tests: Optional[Repository[ABTest]] = None,
        config: Optional[Config] = None,
    ):
        """
        Initialize the evolution system.

        Args:
            strategy: Content-transformation strategy for new candidates
            guidelines: Guideline store (in-memory if None)
            trackers: Effectiveness tracker storage (in-memory if None)
            patterns: Error pattern storage (in-memory if None)
            ab_tests: A/B test storage (in-memory if None)
            config: Engine configuration (global config if None)

        Raises:
            ConfigurationError: If no strategy is supplied
        """
        self.config = config or global_config
        if guidelines is None:
            guidelines = InMemoryRepository(name="guidelines")
        self.guidelines = guidelines

        self.monitor = EffectivenessMonitor(trackers, config=self.config.effectiveness)
        self.engine = EvolutionEngine(
            self.monitor, self.guidelines, strategy, config=self.config.evolution
        )
        self.ab_coordinator = ABTestCoordinator(ab_tests, config=self.config.ab_testing)
        self.pattern_library = PatternLibrary(patterns, config=self.config.patterns)
        self.pattern_matcher = PatternMatcher(self.pattern_library, config=self.config.patterns)
        self.signal_extractor = SignalExtractor(config=self.config.patterns)

        self._promoted: Dict[str, EvolvedGuideline] = {}
        self._deprecated: Dict[str, str] = {}  # guideline_id -> reason
        self._status_lock = threading.Lock()

        logger.info("Initialized GuidelineEvolutionSystem")

    # Guidelines and effectiveness

    def register_guideline(self, guideline: Guideline) -> Guideline:
        """
        Add or replace a guideline in the store.

        Raises:
            ValidationError: If the id or baseline effectiveness is invalid
        """
        if guideline is None:
            raise ValidationError("guideline is required", field="guideline")
        validate_identifier(guideline.guideline_id, "guideline_id")
        validate_score(guideline.original_effectiveness, "original_effectiveness")

        with self.guidelines.locked(guideline.guideline_id):
            self.guidelines.put(guideline.guideline_id, guideline)

        logger.debug(f"Registered guideline {guideline.guideline_id}")
        return guideline

    def get_guideline(self, guideline_id: str) -> Optional[Guideline]:
        return self.guidelines.get(guideline_id)

    def _baseline_for(self, guideline_id: str) -> Optional[float]:
        guideline = self.guidelines.get(guideline_id)
        return guideline.original_effectiveness if guideline else None

    def record_experience(self, experience: ExperienceRecord) -> EffectivenessSnapshot:
        """
        Record a project experience against its guideline.

        The tracker is created on first use with the guideline's baseline
        effectiveness (or the configured default for unknown guidelines).
        """
        if experience is None:
            raise ValidationError("experience record is required", field="experience")
        return self.monitor.record_experience(
            experience, baseline_score=self._baseline_for(experience.guideline_id)
        )

    def get_effectiveness(self, guideline_id: str) -> Optional[EffectivenessSnapshot]:
        """Current score and improvement flag, or None if the guideline is untracked."""
        return self.monitor.get_effectiveness(guideline_id)

    def process_real_world_experience(
        self, guideline_id: str, outcome: OutcomeRecord
    ) -> Optional[EffectivenessSnapshot]:
        """
        Attach a production outcome to a tracked guideline.

        Logs a warning when a guideline with a significant sample has dropped
        below the improvement threshold.

        Returns:
            Updated snapshot, or None if the guideline is untracked
        """
        snapshot = self.monitor.record_outcome(guideline_id, outcome)
        if snapshot is None:
            return None

        threshold = self.config.effectiveness.improvement_threshold
        if snapshot.has_statistical_significance and snapshot.current_score < threshold:
            logger.warning(
                f"Effectiveness of {guideline_id} dropped to {snapshot.current_score:.2f} "
                f"(threshold {threshold:.2f})"
            )
        return snapshot

    # Evolution

    def evaluate_evolution(
        self, guideline_id: str, experience: Optional[Any] = None
    ) -> EvolutionResult:
        """Decide whether a guideline needs a candidate, without recording anything."""
        return self.engine.evaluate(guideline_id, experience)

    def analyze_and_evolve(
        self, guideline_id: str, experience: ExperienceRecord
    ) -> EvolutionResult:
        """
        Record an experience, evaluate the guideline, and start an A/B test
        for any candidate produced.

        Returns:
            The evolution result; NOT_FOUND without recording if the
            guideline is not in the store

        Raises:
            ValidationError: If the experience belongs to another guideline
        """
        if self.guidelines.get(guideline_id) is None:
            logger.warning(f"Unknown guideline id: {guideline_id}")
            return EvolutionResult.not_found(guideline_id, "guideline absent from store")

        if experience is not None and experience.guideline_id != guideline_id:
            raise ValidationError(
                f"experience {experience.experience_id} belongs to {experience.guideline_id}, "
                f"not {guideline_id}",
                field="guideline_id",
            )

        self.record_experience(experience)
        result = self.engine.evaluate(guideline_id, experience)

        if result.is_improved:
            self.ab_coordinator.start(
                guideline_id,
                result.original,
                result.evolved,
                self.config.evolution.default_required_sample_size,
            )
        return result

    def guidelines_due_for_review(self, now: Optional[datetime] = None) -> List[Guideline]:
        """Outdated evolvable guidelines, oldest first."""
        return self.engine.review_queue(now=now)

    # A/B tests

    def start_ab_test(
        self,
        guideline_id: str,
        original: Guideline,
        evolved: EvolvedGuideline,
        required_sample_size: Optional[int] = None,
    ) -> ABTest:
        if required_sample_size is None:
            required_sample_size = self.config.evolution.default_required_sample_size
        return self.ab_coordinator.start(guideline_id, original, evolved, required_sample_size)

    def record_ab_measurement(
        self, test_id: str, arm: Union[TestArm, str], measurement: Any
    ) -> Optional[ABTest]:
        return self.ab_coordinator.record_measurement(test_id, arm, measurement)

    def finalize_ab_test(self, test_id: str) -> Optional[ABTest]:
        return self.ab_coordinator.finalize(test_id)

    def get_winner(self, test_id: str) -> Optional[EvolvedGuideline]:
        return self.ab_coordinator.get_winner(test_id)

    def latest_ab_test(self, guideline_id: str) -> Optional[ABTest]:
        """Most recently started test of a guideline."""
        tests = self.ab_coordinator.list_tests(guideline_id)
        return tests[-1] if tests else None

    def evaluate_ab_test_results(self, guideline_id: str) -> Optional[EvolvedGuideline]:
        """
        Promote the latest test's winner when it improves enough.

        The winner is promoted and the original deprecated only if the test
        is complete and significant, and the relative improvement exceeds
        the promotion threshold.

        Returns:
            The promoted candidate, or None
        """
        test = self.latest_ab_test(guideline_id)
        if test is None or not test.is_complete():
            return None

        winner = self.ab_coordinator.get_winner(test.test_id)
        improvement = self.ab_coordinator.get_improvement_rate(test)
        threshold = self.config.evolution.promotion_improvement_threshold

        if winner is None or improvement <= threshold:
            logger.info(
                f"Keeping {guideline_id}: improvement {improvement:.1%} "
                f"(threshold {threshold:.1%})"
            )
            return None

        reason = f"replaced by {winner.version}, improvement {improvement:.1%}"
        with self._status_lock:
            # The candidate's effectiveness is now its measured success rate
            winner.effectiveness_score = test.evolved_success_rate
            self._promoted[guideline_id] = winner
            self._deprecated[guideline_id] = reason

        logger.info(f"Promoted {guideline_id} -> {winner.version} ({improvement:.1%})")
        return winner

    def get_promoted(self, guideline_id: str) -> Optional[EvolvedGuideline]:
        with self._status_lock:
            return self._promoted.get(guideline_id)

    def is_deprecated(self, guideline_id: str) -> bool:
        with self._status_lock:
            return guideline_id in self._deprecated

    # Reporting

    def generate_evolution_report(self) -> EvolutionReport:
        """Totals, average improvement of decided tests, and the top evolutions."""
        tests = self.ab_coordinator.list_tests()

        decided = [t for t in tests if t.is_complete() and t.is_statistically_significant()]
        if decided:
            average = sum(self.ab_coordinator.get_improvement_rate(t) for t in decided) / len(
                decided
            )
        else:
            average = 0.0

        successes = [
            EvolutionSuccess(
                guideline_id=t.guideline_id,
                improvement_rate=self.ab_coordinator.get_improvement_rate(t),
                improved_aspects=list(t.evolved.improved_aspects),
            )
            for t in tests
            if t.is_complete()
            and self.ab_coordinator.get_improvement_rate(t) > TOP_SUCCESS_MIN_IMPROVEMENT
        ]
        successes.sort(key=lambda s: s.improvement_rate, reverse=True)

        with self._status_lock:
            deprecated_count = len(self._deprecated)

        evolved_count = sum(1 for history in self.engine.candidates.list() if history)

        return EvolutionReport(
            total_original_guidelines=len(self.guidelines),
            evolved_guidelines_count=evolved_count,
            deprecated_guidelines_count=deprecated_count,
            average_improvement_rate=average,
            top_successful_evolutions=successes[:TOP_SUCCESS_LIMIT],
        )

    def recommend_guideline(self, domain: str) -> Recommendation:
        """
        Best guideline for a domain.

        Prefers evolved and promoted candidates ranked by effectiveness; falls
        back to the most effective non-deprecated original, then to a DEFAULT
        entry.
        """
        pool = self.engine.all_candidates()
        with self._status_lock:
            promoted = list(self._promoted.values())
        for candidate in promoted:
            if not any(candidate is c for c in pool):
                pool.append(candidate)

        candidates = [c for c in pool if self._candidate_applies(c, domain)]
        candidates.sort(key=lambda c: c.effectiveness_score or 0.0, reverse=True)

        if candidates:
            best = candidates[0]
            score = best.effectiveness_score or 0.0
            aspects = ", ".join(best.improved_aspects) or "no specific aspects"
            return Recommendation(
                original_guideline_id=best.original_id,
                confidence_score=score,
                reasoning=(
                    f"{best.version} of {best.original_id} reached {score:.1%} effectiveness "
                    f"and improved: {aspects}."
                ),
                evolved_guideline=best,
                alternatives=candidates[1 : 1 + MAX_ALTERNATIVES],
            )

        return self._best_original(domain)

    def _candidate_applies(self, candidate: EvolvedGuideline, domain: str) -> bool:
        """A candidate applies to a domain directly or through its original guideline."""
        if self.engine.is_applicable_to(candidate, domain):
            return True
        original = self.guidelines.get(candidate.original_id)
        return original is not None and self.engine.is_applicable_to(original, domain)

    def _best_original(self, domain: str) -> Recommendation:
        ranked = []
        for guideline in self.guidelines.list():
            if self.is_deprecated(guideline.guideline_id):
                continue
            if not self.engine.is_applicable_to(guideline, domain):
                continue
            snapshot = self.monitor.get_effectiveness(guideline.guideline_id)
            score = snapshot.current_score if snapshot else guideline.original_effectiveness
            ranked.append((score, guideline))

        if not ranked:
            return Recommendation(
                original_guideline_id="DEFAULT",
                confidence_score=DEFAULT_RECOMMENDATION_CONFIDENCE,
                reasoning="No evolved or original guideline matches this domain.",
            )

        score, best = max(ranked, key=lambda item: item[0])
        return Recommendation(
            original_guideline_id=best.guideline_id,
            confidence_score=score,
            reasoning=f"No evolved guideline yet; original scores {score:.1%}.",
        )

    # Error patterns

    def register_pattern(self, pattern: ErrorPattern) -> ErrorPattern:
        return self.pattern_library.register(pattern)

    def match_pattern(
        self, signal: Signal, now: Optional[datetime] = None
    ) -> Optional[ErrorPattern]:
        """Best matching pattern for a signal; its confidence is reinforced."""
        return self.pattern_matcher.find_matching_pattern(signal, now=now)

    def match_all_patterns(
        self, signal: Signal, now: Optional[datetime] = None
    ) -> List[PatternMatch]:
        """Every matching pattern, best first. Read-only."""
        return self.pattern_matcher.find_all_matching_patterns(signal, now=now)

    def record_match_failure(self, pattern_id: str) -> Optional[ErrorPattern]:
        return self.pattern_matcher.record_match_failure(pattern_id)

    def learn_pattern(self, signal: Signal, category: Optional[str] = None) -> ErrorPattern:
        return self.pattern_library.learn_from_signal(signal, category=category)

    def match_log_entry(
        self,
        level: Optional[str],
        message: Optional[str],
        stack_trace: Optional[str] = None,
        learn: bool = False,
        category: Optional[str] = None,
    ) -> Optional[ErrorPattern]:
        """
        Extract a signal from a log entry and match it.

        Args:
            level: Log level
            message: Log message
            stack_trace: Stack trace, if any
            learn: Learn a new pattern when nothing matches
            category: Category for a learned pattern

        Returns:
            The matched (or newly learned) pattern, or None
        """
        signal = self.signal_extractor.extract(level, message, stack_trace)
        matched = self.match_pattern(signal)
        if matched is None and learn:
            return self.learn_pattern(signal, category=category)
        return matched

    # Introspection

    def deprecated_guidelines(self) -> Set[str]:
        with self._status_lock:
            return set(self._deprecated)
