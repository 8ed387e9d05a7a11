"""
Multi-factor matching of problem signals against learned error patterns.

A pattern's raw score is the weighted sum of four boolean factors (error type,
message, stack trace, class/method). The final score scales the raw score by
the pattern's confidence, so that unreliable patterns rank lower.
"""

import re
from datetime import datetime
from typing import List, Optional, Sequence

from loguru import logger

from adage.config import PatternConfig, config as global_config
from adage.logging import get_adage_logger, log_pattern_match, performance_monitor
from adage.patterns.pattern_library import PatternLibrary
from adage.patterns.pattern_schemas import ErrorPattern, MatchQuality, PatternMatch, Signal
from adage.patterns.similarity import normalized_similarity


class PatternMatcher:
    """
    Scores signals against patterns and reports the best candidate.

    Scoring reads a snapshot of the candidates; only the winning pattern of
    find_matching_pattern is updated, through the library.
    """

    def __init__(self, library: PatternLibrary, config: Optional[PatternConfig] = None):
        """
        Initialize pattern matcher.

        Args:
            library: Pattern library providing candidates and confidence updates
            config: Pattern settings (global config if None)
        """
        self.library = library
        self.config = config or global_config.patterns
        self.log = get_adage_logger("patterns")

    def find_matching_pattern(
        self,
        signal: Signal,
        patterns: Optional[Sequence[ErrorPattern]] = None,
        now: Optional[datetime] = None,
    ) -> Optional[ErrorPattern]:
        """
        Find the best active pattern for a signal and reinforce it.

        Args:
            signal: Incoming problem signature
            patterns: Candidates to consider (library's patterns if None)
            now: Reference time for the activity filter

        Returns:
            The winning pattern after its confidence update, or None
        """
        matches = self.find_all_matching_patterns(signal, patterns, now=now)
        if not matches:
            log_pattern_match(self.log, None, 0.0)
            return None

        best = matches[0]
        log_pattern_match(self.log, best.pattern_id, best.score, quality=best.quality.value)

        updated = self.library.record_success(best.pattern_id, now=now)
        # Candidate supplied by the caller but unknown to the library
        return updated if updated is not None else best.pattern

    def record_match_failure(self, pattern_id: str) -> Optional[ErrorPattern]:
        """Lower the confidence of a pattern whose match turned out wrong."""
        return self.library.record_failure(pattern_id)

    @performance_monitor(threshold_ms=100.0)
    def find_all_matching_patterns(
        self,
        signal: Signal,
        patterns: Optional[Sequence[ErrorPattern]] = None,
        now: Optional[datetime] = None,
    ) -> List[PatternMatch]:
        """
        Rank every active pattern that clears the match threshold.

        Read-only: no confidence or occurrence statistics change.

        Returns:
            Matches sorted by descending score; equal scores keep input order
        """
        if signal is None:
            return []

        candidates = self.library.list_patterns() if patterns is None else list(patterns)
        matches: List[PatternMatch] = []

        for pattern in candidates:
            if not self.library.is_active(pattern, now):
                continue

            try:
                score = self.score(pattern, signal)
            except re.error as e:
                logger.warning(f"Skipping pattern {pattern.pattern_id}: invalid regex ({e})")
                continue

            if score >= self.config.match_threshold:
                matches.append(PatternMatch(pattern, score, self.quality_for(score)))

        # sorted() is stable, so ties keep their input order
        return sorted(matches, key=lambda m: m.score, reverse=True)

    def raw_score(self, pattern: ErrorPattern, signal: Signal) -> float:
        """
        Weighted sum of the boolean match factors, before confidence.

        Raises:
            re.error: If one of the pattern's regexes does not compile
        """
        score = 0.0

        if _matches(pattern.error_type_pattern, signal.error_type):
            score += self.config.error_type_weight
        if _matches(pattern.message_pattern, signal.message):
            score += self.config.message_weight
        if _matches(pattern.stack_trace_pattern, signal.stack_trace):
            score += self.config.stack_trace_weight
        if self._matches_class_method(pattern, signal):
            score += self.config.class_method_weight

        return score

    def score(self, pattern: ErrorPattern, signal: Signal) -> float:
        """Final match score: raw factor score scaled by pattern confidence."""
        return self.raw_score(pattern, signal) * pattern.confidence

    def _matches_class_method(self, pattern: ErrorPattern, signal: Signal) -> bool:
        checks = [
            (pattern.class_name_pattern, signal.class_name),
            (pattern.method_name_pattern, signal.method_name),
        ]
        checks = [(expr, value) for expr, value in checks if expr is not None]
        if not checks:
            return False
        return all(_matches(expr, value) for expr, value in checks)

    def quality_for(self, score: float) -> MatchQuality:
        """Map a match score onto its quality band."""
        if score >= self.config.excellent_threshold:
            return MatchQuality.EXCELLENT
        if score >= self.config.good_threshold:
            return MatchQuality.GOOD
        if score >= self.config.fair_threshold:
            return MatchQuality.FAIR
        if score >= self.config.poor_threshold:
            return MatchQuality.POOR
        return MatchQuality.NO_MATCH

    def evaluate_match_quality(self, pattern: ErrorPattern, signal: Signal) -> MatchQuality:
        """
        Quality band of a single pattern/signal pair.

        A regex failure is reported as NO_MATCH.
        """
        try:
            return self.quality_for(self.score(pattern, signal))
        except re.error as e:
            logger.warning(f"Cannot evaluate pattern {pattern.pattern_id}: invalid regex ({e})")
            return MatchQuality.NO_MATCH

    def calculate_pattern_similarity(self, first: ErrorPattern, second: ErrorPattern) -> float:
        """
        Similarity of two patterns, used to spot duplicates.

        Averages the factors that apply to both patterns: error type equality,
        category equality and edit-distance similarity of the stack-trace
        patterns.

        Returns:
            Similarity in [0, 1]; 0.0 if no factor applies
        """
        factors: List[float] = []

        if first.error_type_pattern is not None and second.error_type_pattern is not None:
            factors.append(1.0 if first.error_type_pattern == second.error_type_pattern else 0.0)

        if first.category is not None and second.category is not None:
            factors.append(1.0 if first.category == second.category else 0.0)

        if first.stack_trace_pattern is not None and second.stack_trace_pattern is not None:
            factors.append(
                normalized_similarity(first.stack_trace_pattern, second.stack_trace_pattern)
            )

        if not factors:
            return 0.0
        return sum(factors) / len(factors)


def _matches(expression: Optional[str], value: Optional[str]) -> bool:
    if expression is None or value is None:
        return False
    return re.search(expression, value) is not None
