"""
Property-based tests for scoring and decision invariants.

Uses hypothesis to check the invariants that must hold for any input:
score bounds, recency weighting, improvement flags, match scoring,
read-only ranking and A/B winner selection.
"""

import re
from types import SimpleNamespace

from hypothesis import given, settings
from hypothesis import strategies as st

from adage.config import ABTestConfig, EffectivenessConfig, PatternConfig
from adage.core import ABTestCoordinator, TestArm
from adage.effectiveness import EffectivenessTracker, OutcomeRecord
from adage.evolution import EvolvedGuideline, Guideline
from adage.patterns import ErrorPattern, PatternLibrary, PatternMatcher, Signal

scores = st.floats(min_value=0.0, max_value=1.0, allow_nan=False)
observations = st.lists(st.tuples(scores, st.booleans()), min_size=1, max_size=25)
words = st.sampled_from(["null", "timeout", "sql", "denied", "MemberService", "save"])
optional_words = st.one_of(st.none(), words)


def tracker_with(entries):
    tracker = EffectivenessTracker("G", config=EffectivenessConfig())
    for i, (score, real_world) in enumerate(entries):
        if real_world:
            tracker.add_real_world_result(OutcomeRecord(f"o{i}", score))
        else:
            tracker.add_measurement(score, SimpleNamespace(experience_id=f"e{i}"))
    return tracker


@st.composite
def patterns(draw, index=st.integers(min_value=0, max_value=10_000)):
    def field():
        word = draw(optional_words)
        return None if word is None else re.escape(word)

    return ErrorPattern(
        pattern_id=f"P{draw(index)}",
        name="generated",
        error_type_pattern=field(),
        message_pattern=field(),
        stack_trace_pattern=field(),
        class_name_pattern=field(),
        method_name_pattern=field(),
        confidence=draw(st.floats(min_value=0.3, max_value=1.0)),
    )


signals = st.builds(
    Signal,
    error_type=optional_words,
    message=optional_words,
    stack_trace=optional_words,
    class_name=optional_words,
    method_name=optional_words,
)


class TestEffectivenessProperties:
    """Invariants of the effectiveness tracker."""

    @settings(max_examples=100, deadline=None)
    @given(observations)
    def test_current_score_within_observed_range(self, entries):
        """Test that the weighted score lies between the lowest and highest score."""
        tracker = tracker_with(entries)
        values = [score for score, _ in entries]

        assert min(values) - 1e-9 <= tracker.current_score <= max(values) + 1e-9

    @given(st.integers(min_value=1, max_value=200))
    def test_recency_weights_non_decreasing(self, n):
        """Test that later measurements never weigh less."""
        tracker = EffectivenessTracker("G", config=EffectivenessConfig())
        weights = [tracker.recency_weight(i, n) for i in range(n)]

        assert all(a <= b for a, b in zip(weights, weights[1:]))
        assert weights[0] == 1.0
        assert weights[-1] < 2.0

    @settings(max_examples=100, deadline=None)
    @given(observations)
    def test_needs_improvement_definition(self, entries):
        """Test needs_improvement against its definition."""
        tracker = tracker_with(entries)
        values = [score for score, _ in entries]
        declining = len(values) >= 3 and values[-3] - values[-1] > 0.1

        assert tracker.needs_improvement() == (tracker.current_score < 0.6 or declining)


class TestMatchingProperties:
    """Invariants of pattern scoring and ranking."""

    @settings(max_examples=100, deadline=None)
    @given(patterns(), signals)
    def test_score_bounded_by_confidence(self, pattern, signal):
        """Test that a match score is in [0, confidence]."""
        matcher = PatternMatcher(PatternLibrary(config=PatternConfig()), config=PatternConfig())

        score = matcher.score(pattern, signal)

        assert 0.0 <= score <= pattern.confidence + 1e-9

    @settings(max_examples=50, deadline=None)
    @given(st.lists(patterns(), max_size=8), signals)
    def test_ranking_is_read_only(self, candidates, signal):
        """Test that ranking twice gives the same result and changes nothing."""
        matcher = PatternMatcher(PatternLibrary(config=PatternConfig()), config=PatternConfig())
        confidences = [p.confidence for p in candidates]

        first = matcher.find_all_matching_patterns(signal, candidates)
        second = matcher.find_all_matching_patterns(signal, candidates)

        assert [(m.pattern_id, m.score) for m in first] == [
            (m.pattern_id, m.score) for m in second
        ]
        assert [p.confidence for p in candidates] == confidences
        assert all(a.score >= b.score for a, b in zip(first, first[1:]))


class TestABTestProperties:
    """Invariants of A/B winner selection."""

    @settings(max_examples=50, deadline=None)
    @given(
        st.integers(min_value=0, max_value=30),
        st.integers(min_value=0, max_value=30),
        st.integers(min_value=0, max_value=30),
        st.integers(min_value=0, max_value=30),
        st.integers(min_value=1, max_value=80),
        st.booleans(),
    )
    def test_winner_requires_complete_significant_improvement(
        self, original_hits, original_misses, evolved_hits, evolved_misses, required, finalize
    ):
        """Test that a winner exists only for complete, significant improvements."""
        coordinator = ABTestCoordinator(config=ABTestConfig())
        test = coordinator.start(
            "G",
            Guideline("G", "general", "content"),
            EvolvedGuideline("G", "v1.0", "better content"),
            required,
        )
        arms = [
            (TestArm.ORIGINAL, original_hits, original_misses),
            (TestArm.EVOLVED, evolved_hits, evolved_misses),
        ]
        for arm, hits, misses in arms:
            for _ in range(hits):
                coordinator.record_measurement(test.test_id, arm, 0.9)
            for _ in range(misses):
                coordinator.record_measurement(test.test_id, arm, 0.1)
        if finalize:
            coordinator.finalize(test.test_id)

        winner = coordinator.get_winner(test.test_id)

        if winner is not None:
            assert test.is_complete()
            assert test.is_statistically_significant()
            assert test.evolved_success_rate > test.original_success_rate
        if not finalize:
            assert winner is None
