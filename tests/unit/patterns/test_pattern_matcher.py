"""
Unit tests for multi-factor pattern matching.
"""

import pytest

from adage.config import PatternConfig
from adage.patterns import (
    ErrorPattern,
    MatchQuality,
    PatternLibrary,
    PatternMatcher,
    Signal,
)


@pytest.fixture
def library():
    return PatternLibrary()


@pytest.fixture
def matcher(library):
    return PatternMatcher(library)


def full_pattern(pattern_id="DB_001", confidence=1.0, **kwargs):
    """A pattern with every regex field set."""
    defaults = dict(
        name="Database failure",
        category="database",
        error_type_pattern="SQLException",
        message_pattern="deadlock",
        stack_trace_pattern=r"Repository\.save",
        class_name_pattern="UserRepository",
        method_name_pattern="save",
        confidence=confidence,
    )
    defaults.update(kwargs)
    return ErrorPattern(pattern_id=pattern_id, **defaults)


FULL_SIGNAL = Signal(
    error_type="java.sql.SQLException",
    message="deadlock detected",
    stack_trace="at com.globalcarelink.UserRepository.save(UserRepository.java:42)",
    class_name="com.globalcarelink.UserRepository",
    method_name="save",
)


class TestScoring:
    """Tests for factor scoring."""

    def test_all_factors_match(self, matcher):
        """Test that a pattern matching every factor scores its confidence."""
        pattern = full_pattern(confidence=0.9)

        assert matcher.raw_score(pattern, FULL_SIGNAL) == pytest.approx(1.0)
        assert matcher.score(pattern, FULL_SIGNAL) == pytest.approx(0.9)

    def test_error_type_only(self, matcher):
        """Test the NullPointerException worked example."""
        pattern = ErrorPattern(
            pattern_id="NPE_001",
            name="Null reference",
            error_type_pattern="NullPointerException",
            confidence=0.8,
        )
        signal = Signal(error_type="NullPointerException")

        assert matcher.score(pattern, signal) == pytest.approx(0.32)

    def test_missing_signal_field_is_false(self, matcher):
        """Test that a factor is false when the signal lacks the field."""
        pattern = full_pattern()
        signal = Signal(error_type="SQLException")

        assert matcher.raw_score(pattern, signal) == pytest.approx(0.4)

    def test_class_method_requires_all_set_patterns(self, matcher):
        """Test that both class and method must match when both are set."""
        pattern = full_pattern()
        signal = Signal(class_name="UserRepository", method_name="delete")

        assert matcher.raw_score(pattern, signal) == 0.0

    def test_class_only_pattern(self, matcher):
        """Test that a class-only pattern ignores the method."""
        pattern = ErrorPattern(pattern_id="C1", name="c", class_name_pattern="UserRepository")
        signal = Signal(class_name="UserRepository")

        assert matcher.raw_score(pattern, signal) == pytest.approx(0.1)


class TestFindMatchingPattern:
    """Tests for find_matching_pattern."""

    def test_worked_example_returns_pattern_and_boosts(self, library, matcher):
        """Test that a 0.32 score clears the threshold and is reinforced."""
        library.register(
            ErrorPattern(
                pattern_id="NPE_001",
                name="Null reference",
                error_type_pattern="NullPointerException",
                confidence=0.8,
                occurrence_count=1,
            )
        )

        matched = matcher.find_matching_pattern(Signal(error_type="NullPointerException"))

        assert matched.pattern_id == "NPE_001"
        assert matched.confidence == pytest.approx(0.85)
        assert matched.occurrence_count == 2

    def test_below_threshold_returns_none(self, library, matcher):
        """Test that weak matches are ignored."""
        library.register(
            ErrorPattern(
                pattern_id="NPE_001",
                name="Null reference",
                error_type_pattern="NullPointerException",
                confidence=0.7,  # 0.4 * 0.7 = 0.28
            )
        )

        assert matcher.find_matching_pattern(Signal(error_type="NullPointerException")) is None
        assert library.get("NPE_001").confidence == 0.7

    def test_highest_score_wins(self, library, matcher):
        """Test that the best scoring pattern is returned."""
        library.register(full_pattern("weak", message_pattern="nomatch"))
        library.register(full_pattern("strong"))

        assert matcher.find_matching_pattern(FULL_SIGNAL).pattern_id == "strong"

    def test_ties_resolve_to_first_candidate(self, matcher):
        """Test that equal scores keep input order."""
        first = full_pattern("first")
        second = full_pattern("second")

        assert matcher.find_matching_pattern(FULL_SIGNAL, [first, second]) is first
        assert matcher.find_matching_pattern(FULL_SIGNAL, [second, first]) is second

    def test_inactive_patterns_skipped(self, library, matcher):
        """Test that inactive patterns never match."""
        library.register(full_pattern(active=False))

        assert matcher.find_matching_pattern(FULL_SIGNAL) is None

    def test_broken_regex_candidate_skipped(self, matcher):
        """Test that a candidate whose regex fails is skipped."""
        broken = full_pattern("broken", error_type_pattern="(unclosed")
        good = full_pattern("good", confidence=0.5)

        assert matcher.find_matching_pattern(FULL_SIGNAL, [broken, good]) is good

    def test_record_match_failure(self, library, matcher):
        """Test caller-reported failure lowers confidence."""
        library.register(full_pattern(confidence=0.5))

        assert matcher.record_match_failure("DB_001").confidence == pytest.approx(0.48)
        assert matcher.record_match_failure("missing") is None

    def test_custom_threshold(self, library):
        """Test that the match threshold comes from config."""
        strict = PatternMatcher(library, config=PatternConfig(match_threshold=0.95))
        library.register(full_pattern(confidence=0.9))

        assert strict.find_matching_pattern(FULL_SIGNAL) is None


class TestFindAllMatchingPatterns:
    """Tests for find_all_matching_patterns."""

    def test_sorted_descending(self, library, matcher):
        """Test that matches are ranked best first."""
        library.register(full_pattern("mid", confidence=0.6))
        library.register(full_pattern("top", confidence=0.95))
        library.register(full_pattern("low", confidence=0.35))

        matches = matcher.find_all_matching_patterns(FULL_SIGNAL)

        assert [m.pattern_id for m in matches] == ["top", "mid", "low"]
        assert matches[0].quality == MatchQuality.EXCELLENT

    def test_is_read_only(self, library, matcher):
        """Test that ranking does not change confidence."""
        library.register(full_pattern(confidence=0.6, occurrence_count=4))

        first = matcher.find_all_matching_patterns(FULL_SIGNAL)
        second = matcher.find_all_matching_patterns(FULL_SIGNAL)

        assert [m.score for m in first] == [m.score for m in second]
        assert library.get("DB_001").confidence == 0.6
        assert library.get("DB_001").occurrence_count == 4

    def test_none_signal(self, matcher):
        """Test that a missing signal matches nothing."""
        assert matcher.find_all_matching_patterns(None) == []


class TestMatchQuality:
    """Tests for quality bands."""

    @pytest.mark.parametrize(
        "score,quality",
        [
            (0.95, MatchQuality.EXCELLENT),
            (0.9, MatchQuality.EXCELLENT),
            (0.75, MatchQuality.GOOD),
            (0.5, MatchQuality.FAIR),
            (0.3, MatchQuality.POOR),
            (0.1, MatchQuality.NO_MATCH),
        ],
    )
    def test_quality_for(self, matcher, score, quality):
        """Test the band boundaries."""
        assert matcher.quality_for(score) == quality

    def test_evaluate_match_quality(self, matcher):
        """Test quality of a pattern/signal pair."""
        assert matcher.evaluate_match_quality(full_pattern(), FULL_SIGNAL) == MatchQuality.EXCELLENT
        assert (
            matcher.evaluate_match_quality(full_pattern(), Signal(message="nothing"))
            == MatchQuality.NO_MATCH
        )

    def test_evaluate_broken_pattern(self, matcher):
        """Test that regex failures are reported as NO_MATCH."""
        broken = full_pattern(error_type_pattern="[")
        assert matcher.evaluate_match_quality(broken, FULL_SIGNAL) == MatchQuality.NO_MATCH


class TestPatternSimilarity:
    """Tests for pattern-to-pattern similarity."""

    def test_identical_patterns(self, matcher):
        """Test that identical patterns are fully similar."""
        assert matcher.calculate_pattern_similarity(full_pattern(), full_pattern()) == 1.0

    def test_partial_similarity(self, matcher):
        """Test averaging of applicable factors."""
        first = full_pattern(stack_trace_pattern="abcd")
        second = full_pattern(category="network", stack_trace_pattern="abcf")

        # error type 1.0, category 0.0, stack trace 0.75
        assert matcher.calculate_pattern_similarity(first, second) == pytest.approx(1.75 / 3)

    def test_no_applicable_factor(self, matcher):
        """Test that patterns sharing no fields are dissimilar."""
        first = ErrorPattern(pattern_id="a", name="a", message_pattern="x")
        second = ErrorPattern(pattern_id="b", name="b", message_pattern="x")

        assert matcher.calculate_pattern_similarity(first, second) == 0.0
