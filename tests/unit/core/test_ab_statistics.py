"""
Unit tests for A/B test statistics.
"""

import math

import pytest

from adage.core import (
    cohens_h,
    difference_confidence_interval,
    normal_cdf,
    relative_improvement,
    two_proportion_z_test,
)


class TestNormalCdf:
    """Tests for normal_cdf."""

    def test_known_values(self):
        """Test a few well-known quantiles."""
        assert normal_cdf(0.0) == pytest.approx(0.5)
        assert normal_cdf(1.96) == pytest.approx(0.975, abs=1e-3)
        assert normal_cdf(-1.96) == pytest.approx(0.025, abs=1e-3)


class TestTwoProportionZTest:
    """Tests for two_proportion_z_test."""

    def test_worked_example_not_significant(self):
        """Test 0.6 vs 0.75 at n=50 per arm."""
        z, p_value = two_proportion_z_test(30, 50, 37.5, 50)

        assert z == pytest.approx(1.60, abs=0.01)
        assert p_value == pytest.approx(0.109, abs=0.002)
        assert 1 - p_value < 0.95

    def test_large_difference_is_significant(self):
        """Test that a large gap is significant."""
        z, p_value = two_proportion_z_test(10, 40, 30, 40)

        assert z > 4
        assert 1 - p_value > 0.99

    def test_direction_of_z(self):
        """Test that z is negative when arm B is worse."""
        z, _ = two_proportion_z_test(30, 40, 10, 40)
        assert z < 0

    def test_empty_arm(self):
        """Test that an empty arm yields no evidence."""
        assert two_proportion_z_test(0, 0, 5, 10) == (0.0, 1.0)

    def test_zero_standard_error(self):
        """Test that identical all-success arms yield no evidence."""
        assert two_proportion_z_test(10, 10, 10, 10) == (0.0, 1.0)


class TestEffectSizeAndInterval:
    """Tests for Cohen's h and the difference interval."""

    def test_cohens_h(self):
        """Test effect size of 0.25 vs 0.75."""
        expected = abs(2 * math.asin(math.sqrt(0.75)) - 2 * math.asin(math.sqrt(0.25)))
        assert cohens_h(0.25, 0.75) == pytest.approx(expected)
        assert cohens_h(0.5, 0.5) == 0.0

    def test_interval_contains_difference(self):
        """Test that the interval is centered on the observed difference."""
        low, high = difference_confidence_interval(20, 40, 30, 40)

        assert low < 0.25 < high
        assert (low + high) / 2 == pytest.approx(0.25)

    def test_interval_empty_arm(self):
        """Test the empty-arm guard."""
        assert difference_confidence_interval(0, 0, 1, 2) == (0.0, 0.0)


class TestRelativeImprovement:
    """Tests for relative_improvement."""

    def test_worked_example(self):
        """Test (0.75 - 0.6) / 0.6."""
        assert relative_improvement(0.6, 0.75) == pytest.approx(0.25)

    def test_zero_original(self):
        """Test the divide-by-zero guard."""
        assert relative_improvement(0.0, 0.5) == 0.0
