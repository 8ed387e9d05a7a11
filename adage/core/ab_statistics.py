"""
Statistics for two-arm success-rate comparisons.

Normal approximations only; the normal CDF is computed from math.erf.
"""

import math
from typing import Tuple


def normal_cdf(x: float) -> float:
    """Standard normal CDF using the error function."""
    return (1 + math.erf(x / math.sqrt(2))) / 2


def two_proportion_z_test(
    successes_a: int, total_a: int, successes_b: int, total_b: int
) -> Tuple[float, float]:
    """
    Perform a pooled two-proportion z-test of arm B against arm A.

    Returns:
        Tuple of (z_score, two-tailed p_value); (0.0, 1.0) when an arm is
        empty or the pooled standard error is zero
    """
    if total_a == 0 or total_b == 0:
        return (0.0, 1.0)

    p_a = successes_a / total_a
    p_b = successes_b / total_b

    # Pooled proportion
    p_pool = (successes_a + successes_b) / (total_a + total_b)

    # Standard error
    se = math.sqrt(p_pool * (1 - p_pool) * (1 / total_a + 1 / total_b))

    if se == 0:
        return (0.0, 1.0)

    z = (p_b - p_a) / se
    p_value = 2 * (1 - normal_cdf(abs(z)))

    return (z, p_value)


def cohens_h(p_a: float, p_b: float) -> float:
    """Effect size (Cohen's h) between two proportions."""
    return abs(2 * math.asin(math.sqrt(p_b)) - 2 * math.asin(math.sqrt(p_a)))


def difference_confidence_interval(
    successes_a: int, total_a: int, successes_b: int, total_b: int, z: float = 1.96
) -> Tuple[float, float]:
    """Confidence interval (95% by default) for p_b - p_a, unpooled."""
    if total_a == 0 or total_b == 0:
        return (0.0, 0.0)

    p_a = successes_a / total_a
    p_b = successes_b / total_b
    diff = p_b - p_a

    # Standard error of difference
    se = math.sqrt(p_a * (1 - p_a) / total_a + p_b * (1 - p_b) / total_b)

    return (diff - z * se, diff + z * se)


def relative_improvement(original_rate: float, evolved_rate: float) -> float:
    """(evolved - original) / original, 0.0 when the original rate is zero."""
    if original_rate == 0:
        return 0.0
    return (evolved_rate - original_rate) / original_rate
