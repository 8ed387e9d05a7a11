"""
A/B testing of evolved guidelines and the system facade.
"""

from .ab_statistics import (
    cohens_h,
    difference_confidence_interval,
    normal_cdf,
    relative_improvement,
    two_proportion_z_test,
)

from .ab_testing_schemas import (
    ABTest,
    ABTestAnalysis,
    ArmMeasurement,
    TestArm,
)

from .ab_testing import ABTestCoordinator, create_ab_coordinator
from .evolution_system import GuidelineEvolutionSystem

__all__ = [
    # Statistics
    "cohens_h",
    "difference_confidence_interval",
    "normal_cdf",
    "relative_improvement",
    "two_proportion_z_test",
    # Schemas
    "ABTest",
    "ABTestAnalysis",
    "ArmMeasurement",
    "TestArm",
    # Coordination
    "ABTestCoordinator",
    "create_ab_coordinator",
    "GuidelineEvolutionSystem",
]
