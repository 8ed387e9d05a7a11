"""
Guideline effectiveness tracking.

Example usage:
    >>> from adage.effectiveness import EffectivenessMonitor, ExperienceRecord
    >>>
    >>> monitor = EffectivenessMonitor()
    >>> snapshot = monitor.record_experience(
    ...     ExperienceRecord(
    ...         experience_id="repo_exp_001",
    ...         guideline_id="REPO_001",
    ...         success_rate=0.95,
    ...         time_efficiency=0.85,
    ...         code_quality_score=0.9,
    ...     )
    ... )
    >>> snapshot.needs_improvement
    False
"""

from .effectiveness_schemas import (
    EffectivenessSnapshot,
    ExperienceRecord,
    Measurement,
    OutcomeCategory,
    OutcomeRecord,
)

from .effectiveness_tracker import (
    EffectivenessMonitor,
    EffectivenessTracker,
)

__all__ = [
    # Schemas
    "EffectivenessSnapshot",
    "ExperienceRecord",
    "Measurement",
    "OutcomeCategory",
    "OutcomeRecord",
    # Tracking
    "EffectivenessMonitor",
    "EffectivenessTracker",
]
