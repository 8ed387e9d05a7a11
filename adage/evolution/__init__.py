"""
Guideline evolution decisions.

The engine decides when a guideline should be replaced by a candidate; the
injected EvolutionStrategy decides what the candidate says.
"""

from .evolution_schemas import (
    EvolutionReport,
    EvolutionResult,
    EvolutionStatus,
    EvolutionSuccess,
    EvolvedGuideline,
    Guideline,
    Priority,
    Recommendation,
)

from .evolution_strategy import EvolutionStrategy, FunctionEvolutionStrategy
from .evolution_engine import EvolutionEngine

__all__ = [
    # Schemas
    "EvolutionReport",
    "EvolutionResult",
    "EvolutionStatus",
    "EvolutionSuccess",
    "EvolvedGuideline",
    "Guideline",
    "Priority",
    "Recommendation",
    # Strategy
    "EvolutionStrategy",
    "FunctionEvolutionStrategy",
    # Engine
    "EvolutionEngine",
]
