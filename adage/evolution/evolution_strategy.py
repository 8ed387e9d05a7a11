"""
Pluggable content-transformation strategies.

The engine decides when a guideline should evolve; a strategy supplied by the
host decides how its content is rewritten.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

from adage.effectiveness import EffectivenessSnapshot
from adage.evolution.evolution_schemas import EvolvedGuideline, Guideline


class EvolutionStrategy(ABC):
    """Base class for guideline rewriting strategies."""

    name: str = "strategy"

    @abstractmethod
    def evolve(
        self,
        original: Guideline,
        snapshot: EffectivenessSnapshot,
        experience: Optional[Any],
        version: str,
    ) -> EvolvedGuideline:
        """Produce a candidate replacement for a guideline.

        Args:
            original: Guideline that needs improvement
            snapshot: Current effectiveness of the guideline
            experience: Experience that triggered the evaluation, if any
            version: Version label to give the candidate

        Returns:
            The candidate guideline
        """
        pass


class FunctionEvolutionStrategy(EvolutionStrategy):
    """Adapter turning a plain callable into an EvolutionStrategy."""

    def __init__(
        self,
        func: Callable[[Guideline, EffectivenessSnapshot, Optional[Any], str], EvolvedGuideline],
        name: Optional[str] = None,
    ):
        self.func = func
        self.name = name or getattr(func, "__name__", "function")

    def evolve(
        self,
        original: Guideline,
        snapshot: EffectivenessSnapshot,
        experience: Optional[Any],
        version: str,
    ) -> EvolvedGuideline:
        return self.func(original, snapshot, experience, version)
