"""
Evolution decisions for guidelines.

The EvolutionEngine reads a guideline's effectiveness tracker and decides
whether a candidate replacement should be produced. Producing the candidate
is delegated to an injected EvolutionStrategy.
"""

from datetime import datetime, timedelta
from typing import Any, Iterable, List, Optional, Union

from loguru import logger

from adage.config import EvolutionConfig, config as global_config
from adage.effectiveness import EffectivenessMonitor
from adage.errors import ConfigurationError, ValidationError
from adage.evolution.evolution_schemas import EvolutionResult, EvolvedGuideline, Guideline
from adage.evolution.evolution_strategy import EvolutionStrategy
from adage.logging import get_adage_logger, log_evolution_decision, track_evolution_decision
from adage.storage import InMemoryRepository, Repository
from adage.validators import validate_score


class EvolutionEngine:
    """
    Decides when guidelines evolve and keeps the candidates produced.

    Decision order in evaluate():
    1. No tracker -> NOT_FOUND
    2. Guideline missing from the store -> NOT_FOUND
    3. Still effective -> NO_CHANGE_NEEDED
    4. Not evolvable -> NO_CHANGE_NEEDED
    5. Sample too small (when required) -> NO_CHANGE_NEEDED
    6. Otherwise ask the strategy for a candidate -> IMPROVED
    """

    def __init__(
        self,
        monitor: EffectivenessMonitor,
        guidelines: Repository[Guideline],
        strategy: Optional[EvolutionStrategy],
        candidates: Optional[Repository[List[EvolvedGuideline]]] = None,
        config: Optional[EvolutionConfig] = None,
    ):
        """
        Initialize evolution engine.

        Args:
            monitor: Source of effectiveness trackers
            guidelines: Guideline store (read-only from the engine's side)
            strategy: Content-transformation strategy producing candidates
            candidates: Storage of produced candidates per guideline
            config: Evolution settings (global config if None)

        Raises:
            ConfigurationError: If no strategy is supplied
        """
        if strategy is None:
            raise ConfigurationError("EvolutionEngine requires an EvolutionStrategy")

        self.monitor = monitor
        self.guidelines = guidelines
        self.strategy = strategy
        if candidates is None:
            candidates = InMemoryRepository(name="candidates")
        self.candidates = candidates
        self.config = config or global_config.evolution
        self.log = get_adage_logger("evolution")

        logger.info(f"Initialized EvolutionEngine (strategy: {getattr(strategy, 'name', strategy)})")

    @track_evolution_decision("evaluate")
    def evaluate(self, guideline_id: str, experience: Optional[Any] = None) -> EvolutionResult:
        """
        Decide whether a guideline needs a new candidate version.

        Args:
            guideline_id: Guideline to evaluate
            experience: Experience that triggered the evaluation, passed to the strategy

        Returns:
            EvolutionResult tagged IMPROVED, NO_CHANGE_NEEDED or NOT_FOUND
        """
        tracker = self.monitor.get_tracker(guideline_id)
        if tracker is None:
            return self._decided(EvolutionResult.not_found(guideline_id, "guideline tracker absent"))

        guideline = self.guidelines.get(guideline_id)
        if guideline is None:
            return self._decided(
                EvolutionResult.not_found(guideline_id, "guideline absent from store")
            )

        with self.monitor.repository.locked(guideline_id):
            snapshot = tracker.snapshot()

        if not snapshot.needs_improvement:
            return self._decided(
                EvolutionResult.no_change_needed(
                    guideline_id, snapshot.current_score, original=guideline
                )
            )

        if not guideline.evolvable:
            return self._decided(
                EvolutionResult.no_change_needed(
                    guideline_id,
                    snapshot.current_score,
                    reason="guideline is not evolvable",
                    original=guideline,
                )
            )

        if self.config.require_significant_sample and not snapshot.has_statistical_significance:
            required = self.monitor.config.min_significant_samples
            return self._decided(
                EvolutionResult.no_change_needed(
                    guideline_id,
                    snapshot.current_score,
                    reason=(
                        f"insufficient sample: {snapshot.total_measurements} of "
                        f"{required} measurements"
                    ),
                    original=guideline,
                )
            )

        with self.candidates.locked(guideline_id):
            version = self.next_version(guideline_id)
            evolved = self.strategy.evolve(guideline, snapshot, experience, version)
            if evolved.effectiveness_score is not None:
                validate_score(evolved.effectiveness_score, "effectiveness_score")
            if evolved.original_id != guideline_id:
                raise ValidationError(
                    f"strategy produced a candidate for {evolved.original_id}, "
                    f"expected {guideline_id}",
                    field="original_id",
                )

            history = list(self.candidates.get(guideline_id) or [])
            history.append(evolved)
            self.candidates.put(guideline_id, history)

        return self._decided(
            EvolutionResult.improved(guideline_id, snapshot.current_score, guideline, evolved)
        )

    def _decided(self, result: EvolutionResult) -> EvolutionResult:
        log_evolution_decision(
            self.log,
            result.guideline_id,
            result.status.value,
            current_effectiveness=result.current_effectiveness,
            reason=result.reason,
        )
        return result

    def next_version(self, guideline_id: str) -> str:
        """Version label for the next candidate of a guideline ("v1.0", "v2.0", ...)."""
        return f"v{len(self.candidates_for(guideline_id)) + 1}.0"

    def candidates_for(self, guideline_id: str) -> List[EvolvedGuideline]:
        """Candidates produced so far for a guideline, oldest first."""
        return list(self.candidates.get(guideline_id) or [])

    def all_candidates(self) -> List[EvolvedGuideline]:
        """Every candidate produced, grouped by guideline."""
        return [candidate for history in self.candidates.list() for candidate in history]

    def is_outdated(self, guideline: Guideline, now: Optional[datetime] = None) -> bool:
        """True if the guideline was last updated more than the configured days ago."""
        now = now or datetime.now()
        return now - guideline.last_updated > timedelta(days=self.config.outdated_after_days)

    def is_applicable_to(
        self, guideline: Union[Guideline, EvolvedGuideline], domain: Optional[str]
    ) -> bool:
        """
        Heuristic domain check: case-insensitive substring of category or content.

        Returns:
            False for a blank domain
        """
        if not domain or not domain.strip():
            return False

        needle = domain.strip().lower()
        category = getattr(guideline, "category", None) or ""
        content = getattr(guideline, "content", None) or ""
        return needle in category.lower() or needle in content.lower()

    def review_queue(
        self, guidelines: Optional[Iterable[Guideline]] = None, now: Optional[datetime] = None
    ) -> List[Guideline]:
        """
        Outdated evolvable guidelines, oldest first.

        Args:
            guidelines: Guidelines to inspect (the whole store if None)
            now: Reference time
        """
        pool = self.guidelines.list() if guidelines is None else list(guidelines)
        due = [g for g in pool if g.evolvable and self.is_outdated(g, now)]
        return sorted(due, key=lambda g: g.last_updated)
