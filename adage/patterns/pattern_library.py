"""
Library of learned error patterns.

Patterns are validated when registered, so that a malformed regex never
reaches the matching fast path. Confidence nudges and occurrence counters are
applied under the pattern's own lock.
"""

import re
import uuid
from datetime import datetime
from typing import List, Optional

from loguru import logger

from adage.config import PatternConfig, config as global_config
from adage.errors import ValidationError
from adage.patterns.pattern_schemas import PATTERN_FIELDS, ErrorPattern, Signal
from adage.storage import InMemoryRepository, Repository
from adage.validators import validate_identifier, validate_score


class PatternLibrary:
    """
    Holds learned error patterns and their confidence/usage statistics.
    """

    def __init__(
        self,
        repository: Optional[Repository[ErrorPattern]] = None,
        config: Optional[PatternConfig] = None,
    ):
        """
        Initialize pattern library.

        Args:
            repository: Pattern storage (in-memory if None)
            config: Pattern settings (global config if None)
        """
        if repository is None:
            repository = InMemoryRepository(name="patterns")
        self.repository = repository
        self.config = config or global_config.patterns
        logger.info("Initialized PatternLibrary")

    def register(self, pattern: ErrorPattern) -> ErrorPattern:
        """
        Validate and store a pattern, replacing any pattern with the same id.

        Args:
            pattern: Pattern to register

        Returns:
            The registered pattern

        Raises:
            ValidationError: If ids, confidence or any regex field is invalid
        """
        if pattern is None:
            raise ValidationError("pattern is required", field="pattern")

        validate_identifier(pattern.pattern_id, "pattern_id")
        validate_identifier(pattern.name, "name")
        validate_score(pattern.confidence, "confidence")
        if pattern.occurrence_count < 0:
            raise ValidationError("occurrence_count must not be negative", field="occurrence_count")

        for field_name in PATTERN_FIELDS:
            expression = getattr(pattern, field_name)
            if expression is None:
                continue
            try:
                re.compile(expression)
            except re.error as e:
                raise ValidationError(
                    f"Invalid regex in {field_name} of pattern {pattern.pattern_id}: {e}",
                    field=field_name,
                ) from e

        with self.repository.locked(pattern.pattern_id):
            self.repository.put(pattern.pattern_id, pattern)

        logger.info(
            f"Registered pattern {pattern.pattern_id} ({pattern.name}, "
            f"confidence {pattern.confidence:.2f})"
        )
        return pattern

    def get(self, pattern_id: str) -> Optional[ErrorPattern]:
        """Get a pattern by id."""
        return self.repository.get(pattern_id)

    def remove(self, pattern_id: str) -> bool:
        """Remove a pattern. Returns False if it was not registered."""
        with self.repository.locked(pattern_id):
            removed = self.repository.delete(pattern_id)
        if removed:
            logger.info(f"Removed pattern {pattern_id}")
        return removed

    def list_patterns(self) -> List[ErrorPattern]:
        """Snapshot of all registered patterns."""
        return self.repository.list()

    def active_patterns(self, now: Optional[datetime] = None) -> List[ErrorPattern]:
        """Patterns currently eligible for matching."""
        now = now or datetime.now()
        return [p for p in self.list_patterns() if self.is_active(p, now)]

    def is_active(self, pattern: ErrorPattern, now: Optional[datetime] = None) -> bool:
        """Check a pattern against the configured activity rules."""
        return pattern.is_active(
            now=now,
            min_confidence=self.config.min_active_confidence,
            window_days=self.config.active_window_days,
        )

    def record_success(
        self, pattern_id: str, now: Optional[datetime] = None
    ) -> Optional[ErrorPattern]:
        """
        Raise a pattern's confidence after it was chosen as a match.

        Returns:
            The updated pattern, or None if the id is unknown
        """
        if self.repository.get(pattern_id) is None:
            return None

        with self.repository.locked(pattern_id):
            pattern = self.repository.get(pattern_id)
            if pattern is None:
                return None

            pattern.confidence = min(1.0, pattern.confidence + self.config.success_boost)
            pattern.occurrence_count += 1
            pattern.last_occurrence = now or datetime.now()

        logger.debug(
            f"Pattern {pattern_id} matched: confidence {pattern.confidence:.2f}, "
            f"occurrences {pattern.occurrence_count}"
        )
        return pattern

    def record_failure(self, pattern_id: str) -> Optional[ErrorPattern]:
        """
        Lower a pattern's confidence after a caller reported a wrong match.

        Returns:
            The updated pattern, or None if the id is unknown
        """
        if self.repository.get(pattern_id) is None:
            return None

        with self.repository.locked(pattern_id):
            pattern = self.repository.get(pattern_id)
            if pattern is None:
                return None

            pattern.confidence = max(0.0, pattern.confidence - self.config.failure_penalty)

        logger.debug(f"Pattern {pattern_id} failed: confidence {pattern.confidence:.2f}")
        return pattern

    def learn_from_signal(
        self,
        signal: Signal,
        category: Optional[str] = None,
        name: Optional[str] = None,
    ) -> ErrorPattern:
        """
        Create and register a pattern describing a signal that matched nothing.

        Signal fields become escaped literal regexes; only the first line of
        the stack trace is kept.

        Args:
            signal: Unmatched signal
            category: Category of the new pattern
            name: Human name (defaults to the signal's error type)

        Returns:
            The registered pattern

        Raises:
            ValidationError: If the signal carries nothing to match on
        """
        if signal is None:
            raise ValidationError("signal is required", field="signal")

        first_trace_line = None
        if signal.stack_trace:
            lines = signal.stack_trace.strip().splitlines()
            first_trace_line = lines[0].strip() if lines else None

        matchable = (
            signal.error_type,
            signal.message,
            first_trace_line,
            signal.class_name,
            signal.method_name,
        )
        if not any(matchable):
            raise ValidationError("signal has no fields to learn from", field="signal")

        now = datetime.now()
        pattern = ErrorPattern(
            pattern_id=str(uuid.uuid4()),
            name=name or signal.error_type or "UnknownError",
            category=category,
            error_type_pattern=_literal(signal.error_type),
            message_pattern=_literal(signal.message),
            stack_trace_pattern=_literal(first_trace_line),
            class_name_pattern=_literal(signal.class_name),
            method_name_pattern=_literal(signal.method_name),
            description=signal.message,
            confidence=self.config.initial_confidence,
            occurrence_count=1,
            first_occurrence=now,
            last_occurrence=now,
        )

        logger.info(f"Learning new pattern from signal: {pattern.name}")
        return self.register(pattern)


def _literal(value: Optional[str]) -> Optional[str]:
    return re.escape(value) if value else None
