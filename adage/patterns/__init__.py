"""
Error pattern learning and matching.

Example usage:
    >>> from adage.patterns import ErrorPattern, PatternLibrary, PatternMatcher, Signal
    >>>
    >>> library = PatternLibrary()
    >>> library.register(
    ...     ErrorPattern(
    ...         pattern_id="NPE_001",
    ...         name="Null reference",
    ...         error_type_pattern="NullPointerException",
    ...         confidence=0.8,
    ...     )
    ... )
    >>> matcher = PatternMatcher(library)
    >>> matcher.find_matching_pattern(Signal(error_type="NullPointerException")).pattern_id
    'NPE_001'
"""

from .pattern_schemas import (
    PATTERN_FIELDS,
    ErrorPattern,
    MatchQuality,
    PatternMatch,
    Signal,
)

from .pattern_library import PatternLibrary
from .pattern_matcher import PatternMatcher
from .signal_extraction import SignalExtractor
from .similarity import levenshtein_distance, normalized_similarity

__all__ = [
    # Schemas
    "PATTERN_FIELDS",
    "ErrorPattern",
    "MatchQuality",
    "PatternMatch",
    "Signal",
    # Library and matching
    "PatternLibrary",
    "PatternMatcher",
    "SignalExtractor",
    # Similarity
    "levenshtein_distance",
    "normalized_similarity",
]
