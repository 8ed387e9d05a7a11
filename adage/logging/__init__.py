"""
Logging infrastructure for the ADAGE engine.

Provides component-bound loguru loggers and tracking decorators.
"""

from .logger import (
    AdageLogger,
    get_adage_logger,
    initialize_logging,
    initialize_logging_from_config,
    get_logger_instance,
    log_evolution_decision,
    log_pattern_match,
    log_ab_test_event,
)

from .decorators import (
    track_evolution_decision,
    performance_monitor,
)

__all__ = [
    # Logger
    "AdageLogger",
    "get_adage_logger",
    "initialize_logging",
    "initialize_logging_from_config",
    "get_logger_instance",
    "log_evolution_decision",
    "log_pattern_match",
    "log_ab_test_event",
    # Decorators
    "track_evolution_decision",
    "performance_monitor",
]
