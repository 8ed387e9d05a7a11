"""
Enhanced logging infrastructure for the ADAGE engine.

Provides structured logging with:
- Component-specific log files
- Evolution decision tracking
- Pattern match tracking
- A/B test lifecycle logging
"""

import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from loguru import logger

COMPONENTS = ("effectiveness", "patterns", "evolution", "ab_testing")


class AdageLogger:
    """
    Logger configuration for the ADAGE engine.

    Features:
    - Structured logging with bound component context
    - One rotating log file per component
    - Log rotation and retention
    """

    def __init__(
        self,
        log_dir: Optional[Path] = None,
        rotation: str = "100 MB",
        retention: str = "1 month",
        level: str = "INFO",
        format_string: Optional[str] = None,
        enable_file_logging: bool = True,
        enable_console_logging: bool = True,
    ):
        """
        Initialize the ADAGE logger.

        Args:
            log_dir: Directory for log files
            rotation: When to rotate log files
            retention: How long to keep old logs
            level: Default log level
            format_string: Custom format string
            enable_file_logging: Whether to log to files
            enable_console_logging: Whether to log to console
        """
        self.log_dir = log_dir or Path("logs")
        self.rotation = rotation
        self.retention = retention
        self.level = level

        self.format_string = format_string or (
            "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{extra[component]}</cyan> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
            "<level>{message}</level>"
        )

        logger.remove()
        logger.configure(extra={"component": "system"})

        if enable_console_logging:
            logger.add(
                sys.stderr,
                format=self.format_string,
                level=level,
                colorize=True,
            )

        if enable_file_logging:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            self._add_file_handlers()

        self.logger = logger.bind(component="system")

    def _add_file_handlers(self) -> None:
        """Add the main, per-component and error log files."""
        logger.add(
            self.log_dir / "adage.log",
            format=self.format_string,
            level=self.level,
            rotation=self.rotation,
            retention=self.retention,
            compression="zip",
        )

        for component in COMPONENTS:
            logger.add(
                self.log_dir / f"{component}.log",
                format=self.format_string,
                level="DEBUG",
                rotation=self.rotation,
                retention=self.retention,
                compression="zip",
                filter=lambda record, name=component: record["extra"].get("component") == name,
            )

        logger.add(
            self.log_dir / "errors.log",
            format=self.format_string,
            level="ERROR",
            rotation=self.rotation,
            retention=self.retention,
            compression="zip",
        )

    def get_logger(self, component: str) -> Any:
        """
        Get a logger bound to a specific component.

        Args:
            component: Component name (e.g., "patterns", "evolution")

        Returns:
            Logger instance bound to the component
        """
        return logger.bind(component=component)


def get_adage_logger(component: str = "system") -> Any:
    """
    Get a component-specific logger.

    Example:
        >>> log = get_adage_logger("patterns")
        >>> log.info("Pattern registered")
    """
    return logger.bind(component=component)


def log_evolution_decision(
    logger_instance: Any, guideline_id: str, status: str, **kwargs: Any
) -> None:
    """
    Log an evolution decision with structured data.

    Args:
        logger_instance: Logger to use
        guideline_id: Guideline that was evaluated
        status: Decision outcome (e.g., "improved", "no_change_needed")
        **kwargs: Additional context (scores, reason, ...)
    """
    logger_instance.bind(
        guideline_id=guideline_id,
        status=status,
        timestamp=datetime.now().isoformat(),
        **kwargs,
    ).info(f"Evolution decision for {guideline_id}: {status}")


def log_pattern_match(
    logger_instance: Any, pattern_id: Optional[str], score: float, **kwargs: Any
) -> None:
    """
    Log the outcome of a pattern match.

    Args:
        logger_instance: Logger to use
        pattern_id: Matched pattern, or None when nothing matched
        score: Final weighted score of the match
        **kwargs: Additional context
    """
    matched = pattern_id is not None
    logger_instance.bind(
        pattern_id=pattern_id,
        score=score,
        matched=matched,
        timestamp=datetime.now().isoformat(),
        **kwargs,
    ).debug(f"Pattern match: {pattern_id if matched else 'none'} (score {score:.3f})")


def log_ab_test_event(logger_instance: Any, test_id: str, event: str, **kwargs: Any) -> None:
    """
    Log an A/B test lifecycle event.

    Args:
        logger_instance: Logger to use
        test_id: Test the event belongs to
        event: Event type (e.g., "started", "finalized", "winner")
        **kwargs: Additional context
    """
    logger_instance.bind(
        test_id=test_id,
        event=event,
        timestamp=datetime.now().isoformat(),
        **kwargs,
    ).info(f"A/B test {test_id}: {event}")


# Global logger instance
_adage_logger: Optional[AdageLogger] = None


def initialize_logging(
    log_dir: Optional[Path] = None, level: str = "INFO", **kwargs: Any
) -> AdageLogger:
    """
    Initialize the ADAGE logging system.

    This should be called once at host startup.

    Args:
        log_dir: Directory for log files
        level: Default log level
        **kwargs: Additional configuration for AdageLogger

    Returns:
        Configured AdageLogger instance
    """
    global _adage_logger
    _adage_logger = AdageLogger(log_dir=log_dir, level=level, **kwargs)
    return _adage_logger


def get_logger_instance() -> Optional[AdageLogger]:
    """Get the global logger instance."""
    return _adage_logger


def initialize_logging_from_config(log_config: Any) -> AdageLogger:
    """
    Initialize logging from a LogConfig section.

    Args:
        log_config: adage.config.LogConfig instance

    Returns:
        Configured AdageLogger instance
    """
    return initialize_logging(
        log_dir=Path(log_config.log_dir),
        level=log_config.level,
        rotation=log_config.rotation,
        retention=log_config.retention,
        enable_file_logging=log_config.enable_file_logging,
        enable_console_logging=log_config.enable_console_logging,
    )
