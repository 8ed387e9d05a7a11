"""
Decorators for automatic logging of evolution decisions and slow operations.

These decorators enable traceability without cluttering business logic.
"""

import functools
import time
from datetime import datetime
from typing import Any, Callable

from .logger import get_adage_logger


def track_evolution_decision(event_type: str) -> Callable:
    """
    Decorator to track evolution decisions.

    Logs the decorated call's result (or failure) on the "evolution" component.

    Args:
        event_type: Type of decision (e.g., "evaluate", "promote")

    Example:
        >>> @track_evolution_decision("evaluate")
        ... def evaluate(self, guideline_id: str) -> EvolutionResult:
        ...     ...
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            log = get_adage_logger("evolution")
            event_id = datetime.now().timestamp()

            try:
                result = func(*args, **kwargs)

                log.bind(
                    event_type=event_type,
                    event_id=event_id,
                    function=func.__name__,
                    result=str(result)[:200] if result is not None else None,
                ).debug(f"Evolution event: {event_type}")

                return result

            except Exception as e:
                log.bind(
                    event_type=event_type,
                    event_id=event_id,
                    function=func.__name__,
                    error=str(e),
                    error_type=type(e).__name__,
                ).warning(f"Evolution event failed: {event_type}")
                raise

        return wrapper

    return decorator


def performance_monitor(threshold_ms: float = 1000.0) -> Callable:
    """
    Decorator to monitor function performance.

    Logs warning if execution exceeds threshold.

    Args:
        threshold_ms: Warning threshold in milliseconds

    Example:
        >>> @performance_monitor(threshold_ms=50)
        ... def rank_patterns(signal):
        ...     ...
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            log = get_adage_logger("system")
            start_time = time.perf_counter()

            try:
                result = func(*args, **kwargs)
                elapsed_ms = (time.perf_counter() - start_time) * 1000

                if elapsed_ms > threshold_ms:
                    log.bind(
                        function=func.__name__,
                        elapsed_ms=elapsed_ms,
                        threshold_ms=threshold_ms,
                    ).warning(f"Performance threshold exceeded: {func.__name__}")
                else:
                    log.bind(function=func.__name__, elapsed_ms=elapsed_ms).trace(
                        f"Function executed: {func.__name__}"
                    )

                return result

            except Exception:
                elapsed_ms = (time.perf_counter() - start_time) * 1000
                log.bind(function=func.__name__, elapsed_ms=elapsed_ms).debug(
                    f"Function failed: {func.__name__}"
                )
                raise

        return wrapper

    return decorator
