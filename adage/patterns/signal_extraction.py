"""
Turn raw error log entries into Signals for pattern matching.

The extractor recognises well-known exception types, falls back to the
exception name on the first line of the stack trace, and finally guesses a
type from keywords in the message.
"""

import re
from typing import Optional, Tuple

from loguru import logger

from adage.config import PatternConfig, config as global_config
from adage.patterns.pattern_schemas import Signal

# Checked in order; first hit wins
KNOWN_ERROR_TYPES: Tuple[Tuple[str, "re.Pattern[str]"], ...] = (
    ("NullPointerException", re.compile(r"java\.lang\.NullPointerException")),
    ("OutOfMemoryError", re.compile(r"java\.lang\.OutOfMemoryError")),
    ("SQLException", re.compile(r"java\.sql\.SQLException")),
    ("TimeoutException", re.compile(r"TimeoutException")),
    ("ConnectionException", re.compile(r"Connection\w*Exception")),
    ("SecurityException", re.compile(r"Security\w*Exception")),
    ("ValidationException", re.compile(r"Validation\w*Exception")),
)

MESSAGE_KEYWORDS: Tuple[Tuple[str, str], ...] = (
    ("timeout", "TimeoutException"),
    ("connection", "ConnectionException"),
    ("permission", "SecurityException"),
    ("validation", "ValidationException"),
)

SEVERITY_BY_LEVEL = {
    "FATAL": 1.0,
    "CRITICAL": 0.9,
    "ERROR": 0.8,
    "WARN": 0.5,
    "WARNING": 0.5,
    "INFO": 0.2,
    "DEBUG": 0.1,
}

ERROR_TYPE_SEVERITY = {
    "OutOfMemoryError": 0.4,
    "SecurityException": 0.4,
    "SQLException": 0.3,
    "TimeoutException": 0.3,
    "NullPointerException": 0.2,
}

UNKNOWN_ERROR = "UnknownError"

# at com.example.service.UserService.save(UserService.java:42)
FRAME_PATTERN = re.compile(r"at\s+([\w.$]+)\.([\w$<>]+)\(([\w.]+)(?::(\d+))?\)")


class SignalExtractor:
    """Builds Signals from a log level, message and stack trace."""

    def __init__(self, config: Optional[PatternConfig] = None):
        self.config = config or global_config.patterns

    def extract(
        self,
        level: Optional[str],
        message: Optional[str],
        stack_trace: Optional[str] = None,
    ) -> Signal:
        """
        Extract a Signal from a log entry.

        Args:
            level: Log level of the entry
            message: Log message
            stack_trace: Stack trace text, if any

        Returns:
            Signal with error type, message, trace, application frame and severity
        """
        if stack_trace is not None and not stack_trace.strip():
            stack_trace = None

        class_name, method_name = self.application_frame(stack_trace)
        error_type = self.error_type(message, stack_trace)
        severity = self.severity(level, message, error_type)

        logger.debug(f"Extracted {error_type} signal (severity {severity:.2f})")
        return Signal(
            error_type=error_type,
            message=message or None,
            stack_trace=stack_trace,
            class_name=class_name,
            method_name=method_name,
            severity=severity,
        )

    def error_type(self, message: Optional[str], stack_trace: Optional[str]) -> str:
        """Best guess of the exception type behind a log entry."""
        if stack_trace:
            for name, expression in KNOWN_ERROR_TYPES:
                if expression.search(stack_trace):
                    return name

            first_line = stack_trace.strip().splitlines()[0].strip() if stack_trace.strip() else ""
            if ":" in first_line:
                candidate = first_line.split(":", 1)[0].strip()
                if candidate:
                    return candidate

        if message:
            lowered = message.lower()
            for keyword, name in MESSAGE_KEYWORDS:
                if keyword in lowered:
                    return name

        return UNKNOWN_ERROR

    def application_frame(self, stack_trace: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
        """
        Class and method of the first frame inside the application package.

        Falls back to the first parsable frame when no frame belongs to the
        application.

        Returns:
            (class_name, method_name), both None if no frame parses
        """
        if not stack_trace:
            return None, None

        fallback: Tuple[Optional[str], Optional[str]] = (None, None)
        package = self.config.application_package

        for line in stack_trace.splitlines():
            frame = FRAME_PATTERN.search(line)
            if frame is None:
                continue
            class_name, method_name = frame.group(1), frame.group(2)
            if package and class_name.startswith(package):
                return class_name, method_name
            if fallback == (None, None):
                fallback = (class_name, method_name)

        return fallback

    def severity(
        self,
        level: Optional[str],
        message: Optional[str] = None,
        error_type: Optional[str] = None,
    ) -> float:
        """
        Severity in [0, 1] of a log entry.

        The level sets the base (unknown levels count as 0.5). A known error
        type adds its own weight (0.1 for anything else), and alarming
        message keywords add up to 0.2.
        """
        base = SEVERITY_BY_LEVEL.get((level or "").upper(), 0.5)
        if error_type is None and message is None:
            return base

        type_weight = ERROR_TYPE_SEVERITY.get(error_type or "", 0.1)

        message_weight = 0.0
        if message:
            lowered = message.lower()
            if "critical" in lowered or "fatal" in lowered:
                message_weight = 0.2
            elif "failed" in lowered or "error" in lowered:
                message_weight = 0.1

        return min(1.0, base + type_weight + message_weight)
