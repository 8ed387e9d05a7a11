"""
Unit tests for log-to-signal extraction.
"""

import pytest

from adage.config import PatternConfig
from adage.patterns import SignalExtractor

NPE_TRACE = """java.lang.NullPointerException: user is null
    at org.springframework.web.Dispatcher.dispatch(Dispatcher.java:100)
    at com.globalcarelink.member.MemberService.findMember(MemberService.java:42)
    at com.globalcarelink.member.MemberController.get(MemberController.java:17)"""

CUSTOM_TRACE = """com.globalcarelink.errors.QuotaExceeded: limit reached
    at com.globalcarelink.billing.Quota.check(Quota.java:8)"""


@pytest.fixture
def extractor():
    return SignalExtractor()


class TestErrorType:
    """Tests for error type extraction."""

    def test_known_exception_in_trace(self, extractor):
        """Test that well-known exceptions are recognised."""
        assert extractor.error_type("boom", NPE_TRACE) == "NullPointerException"

    def test_first_line_exception_name(self, extractor):
        """Test falling back to the exception name on the first line."""
        assert extractor.error_type(None, CUSTOM_TRACE) == "com.globalcarelink.errors.QuotaExceeded"

    @pytest.mark.parametrize(
        "message,expected",
        [
            ("Request timeout after 30s", "TimeoutException"),
            ("Connection refused", "ConnectionException"),
            ("Permission denied", "SecurityException"),
            ("Validation failed for field age", "ValidationException"),
            ("Something odd happened", "UnknownError"),
        ],
    )
    def test_message_keywords(self, extractor, message, expected):
        """Test keyword inference when there is no trace."""
        assert extractor.error_type(message, None) == expected


class TestApplicationFrame:
    """Tests for class/method extraction."""

    def test_first_application_frame(self, extractor):
        """Test that the first frame in the application package wins."""
        assert extractor.application_frame(NPE_TRACE) == (
            "com.globalcarelink.member.MemberService",
            "findMember",
        )

    def test_fallback_to_first_frame(self):
        """Test falling back to the first frame outside the application."""
        extractor = SignalExtractor(PatternConfig(application_package="com.example"))
        assert extractor.application_frame(NPE_TRACE) == (
            "org.springframework.web.Dispatcher",
            "dispatch",
        )

    def test_no_trace(self, extractor):
        """Test that a missing trace yields no frame."""
        assert extractor.application_frame(None) == (None, None)


class TestExtract:
    """Tests for full signal extraction."""

    def test_extract(self, extractor):
        """Test building a complete signal."""
        signal = extractor.extract("ERROR", "user is null", NPE_TRACE)

        assert signal.error_type == "NullPointerException"
        assert signal.message == "user is null"
        assert signal.stack_trace == NPE_TRACE
        assert signal.class_name == "com.globalcarelink.member.MemberService"
        assert signal.method_name == "findMember"

    def test_extract_message_only(self, extractor):
        """Test a log entry without a trace."""
        signal = extractor.extract("WARN", "Connection reset")

        assert signal.error_type == "ConnectionException"
        assert signal.stack_trace is None
        assert signal.class_name is None

    def test_blank_trace_treated_as_missing(self, extractor):
        """Test that a whitespace-only trace is dropped."""
        signal = extractor.extract("ERROR", "something failed", "  \n\t")

        assert signal.stack_trace is None
        assert signal.class_name is None
        assert signal.message == "something failed"

    def test_extract_sets_severity(self, extractor):
        """Test that the extracted signal carries the entry's severity."""
        signal = extractor.extract("WARN", "Connection reset")

        assert signal.severity == pytest.approx(
            extractor.severity("WARN", "Connection reset", "ConnectionException")
        )
        assert signal.to_dict()["severity"] == signal.severity


class TestSeverity:
    """Tests for severity scoring."""

    @pytest.mark.parametrize(
        "level,expected",
        [("FATAL", 1.0), ("error", 0.8), ("WARN", 0.5), ("DEBUG", 0.1), ("TRACE", 0.5)],
    )
    def test_level_table(self, extractor, level, expected):
        """Test the base severity of log levels."""
        assert extractor.severity(level) == expected

    def test_error_type_and_message_add_weight(self, extractor):
        """Test that error type and message keywords raise severity."""
        assert extractor.severity("WARN", "request failed", "SQLException") == pytest.approx(0.9)

    def test_severity_capped(self, extractor):
        """Test that severity never exceeds 1.0."""
        assert extractor.severity("FATAL", "fatal crash", "OutOfMemoryError") == 1.0
