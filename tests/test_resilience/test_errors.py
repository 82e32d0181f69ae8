"""Tests for error classification and the error taxonomy."""

from __future__ import annotations

import pytest

from ticketforge.resilience.errors import (
    AIProviderFailure,
    ErrorClass,
    TemplateSyntaxError,
    ValidationFailure,
    classify_error,
    is_retryable,
)


class _StatusCodeError(Exception):
    """Exception with a status_code attribute."""

    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.status_code = status_code


@pytest.mark.parametrize(
    ("status", "expected"),
    [
        (429, ErrorClass.TRANSIENT),
        (401, ErrorClass.CLIENT),
        (403, ErrorClass.CLIENT),
        (500, ErrorClass.SERVER),
        (503, ErrorClass.SERVER),
    ],
)
def test_classify_status_code(status: int, expected: ErrorClass) -> None:
    assert classify_error(_StatusCodeError("boom", status)) == expected


def test_classify_timeout_error_type() -> None:
    assert classify_error(TimeoutError()) == ErrorClass.TIMEOUT


def test_classify_string_fallbacks() -> None:
    assert classify_error(Exception("Rate limit exceeded")) == ErrorClass.TRANSIENT
    assert classify_error(Exception("upstream 502")) == ErrorClass.SERVER
    assert classify_error(Exception("connection reset")) == ErrorClass.TRANSIENT
    assert classify_error(Exception("request timed out")) == ErrorClass.TIMEOUT
    assert classify_error(Exception("something odd")) == ErrorClass.UNKNOWN


def test_provider_failure_classified_by_cause() -> None:
    """A chained AIProviderFailure takes the class of its cause."""
    try:
        try:
            raise _StatusCodeError("overloaded", 503)
        except _StatusCodeError as exc:
            raise AIProviderFailure("all 2 models failed") from exc
    except AIProviderFailure as failure:
        assert classify_error(failure) == ErrorClass.SERVER


def test_is_retryable() -> None:
    assert is_retryable(TimeoutError()) is True
    assert is_retryable(_StatusCodeError("bad key", 401)) is False


def test_validation_failure_lists_missing_fields_sorted() -> None:
    exc = ValidationFailure("required fields missing", ["Testing", "Summary"])
    assert exc.missing_fields == ("Summary", "Testing")
    assert "missing: Summary, Testing" in str(exc)


def test_template_syntax_error_line() -> None:
    exc = TemplateSyntaxError("unexpected end of template", 3)
    assert exc.lineno == 3
    assert str(exc).endswith("on line 3")
