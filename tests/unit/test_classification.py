"""Unit tests for submission failure classification"""

import pytest
from trip_reports.domain.classification import classify_failure
from trip_reports.domain.exceptions import FailureKind, RenderingError, SubmissionError


@pytest.mark.parametrize(
    "message",
    [
        "Connection timed out",
        "Read timeout",
        "Network is unreachable",
        "Temporary failure in name resolution",
        "Service Unavailable",
    ],
)
def test_transient_messages(message):
    assert classify_failure(RuntimeError(message)) == FailureKind.TRANSIENT


@pytest.mark.parametrize(
    "message",
    [
        "Invalid credentials",
        "Authentication failed",
        "Authorization denied for identity",
        "Malformed document",
        "XML parse error at line 3",
    ],
)
def test_permanent_messages(message):
    assert classify_failure(RuntimeError(message)) == FailureKind.PERMANENT


def test_transient_patterns_checked_first():
    """A message matching both lists is retried"""
    assert classify_failure(RuntimeError("invalid response: connection reset")) == FailureKind.TRANSIENT


def test_unknown_failure_is_transient():
    assert classify_failure(RuntimeError("something odd happened")) == FailureKind.TRANSIENT


def test_explicit_kind_wins_over_message():
    error = SubmissionError("connection refused by registry policy", kind=FailureKind.PERMANENT)

    assert classify_failure(error) == FailureKind.PERMANENT


def test_rendering_failure_is_permanent():
    assert classify_failure(RenderingError("Malformed report snapshot: missing order reference")) == FailureKind.PERMANENT
