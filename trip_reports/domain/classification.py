"""Retry eligibility of submission failures"""

from trip_reports.domain.exceptions import FailureKind

TRANSIENT_PATTERNS = ("timeout", "timed out", "connection", "network", "temporary", "unavailable")
PERMANENT_PATTERNS = ("authentication", "authorization", "invalid", "malformed", "parse error")


def classify_failure(error: BaseException) -> FailureKind:
    """
    Decide whether a failed submission should be retried.

    An explicit kind carried by the error wins. Otherwise the message is
    matched against known patterns, transient first. Anything unrecognised
    is treated as transient.
    """
    kind = getattr(error, "kind", None)
    if isinstance(kind, FailureKind):
        return kind

    message = str(error).lower()
    if any(pattern in message for pattern in TRANSIENT_PATTERNS):
        return FailureKind.TRANSIENT
    if any(pattern in message for pattern in PERMANENT_PATTERNS):
        return FailureKind.PERMANENT
    return FailureKind.TRANSIENT
