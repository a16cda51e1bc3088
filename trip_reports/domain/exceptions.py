"""Domain-specific exceptions"""

from enum import Enum
from typing import Optional


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class TariffNotFoundError(DomainException):
    """No price list is effective on the requested date"""

    pass


class TariffAPIError(DomainException):
    """Tariff feed returned an error or is unavailable"""

    pass


class InvalidReportDataError(DomainException):
    """Report data violates a rule the request schema cannot express"""

    pass


class ReportNotFoundError(DomainException):
    """Report does not exist"""

    pass


class PermissionDeniedError(DomainException):
    """Actor is not allowed to perform the operation"""

    pass


class ReportNotEditableError(DomainException):
    """Report is in a state that does not accept edits"""

    pass


class InvalidTransitionError(DomainException):
    """State transition is not part of the allowed graph"""

    pass


class ConflictError(DomainException):
    """Another writer modified the report first"""

    pass


class FailureKind(str, Enum):
    """Retry eligibility of a failed submission"""

    TRANSIENT = "transient"
    PERMANENT = "permanent"


class SubmissionError(DomainException):
    """External submission service rejected the report or could not be reached.

    ``kind`` is set when the failure category is known from the response
    (status code, timeout). Otherwise classification falls back to the message.
    """

    def __init__(self, message: str, kind: Optional[FailureKind] = None):
        super().__init__(message)
        self.kind = kind


class RenderingError(DomainException):
    """Report snapshot cannot be rendered into the submission document"""

    pass
