"""Mapping of domain failures to HTTP responses"""

import logging
from contextlib import contextmanager
from typing import Iterator

from fastapi import HTTPException
from sqlalchemy.orm import Session

from trip_reports.domain.exceptions import (
    ConflictError,
    DomainException,
    InvalidReportDataError,
    InvalidTransitionError,
    PermissionDeniedError,
    ReportNotEditableError,
    ReportNotFoundError,
    TariffAPIError,
    TariffNotFoundError,
)
from trip_reports.infrastructure.observability.metrics import tariff_fetch_failures_counter

STATUS_CODES = {
    ReportNotFoundError: 404,
    PermissionDeniedError: 403,
    ReportNotEditableError: 409,
    InvalidTransitionError: 409,
    ConflictError: 409,
    InvalidReportDataError: 422,
    TariffNotFoundError: 422,
    TariffAPIError: 503,
}


def to_http_exception(error: DomainException) -> HTTPException:
    if isinstance(error, TariffAPIError):
        return HTTPException(status_code=503, detail="Tariff service unavailable")
    for error_type, status_code in STATUS_CODES.items():
        if isinstance(error, error_type):
            return HTTPException(status_code=status_code, detail=str(error))
    return HTTPException(status_code=500, detail="Internal server error")


@contextmanager
def handle_errors(db: Session, request_id: str, operation: str) -> Iterator[None]:
    """Roll back and translate failures raised while serving a request"""
    try:
        yield

    except DomainException as e:
        db.rollback()
        if isinstance(e, TariffAPIError):
            tariff_fetch_failures_counter.inc()
            logging.error(f"Tariff API error during {operation}: {e}", extra={"request_id": request_id})
        else:
            logging.warning(f"{operation} refused: {e}", extra={"request_id": request_id})
        raise to_http_exception(e) from e

    except HTTPException:
        raise

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error during {operation}: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error") from e
