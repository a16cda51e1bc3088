"""Dependency injection for FastAPI endpoints"""

from fastapi import Header, HTTPException, Request
from trip_reports.config import settings
from trip_reports.infrastructure.clients.tariffs import TariffClient
from trip_reports.infrastructure.queue import SubmissionDispatcher


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_member_id(x_member_id: int = Header(..., description="Acting member identifier")) -> int:
    """Acting member, as established by the authentication layer in front of the service"""
    return x_member_id


def get_admin_id(x_member_id: int = Header(..., description="Acting member identifier")) -> int:
    """Acting member, required to be a configured administrator"""
    if x_member_id not in settings.admin_member_ids:
        raise HTTPException(status_code=403, detail="Administrator role required")
    return x_member_id


def get_tariff_client() -> TariffClient:
    """Provide tariff feed client instance"""
    return TariffClient()


def get_dispatcher(request: Request) -> SubmissionDispatcher:
    """Provide dispatcher bound to the application's submission queue"""
    return SubmissionDispatcher(request.app.state.submission_queue)
