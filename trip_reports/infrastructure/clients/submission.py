"""Submission service client - delivers rendered reports to the external system"""

import httpx
from typing import Any, Dict
from trip_reports.config import settings
from trip_reports.domain.exceptions import FailureKind, SubmissionError
from trip_reports.infrastructure.observability.metrics import submission_latency_histogram


class SubmissionClient:
    """Client for the external authoritative report registry"""

    def __init__(self, base_url: str | None = None, timeout: float | None = None):
        self.base_url = base_url or settings.submission_api_base
        self.timeout = timeout or settings.http_timeout_seconds

    async def submit(self, document: str, identity: str, environment: str) -> Dict[str, Any]:
        """
        Submit a rendered report document on behalf of a member.

        Single attempt only; retries belong to the submission queue.
        Failure mapping:
        - timeout, network errors, 5xx -> transient
        - 401/403 -> permanent (authentication / authorization)
        - other 4xx -> permanent (invalid document)

        Returns:
            Success payload exactly as returned by the service

        Raises:
            SubmissionError: With kind set to the failure category
        """
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                with submission_latency_histogram.time():
                    response = await client.post(
                        f"{self.base_url}/submissions",
                        json={"document": document, "identity": identity, "environment": environment},
                    )
                response.raise_for_status()
                return response.json()

            except httpx.TimeoutException as e:
                raise SubmissionError(
                    f"Submission service timeout after {self.timeout}s", kind=FailureKind.TRANSIENT
                ) from e
            except httpx.HTTPStatusError as e:
                status = e.response.status_code
                detail = e.response.text
                if status in (401, 403):
                    raise SubmissionError(
                        f"Submission authentication failed ({status}): {detail}", kind=FailureKind.PERMANENT
                    ) from e
                if status >= 500:
                    raise SubmissionError(
                        f"Submission service unavailable ({status}): {detail}", kind=FailureKind.TRANSIENT
                    ) from e
                raise SubmissionError(
                    f"Submission rejected as invalid ({status}): {detail}", kind=FailureKind.PERMANENT
                ) from e
            except httpx.RequestError as e:
                raise SubmissionError(f"Submission connection error: {e}", kind=FailureKind.TRANSIENT) from e
            except ValueError as e:
                raise SubmissionError(f"Submission response parse error: {e}", kind=FailureKind.PERMANENT) from e
