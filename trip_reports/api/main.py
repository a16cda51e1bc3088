"""FastAPI application factory"""

import asyncio
import contextlib
from contextlib import asynccontextmanager

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from trip_reports.api.middleware import RequestIDMiddleware, MetricsMiddleware
from trip_reports.api.v1 import reports, tariffs
from trip_reports.infrastructure.clients.submission import SubmissionClient
from trip_reports.infrastructure.database.session import SessionLocal
from trip_reports.infrastructure.observability.logging import setup_logging
from trip_reports.infrastructure.queue import SubmissionQueue
from trip_reports.workers.submission import SubmissionWorker
from trip_reports.config import settings

# Setup structured logging
setup_logging(settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Run the submission queue consumer alongside the API"""
    consumer = asyncio.create_task(app.state.submission_queue.run())
    try:
        yield
    finally:
        consumer.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await consumer


def create_app(queue: SubmissionQueue | None = None) -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Trip Reports",
        description="Field trip expense reimbursement and report submission service",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    if queue is None:
        worker = SubmissionWorker(SessionLocal, SubmissionClient())
        queue = SubmissionQueue(handler=worker, on_exhausted=worker.exhausted)
    app.state.submission_queue = queue

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {
            "status": "ok",
            "service": settings.service_name,
            "pending_submissions": app.state.submission_queue.pending(),
        }

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(reports.router, prefix="/v1", tags=["reports"])
    app.include_router(tariffs.router, prefix="/v1", tags=["tariffs"])

    return app


app = create_app()
