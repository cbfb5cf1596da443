"""FastAPI application factory"""

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from realty_gateway.api.errors import domain_exception_handler
from realty_gateway.api.middleware import MetricsMiddleware, RequestIDMiddleware, UploadSizeLimitMiddleware
from realty_gateway.api.v1 import clients, installments, notifications, payments
from realty_gateway.config import settings
from realty_gateway.domain.exceptions import DomainException
from realty_gateway.infrastructure.observability.logging import setup_logging

setup_logging(settings.log_level)


def create_app() -> FastAPI:
    """
    Build the payments gateway.

    Middleware runs outermost first: request id, metrics, upload limit.
    Domain errors that escape a route map to their HTTP status centrally.
    """
    app = FastAPI(
        title="Realty Payments Gateway",
        description="Installment payment proofs, approvals and repayment tracking",
        version="0.1.0",
    )

    app.add_middleware(
        UploadSizeLimitMiddleware,
        max_body_bytes=settings.max_proof_size_bytes + settings.max_form_overhead_bytes,
    )
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    app.add_exception_handler(DomainException, domain_exception_handler)

    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    for router, tag in (
        (payments.router, "payments"),
        (installments.router, "installments"),
        (clients.router, "clients"),
        (notifications.router, "notifications"),
    ):
        app.include_router(router, prefix="/v1", tags=[tag])

    return app


app = create_app()
