"""FastAPI middleware for request tracing, metrics and upload limits"""

import uuid
import time
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from realty_gateway.config import settings
from realty_gateway.infrastructure.observability.metrics import request_duration_histogram


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Propagate the gateway's X-Request-ID, or mint one, for distributed tracing"""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


class MetricsMiddleware(BaseHTTPMiddleware):
    """Record HTTP request metrics"""

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()

        response = await call_next(request)

        duration = time.time() - start_time
        # Route template keeps label cardinality bounded (/v1/payments/{payment_id})
        route = request.scope.get("route")
        endpoint = getattr(route, "path", request.url.path)
        request_duration_histogram.labels(
            method=request.method,
            endpoint=endpoint,
            status=response.status_code,
        ).observe(duration)

        return response


class UploadSizeLimitMiddleware(BaseHTTPMiddleware):
    """
    Refuse multipart bodies too large to carry an acceptable proof before
    the form is parsed. Per-file limits are still enforced by ProofStorage.
    """

    def __init__(self, app, max_body_bytes: int):
        super().__init__(app)
        self.max_body_bytes = max_body_bytes

    async def dispatch(self, request: Request, call_next):
        content_type = request.headers.get("content-type", "")
        content_length = request.headers.get("content-length", "")
        if (
            content_type.startswith("multipart/form-data")
            and content_length.isdigit()
            and int(content_length) > self.max_body_bytes
        ):
            max_mb = settings.max_proof_size_bytes / (1024 * 1024)
            return JSONResponse(
                status_code=400,
                content={"detail": f"File too large. Maximum size allowed is {max_mb:g}MB."},
            )

        return await call_next(request)
