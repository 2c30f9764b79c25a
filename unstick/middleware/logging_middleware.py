"""
HTTP request logging middleware.

Binds a request id and, when the caller names one, the wallet profile into
structlog contextvars so every diagnose and heal event logged while serving
the request can be traced back to it. Health probes are served silently.
"""

import time
import uuid
from typing import Any, Dict

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = structlog.stdlib.get_logger("http")

QUIET_PATHS = frozenset({"/healthz"})


def request_context(request: Request) -> Dict[str, Any]:
    """Log context for a request: its id plus the profile it targets, if any."""
    context: Dict[str, Any] = {
        "request_id": request.headers.get("x-request-id") or uuid.uuid4().hex[:8],
    }
    profile_id = (request.query_params.get("profileId") or "").strip()
    if profile_id:
        context["profile_id"] = profile_id
    return context


def _log_method(status_code: int):
    if status_code >= 500:
        return logger.error
    if status_code >= 400:
        return logger.warning
    return logger.info


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Access log for the unstick endpoints with timing and status info."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        context = request_context(request)

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(**context)

        if request.url.path in QUIET_PATHS:
            response = await call_next(request)
            response.headers["x-request-id"] = context["request_id"]
            return response

        start = time.perf_counter()
        status_code = 500

        try:
            response = await call_next(request)
            status_code = response.status_code
            response.headers["x-request-id"] = context["request_id"]
            return response
        finally:
            _log_method(status_code)(
                "http_request",
                method=request.method,
                path=request.url.path,
                status=status_code,
                duration_ms=round((time.perf_counter() - start) * 1000, 1),
                client=request.client.host if request.client else None,
            )
