"""
Request Middleware Module
=========================

Starlette middleware for request processing.

Features:
- Request ID generation (or propagation of X-Request-ID) for tracing
- Request timing and completion logging
- Security response headers
- Login rate limiting

Note:
    Authentication and authorization are not done here. The identity
    dependency and the evaluator handle them per route.
"""

import time
import uuid
from collections import defaultdict, deque
from typing import Callable, Deque, Dict

from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from portal.core.config import settings
from portal.core.exceptions import RateLimitError, exception_to_payload
from portal.core.logging import get_logger, request_id_context, security_logger, user_id_context

# Initialize logger
logger = get_logger(__name__)

QUIET_PATHS = frozenset({"/", "/health"})


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Request tracing middleware.

    Responsibilities:
    - Assign a request ID and bind it to the logging context
    - Echo it back as X-Request-ID, with X-Process-Time
    - Log every completed request except health checks
    """

    def __init__(self, app: ASGIApp):
        super().__init__(app)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request_id_context.set(request_id)
        user_id_context.set(None)

        request.state.request_id = request_id
        request.state.user_id = None

        start_time = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "request_failed",
                error=str(e),
                path=request.url.path,
                method=request.method,
            )
            raise

        process_time = time.perf_counter() - start_time
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = f"{process_time:.4f}"

        self._log_request(request, response, process_time)
        return response

    def _log_request(self, request: Request, response: Response, process_time: float) -> None:
        if request.url.path in QUIET_PATHS:
            return

        log_data = {
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "process_time_ms": round(process_time * 1000, 2),
            "user_id": getattr(request.state, "user_id", None),
            "ip_address": request.client.host if request.client else None,
        }

        if response.status_code >= 500:
            logger.error("request_completed", **log_data)
        elif response.status_code >= 400:
            logger.warning("request_completed", **log_data)
        else:
            logger.info("request_completed", **log_data)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Add security headers to all responses.

    Headers added:
    - X-Content-Type-Options: nosniff
    - X-Frame-Options: DENY
    - Referrer-Policy
    - Content-Security-Policy (relaxed for the docs UI in debug mode)
    - Strict-Transport-Security (in production)
    """

    _DOCS_PATHS = {"/docs", "/redoc", "/openapi.json"}

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        # Swagger UI and ReDoc load assets from cdn.jsdelivr.net
        if settings.DEBUG and request.url.path in self._DOCS_PATHS:
            response.headers["Content-Security-Policy"] = (
                "default-src 'self'; "
                "script-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net; "
                "style-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net; "
                "img-src 'self' data: https://fastapi.tiangolo.com; "
                "frame-ancestors 'none';"
            )
        else:
            response.headers["Content-Security-Policy"] = (
                "default-src 'self'; frame-ancestors 'none';"
            )

        if settings.ENVIRONMENT == "production":
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        return response


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    In-memory sliding-window rate limit on ``POST /auth/login``.

    Note:
        State is per process. Run a shared limiter in front of the app
        when deploying more than one worker.
    """

    WINDOW_SECONDS = 60

    def __init__(self, app: ASGIApp):
        super().__init__(app)
        self._requests: Dict[str, Deque[float]] = defaultdict(deque)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if not settings.RATE_LIMIT_ENABLED:
            return await call_next(request)

        if request.url.path == "/auth/login" and request.method == "POST":
            client_ip = request.client.host if request.client else "unknown"
            if self._is_rate_limited(client_ip, settings.LOGIN_RATE_LIMIT, self.WINDOW_SECONDS):
                security_logger.log_rate_limit_exceeded(ip_address=client_ip, endpoint=request.url.path)
                exc = RateLimitError(retry_after=self.WINDOW_SECONDS)
                return JSONResponse(
                    status_code=exc.status_code,
                    content=exception_to_payload(exc),
                    headers={"Retry-After": str(self.WINDOW_SECONDS)},
                )

        return await call_next(request)

    def _is_rate_limited(self, key: str, max_requests: int, window_seconds: int) -> bool:
        """
        Record a hit for ``key`` and report whether it is over the limit.
        """
        now = time.monotonic()
        hits = self._requests[key]
        while hits and hits[0] <= now - window_seconds:
            hits.popleft()

        if len(hits) >= max_requests:
            return True

        hits.append(now)
        return False
