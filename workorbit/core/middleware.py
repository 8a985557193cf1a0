"""
Middleware for the WorkOrbit Hierarchy Service
"""

import time
import uuid
import logging
from typing import Callable
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from fastapi import status
from fastapi.responses import JSONResponse

from workorbit.core.config import settings

logger = logging.getLogger(__name__)


class RequestTrackingMiddleware(BaseHTTPMiddleware):
    """Tag each request with an ID and log its timing."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
        start_time = time.time()

        logger.info(
            f"Request started: {request.method} {request.url.path}",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "client_ip": request.client.host if request.client else None,
            }
        )

        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error(
                f"Request failed: {request.method} {request.url.path} - {type(exc).__name__}",
                extra={
                    "request_id": request_id,
                    "path": request.url.path,
                    "process_time": time.time() - start_time,
                }
            )
            raise

        process_time = time.time() - start_time
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = str(round(process_time, 4))

        logger.info(
            f"Request completed: {request.method} {request.url.path} - {response.status_code}",
            extra={
                "request_id": request_id,
                "status_code": response.status_code,
                "process_time": process_time,
            }
        )
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Middleware to add security headers."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        if not settings.debug:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        return response


class AuthRateLimitMiddleware(BaseHTTPMiddleware):
    """Fixed one-minute window per client IP, applied to the auth endpoints only."""

    def __init__(self, app, requests_per_minute: int = 30, path_prefix: str = "/api/v1/auth"):
        super().__init__(app)
        self.requests_per_minute = requests_per_minute
        self.path_prefix = path_prefix
        self.request_counts = {}
        self.window_start_time = {}
        self.last_prune_time = 0.0

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if not request.url.path.startswith(self.path_prefix):
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        current_time = time.time()
        self._prune_expired(current_time)

        if current_time - self.window_start_time.get(client_ip, 0) >= 60:
            self.request_counts[client_ip] = 0
            self.window_start_time[client_ip] = current_time

        if self.request_counts[client_ip] >= self.requests_per_minute:
            logger.warning(
                f"Rate limit exceeded for IP: {client_ip}",
                extra={"client_ip": client_ip, "path": request.url.path}
            )
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={
                    "success": False,
                    "error": True,
                    "status_code": 429,
                    "message": "Rate limit exceeded. Please try again later.",
                    "detail": "Rate limit exceeded. Please try again later.",
                    "error_code": "RATE_LIMIT_EXCEEDED"
                },
                headers={"Retry-After": "60"}
            )

        self.request_counts[client_ip] += 1
        return await call_next(request)

    def _prune_expired(self, current_time: float):
        """Forget clients whose window has closed; runs at most once per window."""
        if current_time - self.last_prune_time < 60:
            return

        expired = [ip for ip, started in self.window_start_time.items() if current_time - started >= 60]
        for ip in expired:
            self.window_start_time.pop(ip, None)
            self.request_counts.pop(ip, None)
        self.last_prune_time = current_time


def add_middleware(app):
    """Add all middleware to the FastAPI app."""

    # Last added runs first
    if settings.enable_rate_limiting:
        app.add_middleware(AuthRateLimitMiddleware, requests_per_minute=settings.rate_limit_per_minute)

    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestTrackingMiddleware)

    logger.info("Middleware registered successfully")
