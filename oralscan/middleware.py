import time
import logging
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from .core.config import Settings
from .exceptions import error_json_response

logger = logging.getLogger(__name__)

# Room for multipart boundaries and part headers around the file itself
MULTIPART_OVERHEAD = 64 * 1024

RATE_LIMITED_ROUTES = {("POST", "/api/analysis")}


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, settings: Settings):
        super().__init__(app)
        self.rate_limit = settings.RATE_LIMIT_PER_MINUTE

    async def dispatch(self, request: Request, call_next):
        limiter = getattr(request.app.state, "rate_limiter", None)
        if limiter is None or (request.method, request.url.path) not in RATE_LIMITED_ROUTES:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        if not limiter.allow(f"{client_ip}:{request.url.path}", self.rate_limit, 60):
            logger.warning(f"Rate limit exceeded for IP: {client_ip}")
            return error_json_response("Rate limit exceeded. Please try again later.", 429)

        return await call_next(request)


class SecurityMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        return response


class LoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        response = await call_next(request)
        duration_ms = int((time.time() - start_time) * 1000)

        if request.url.path.startswith("/api"):
            logger.info(f"{request.method} {request.url.path} {response.status_code} in {duration_ms}ms")

        return response


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, settings: Settings):
        super().__init__(app)
        self.debug = settings.DEBUG

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as e:
            logger.error(f"Unhandled error: {str(e)}", exc_info=True)
            if self.debug:
                return error_json_response(f"Internal server error: {str(e)}", 500)
            return error_json_response("Internal server error", 500)


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, settings: Settings):
        super().__init__(app)
        self.max_body_size = settings.MAX_FILE_SIZE + MULTIPART_OVERHEAD
        self.max_file_size_mb = settings.max_file_size_mb

    async def dispatch(self, request: Request, call_next):
        # Hard cap on request size using Content-Length when available
        content_length = request.headers.get("content-length")
        if content_length is not None:
            try:
                size = int(content_length)
            except ValueError:
                # Malformed header; intake still enforces the file limit
                size = 0
            if size > self.max_body_size:
                return error_json_response(
                    f"File too large. Maximum size is {self.max_file_size_mb}MB.", 400
                )
        return await call_next(request)
