"""
Request/response middleware for the admin API
"""
import time
import uuid
import logging
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Tag every request with an id and log method, path, status and timing"""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        # Honour an id set by an upstream proxy
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id

        start_time = time.time()
        client = request.client.host if request.client else "unknown"
        logger.info(f"Request {request_id}: {request.method} {request.url.path} - Client: {client}")

        try:
            response = await call_next(request)
        except Exception as e:
            process_time = time.time() - start_time
            logger.error(f"Request {request_id} failed: {str(e)} - Time: {process_time:.3f}s")
            raise

        process_time = time.time() - start_time
        logger.info(f"Response {request_id}: {response.status_code} - Time: {process_time:.3f}s")

        response.headers[REQUEST_ID_HEADER] = request_id
        response.headers["X-Process-Time"] = f"{process_time:.3f}"
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to admin responses"""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        # Admin payloads must never land in a shared cache
        response.headers["Cache-Control"] = "no-store"

        return response
