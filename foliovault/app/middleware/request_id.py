"""Request ID middleware.

Adds a request ID to every request and writes one access log line per
request with the ID, path, method, status and duration.
"""

import time
import uuid

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from foliovault.app.core.logging import get_log_context, get_logger

logger = get_logger("foliovault.access")


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Middleware to add a request ID to all requests.

    The request ID is:
    1. Extracted from X-Request-ID header if present
    2. Generated as UUID if not present
    3. Added to request.state for access in endpoints
    4. Returned in X-Request-ID response header
    """

    def __init__(self, app, header_name: str = "X-Request-ID"):
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = request.headers.get(self.header_name)
        if not request_id:
            request_id = str(uuid.uuid4())

        request.state.request_id = request_id
        start = time.perf_counter()

        response = await call_next(request)

        response.headers[self.header_name] = request_id
        logger.info(
            f"{request.method} {request.url.path} {response.status_code}",
            extra=get_log_context(
                request_id=request_id,
                user_id=getattr(request.state, "user_id", None),
                path=request.url.path,
                method=request.method,
                status_code=response.status_code,
                duration_ms=round((time.perf_counter() - start) * 1000, 2),
            ),
        )
        return response


def get_request_id(request: Request) -> str:
    """Get request ID from request state."""
    return getattr(request.state, "request_id", "unknown")
