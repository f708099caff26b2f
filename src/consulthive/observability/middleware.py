"""Request ID middleware for HTTP request tracing.

Every response carries an ``X-Request-ID`` header (echoed from the client or
generated) and the ID is bound into structlog contextvars so all log entries
for the request share one ``request_id`` field.  Calls to
``/operations/{name}`` also bind the operation name.
"""

from __future__ import annotations

import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

OPERATIONS_PREFIX = "/operations/"


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Attach a unique request ID to every HTTP request/response cycle."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        """Bind ``request_id`` (and ``operation`` for catalogue calls), then call the app.

        Args:
            request: The incoming HTTP request.
            call_next: The next middleware or route handler.

        Returns:
            The response with its ``X-Request-ID`` header set.
        """
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        context: dict[str, str] = {"request_id": request_id, "service": "consulthive"}
        path = request.url.path
        if path.startswith(OPERATIONS_PREFIX) and len(path) > len(OPERATIONS_PREFIX):
            context["operation"] = path[len(OPERATIONS_PREFIX) :]

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(**context)
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response
