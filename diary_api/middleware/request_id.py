"""
Diary Backend — Request ID Middleware
======================================

What:  Assigns a correlation ID to each incoming request and echoes it back.
How:   Takes the client's X-Request-ID header or generates a short UUID,
       stores it in a ContextVar and request.state, and sets it on the response.
Who:   Applied to every request via Starlette middleware.

The ID appears in access log lines and in every `{ok: false}` error body,
so a user report can be matched to server logs.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local storage for the current request ID
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Middleware that assigns a unique ID to each request for tracing.

    Behavior:
        1. Use the client's X-Request-ID header when present
        2. Otherwise generate the first 8 characters of a UUID4
        3. Store in ContextVar (loggers, handlers) and request.state (routes)
        4. Add to response headers
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get("X-Request-ID") or str(uuid.uuid4())[:8]

        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)
        response.headers["X-Request-ID"] = rid
        return response
