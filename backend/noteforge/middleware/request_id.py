"""
NoteForge Backend — Request ID Middleware
===========================================

What:  Assigns a correlation ID to each request and echoes it in the response.
How:   Reuses a client-sent X-Request-ID header or generates a short UUID,
       stores it in a ContextVar for error handlers and loggers, and returns
       it as X-Request-ID.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests on one event loop each see their own ID
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

MAX_CLIENT_ID_LENGTH = 64


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Propagates X-Request-ID from client to logs to response."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        client_id = request.headers.get("X-Request-ID", "").strip()
        rid = client_id[:MAX_CLIENT_ID_LENGTH] or str(uuid.uuid4())[:8]

        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)

        response.headers["X-Request-ID"] = rid
        return response
