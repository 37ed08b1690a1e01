import re

import structlog
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from uuid import uuid4

REQUEST_ID_HEADER = "X-Request-ID"
_VALID_REQUEST_ID = re.compile(r"^[A-Za-z0-9._-]{1,128}$")


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Attach a request_id to every HTTP request.

    - Reuses a well-formed client X-Request-ID, otherwise generates one
    - Binds request_id, method and path into the structlog context
    - Echoes X-Request-ID on the response
    """

    async def dispatch(self, request: Request, call_next):
        supplied = request.headers.get(REQUEST_ID_HEADER, "")
        request_id = supplied if _VALID_REQUEST_ID.match(supplied) else str(uuid4())
        request.state.request_id = request_id

        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )
        try:
            response = await call_next(request)
        finally:
            structlog.contextvars.unbind_contextvars("request_id", "method", "path")

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
