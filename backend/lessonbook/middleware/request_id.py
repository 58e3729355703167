# backend/lessonbook/middleware/request_id.py
"""
Request id middleware.

Every request gets an id, taken from an incoming ``X-Request-ID`` header
when present, that log records pick up through ``RequestIdFilter``.
"""

from collections.abc import Awaitable, Callable
import uuid

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from ..core.request_context import reset_request_id, set_request_id

REQUEST_ID_HEADER = "X-Request-ID"
MAX_REQUEST_ID_LENGTH = 128


class RequestIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        incoming = (request.headers.get(REQUEST_ID_HEADER) or "").strip()
        request_id = incoming[:MAX_REQUEST_ID_LENGTH] or uuid.uuid4().hex
        token = set_request_id(request_id)
        try:
            response = await call_next(request)
        finally:
            reset_request_id(token)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
