"""Per-request correlation and access logging."""

from __future__ import annotations

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from .logging import REQUEST_ID_HEADER, bind_request_id, reset_request_id

logger = logging.getLogger("tasktracker.access")


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Bind a request id for the whole request and log how the request ended.

    An incoming ``X-Request-ID`` is reused; otherwise a UUID4 is generated. The
    id is echoed on the response and stored on ``request.state`` for the
    exception handlers.
    """

    def __init__(self, app: ASGIApp, header_name: str = REQUEST_ID_HEADER) -> None:
        super().__init__(app)
        self._header_name = header_name

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(self._header_name) or uuid.uuid4().hex
        request.state.request_id = request_id
        token = bind_request_id(request_id)
        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            logger.error(
                "Request failed",
                extra={"method": request.method, "path": request.url.path, "duration_ms": _elapsed_ms(started)},
            )
            raise
        else:
            logger.info(
                "Request completed",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": response.status_code,
                    "duration_ms": _elapsed_ms(started),
                },
            )
        finally:
            reset_request_id(token)
        response.headers.setdefault(self._header_name, request_id)
        return response


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


__all__ = ["CorrelationIdMiddleware"]
