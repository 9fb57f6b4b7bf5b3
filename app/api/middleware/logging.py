# 📄 File: app/api/middleware/logging.py
# 🧭 Purpose (Layman Explanation):
# Keeps a diary of every request made to the subscription API: what was asked for, how long it
# took and whether it failed, each entry tagged with a request id so related lines can be found.
# 🧪 Purpose (Technical Summary):
# Request logging middleware that propagates/generates an X-Request-ID, binds it to the logging
# context for the duration of the request and emits structured request/response/error records.
# 🔗 Dependencies:
# Starlette BaseHTTPMiddleware, app.shared.utils.logging, uuid
# 🔄 Connected Modules / Calls From:
# app.main (middleware registration), all API endpoints

import time
import uuid
from typing import Any, Dict

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from app.shared.utils.logging import get_logger, log_context

from . import should_exclude_path

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
CORRELATION_ID_HEADER = "X-Correlation-ID"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Request logging middleware.

    Every log line emitted while the request is handled (services,
    repositories) carries the request id through the logging context.
    """

    def __init__(self, app: ASGIApp):
        super().__init__(app)

    async def dispatch(self, request: Request, call_next) -> Response:
        if should_exclude_path("logging", request.url.path):
            return await call_next(request)

        request_id = self._get_or_create_request_id(request)
        correlation_id = request.headers.get(CORRELATION_ID_HEADER.lower())

        with log_context(request_id=request_id, correlation_id=correlation_id):
            start_time = time.perf_counter()
            logger.info("Request started", **self._request_data(request))
            try:
                response = await call_next(request)
            except Exception as e:
                logger.error(
                    "Request failed",
                    exc_info=True,
                    error=str(e),
                    duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
                    **self._request_data(request),
                )
                raise

            duration_ms = round((time.perf_counter() - start_time) * 1000, 2)
            log = logger.warning if response.status_code >= 400 else logger.info
            log(
                "Request completed",
                status_code=response.status_code,
                duration_ms=duration_ms,
                **self._request_data(request),
            )
            response.headers[REQUEST_ID_HEADER] = request_id
            return response

    def _get_or_create_request_id(self, request: Request) -> str:
        request_id = request.headers.get(REQUEST_ID_HEADER.lower()) or str(uuid.uuid4())
        request.state.request_id = request_id
        return request_id

    @staticmethod
    def _request_data(request: Request) -> Dict[str, Any]:
        return {
            "method": request.method,
            "path": request.url.path,
            "client_ip": request.client.host if request.client else None,
        }


def get_request_id(request: Request) -> str:
    """Request id assigned by RequestLoggingMiddleware, if any."""
    return getattr(request.state, "request_id", None)
