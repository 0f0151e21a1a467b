# ==============================================================================
# REQUEST LOGGER MIDDLEWARE
# ==============================================================================
# Per-request log lines with a request ID and timing
# ==============================================================================

from __future__ import annotations

import logging
import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from walletwise.core.constants import APIConstants

logger = logging.getLogger(__name__)


class RequestLoggerMiddleware(BaseHTTPMiddleware):
    """
    Logs each request with its outcome and duration.

    An incoming request ID header is reused so ledger log lines can be
    correlated with the caller's own; otherwise a short one is generated.
    The ID is exposed to handlers as ``request.state.request_id``.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable,
    ) -> Response:
        request_id = (
            request.headers.get(APIConstants.REQUEST_ID_HEADER)
            or uuid.uuid4().hex[:12]
        )
        request.state.request_id = request_id
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as e:
            elapsed_ms = (time.perf_counter() - started) * 1000
            logger.error(
                f"[{request_id}] {request.method} {request.url.path} "
                f"failed after {elapsed_ms:.2f}ms: {e}"
            )
            raise

        elapsed_ms = (time.perf_counter() - started) * 1000
        level = logging.INFO if response.status_code < 400 else logging.WARNING
        logger.log(
            level,
            f"[{request_id}] {request.method} {request.url.path} "
            f"-> {response.status_code} ({elapsed_ms:.2f}ms)"
        )

        response.headers[APIConstants.REQUEST_ID_HEADER] = request_id
        response.headers[APIConstants.RESPONSE_TIME_HEADER] = f"{elapsed_ms:.2f}ms"
        return response
