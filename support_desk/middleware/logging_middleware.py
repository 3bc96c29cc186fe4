"""
Logging Middleware - Request/Response logging

Every logged request gets a short request id, echoed back in the
``X-Request-ID`` header so dashboard reports can be matched to log lines.
Rejected intents (4xx) are logged at WARNING, store outages (5xx) at ERROR.
"""
import logging
import time
from typing import Callable
from uuid import uuid4

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from support_desk.utils.logger import get_logger

logger = get_logger(__name__)

QUIET_PATHS = frozenset({"/api/v1/health"})

REQUEST_ID_HEADER = "X-Request-ID"


def _level_for(status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    return logging.INFO


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs:
    - Request method, path, client
    - Response status code, duration
    - Unhandled errors
    """

    async def dispatch(self, request: Request, call_next: Callable):
        # Health checks are too frequent to log
        if request.url.path in QUIET_PATHS:
            return await call_next(request)

        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid4().hex[:12]
        start_time = time.time()
        method = request.method
        path = request.url.path

        logger.info(
            f"[{request_id}] → {method} {path}",
            extra={
                "request_id": request_id,
                "query_params": dict(request.query_params),
                "client": request.client.host if request.client else "unknown",
            }
        )

        try:
            response = await call_next(request)
        except Exception as e:
            elapsed_ms = int((time.time() - start_time) * 1000)
            logger.error(
                f"[{request_id}] ✗ {method} {path} unhandled after {elapsed_ms}ms: {e}",
                extra={"request_id": request_id, "duration_ms": elapsed_ms},
                exc_info=True
            )
            raise

        elapsed_ms = int((time.time() - start_time) * 1000)
        logger.log(
            _level_for(response.status_code),
            f"[{request_id}] ← {method} {path} {response.status_code} ({elapsed_ms}ms)",
            extra={
                "request_id": request_id,
                "status_code": response.status_code,
                "duration_ms": elapsed_ms,
            }
        )

        response.headers["X-Process-Time"] = str(elapsed_ms)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
