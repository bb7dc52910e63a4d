"""Request logging middleware."""

import time
import uuid
from typing import Callable

import structlog
from fastapi import Request

from mail_audit_agent.utils.logging import get_logger

logger = get_logger(__name__)


async def request_logging_middleware(request: Request, call_next: Callable):
    """
    Log all incoming requests with timing and response status.

    Binds a request id into the structlog context so every log line emitted
    while handling the request carries it. The id is echoed back in the
    X-Request-ID response header.
    """
    start_time = time.time()
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex

    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id)

    method = request.method
    path = request.url.path
    client_ip = request.client.host if request.client else None

    response = await call_next(request)

    duration_ms = (time.time() - start_time) * 1000

    log_data = {
        "method": method,
        "path": path,
        "status_code": response.status_code,
        "duration_ms": round(duration_ms, 2),
    }

    if client_ip:
        log_data["client_ip"] = client_ip

    if response.status_code >= 500:
        logger.error("Request failed", **log_data)
    elif response.status_code >= 400:
        logger.warning("Request error", **log_data)
    else:
        logger.info("Request completed", **log_data)

    response.headers["X-Request-ID"] = request_id
    return response
