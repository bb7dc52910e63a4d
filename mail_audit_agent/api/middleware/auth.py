"""Authentication middleware for API key validation."""

import hmac
from typing import Callable

from fastapi import Request, status
from fastapi.responses import JSONResponse

from mail_audit_agent.config.settings import settings
from mail_audit_agent.utils.logging import get_logger

logger = get_logger(__name__)


async def api_key_middleware(request: Request, call_next: Callable):
    """
    Validate API key for the chat webhook.

    Requires X-API-Key header matching the configured bot API key.
    Only paths under /api/ are protected.
    """
    if not request.url.path.startswith("/api/"):
        return await call_next(request)

    api_key = request.headers.get("X-API-Key")

    if not api_key:
        logger.warning(
            "Missing API key",
            path=request.url.path,
            client_ip=request.client.host if request.client else None,
        )
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"detail": "Missing API key. Provide X-API-Key header."},
        )

    expected_key = settings.server.bot_api_key.get_secret_value()
    if not hmac.compare_digest(api_key.encode("utf-8"), expected_key.encode("utf-8")):
        logger.warning(
            "Invalid API key",
            path=request.url.path,
            client_ip=request.client.host if request.client else None,
        )
        return JSONResponse(
            status_code=status.HTTP_403_FORBIDDEN,
            content={"detail": "Invalid API key"},
        )

    return await call_next(request)
