"""Main FastAPI application entry point."""

import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from mail_audit_agent import __version__
from mail_audit_agent.api.middleware import (
    api_key_middleware,
    request_logging_middleware,
)
from mail_audit_agent.api.models import (
    DetailedHealthResponse,
    HealthResponse,
    ReadinessResponse,
)
from mail_audit_agent.api.routes import messages_router
from mail_audit_agent.config.settings import settings
from mail_audit_agent.services.email_auditor import (
    AuditorState,
    EmailAuditor,
    build_auditor,
)
from mail_audit_agent.services.search_gateway import GatewayError
from mail_audit_agent.utils.logging import configure_logging, get_logger

# Configure logging
configure_logging()
logger = get_logger(__name__)

STARTED_AT = time.time()


def create_app(auditor: Optional[EmailAuditor] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        auditor: Pre-built auditor; one is built from settings when omitted
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator:
        """Application lifespan manager."""
        logger.info("Starting Mail Audit Agent", env=settings.app.env)

        app.state.auditor = auditor if auditor is not None else build_auditor(settings)
        try:
            await app.state.auditor.initialize()
        except GatewayError as e:
            logger.error("Email auditor not ready", error=str(e))
            if settings.app.env == "production":
                await app.state.auditor.close()
                raise

        yield

        logger.info("Shutting down Mail Audit Agent")
        await app.state.auditor.shutdown()
        await app.state.auditor.close()
        logger.info("Application shutdown complete")

    app = FastAPI(
        title="Mail Audit Agent",
        description="Natural-language search of Mimecast blocked, held and rejected email",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.server.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Registered last so it runs first and binds the request id for auth logs
    app.middleware("http")(api_key_middleware)
    app.middleware("http")(request_logging_middleware)

    app.include_router(messages_router, prefix="/api")

    @app.get("/health", response_model=HealthResponse)
    async def health_check() -> HealthResponse:
        """Liveness check."""
        return HealthResponse(
            status="healthy",
            version=__version__,
            timestamp=datetime.now(timezone.utc),
            uptime_seconds=round(time.time() - STARTED_AT, 1),
        )

    @app.get(
        "/ready",
        response_model=ReadinessResponse,
        responses={503: {"model": ReadinessResponse, "description": "Auditor not ready"}},
    )
    async def readiness_check(request: Request, response: Response) -> ReadinessResponse:
        """Readiness check: auditor initialized and Mimecast reachable."""
        current = getattr(request.app.state, "auditor", None)
        ready = await current.health_check() if current else False

        if not ready:
            response.status_code = 503
        return ReadinessResponse(
            status="ready" if ready else "not ready",
            timestamp=datetime.now(timezone.utc),
            email_auditor=ready,
        )

    @app.get("/health/detailed", response_model=DetailedHealthResponse)
    async def detailed_health(request: Request) -> DetailedHealthResponse:
        """Auditor state, Mimecast reachability and query metrics."""
        current = getattr(request.app.state, "auditor", None)
        if current is None:
            return DetailedHealthResponse(
                status="degraded",
                version=__version__,
                auditor_state=AuditorState.UNINITIALIZED.value,
                mimecast=False,
            )

        mimecast_ok = await current.gateway.health_check()
        ready = current.state == AuditorState.READY and mimecast_ok
        return DetailedHealthResponse(
            status="healthy" if ready else "degraded",
            version=__version__,
            auditor_state=current.state.value,
            mimecast=mimecast_ok,
            metrics=current.metrics.summary(),
        )

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "mail_audit_agent.main:app",
        host="0.0.0.0",
        port=settings.server.port,
        reload=settings.app.debug,
        log_level=settings.app.log_level.lower(),
    )
