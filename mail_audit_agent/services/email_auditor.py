"""Email auditor: query interpretation followed by Mimecast search."""

import time
from enum import Enum
from typing import Optional

import httpx
from openai import AsyncOpenAI
from tenacity import (
    AsyncRetrying,
    retry_if_result,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from mail_audit_agent.config.settings import Settings
from mail_audit_agent.models.search import SearchResult, utcnow
from mail_audit_agent.services.query_interpreter import QueryInterpreter
from mail_audit_agent.services.search_gateway import GatewayError, SearchGateway
from mail_audit_agent.utils.logging import get_logger
from mail_audit_agent.utils.metrics import AuditMetrics

logger = get_logger(__name__)


class AuditorState(Enum):
    """Auditor lifecycle states."""

    UNINITIALIZED = "uninitialized"
    READY = "ready"


class NotReadyError(Exception):
    """Query attempted before initialize() or after shutdown()."""

    pass


class AuditQueryError(Exception):
    """A query failed during interpretation or search."""

    def __init__(self, message: str, query: str) -> None:
        super().__init__(message)
        self.query = query

    @property
    def user_facing(self) -> bool:
        """True when the user should rephrase rather than retry later."""
        return bool(getattr(self.__cause__, "user_facing", False))


class EmailAuditor:
    """Runs natural-language queries against the Mimecast audit log."""

    def __init__(
        self,
        interpreter: QueryInterpreter,
        gateway: SearchGateway,
        metrics: Optional[AuditMetrics] = None,
        health_retries: int = 3,
        health_wait: Optional[wait_base] = None,
    ) -> None:
        """
        Initialize email auditor.

        Args:
            interpreter: Query interpreter
            gateway: Mimecast search gateway
            metrics: Recorder for query timings
            health_retries: Startup probe attempts
            health_wait: Backoff between startup probe attempts
        """
        self.interpreter = interpreter
        self.gateway = gateway
        self.metrics = metrics or AuditMetrics()
        self.health_retries = health_retries
        self.health_wait = health_wait or wait_exponential(multiplier=1, max=10)
        self._state = AuditorState.UNINITIALIZED

    @property
    def state(self) -> AuditorState:
        """Current lifecycle state."""
        return self._state

    async def _probe_gateway(self) -> bool:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.health_retries),
            wait=self.health_wait,
            retry=retry_if_result(lambda healthy: not healthy),
            retry_error_callback=lambda retry_state: False,
        )
        return await retrying(self.gateway.health_check)

    async def initialize(self) -> None:
        """
        Verify Mimecast reachability and become ready.

        Raises:
            GatewayError: If the health probe keeps failing
        """
        logger.info("Email auditor initializing", health_retries=self.health_retries)

        if not await self._probe_gateway():
            logger.error("Email auditor initialization failed", reason="mimecast_unhealthy")
            raise GatewayError("Mimecast health check failed")

        self._state = AuditorState.READY
        logger.info("Email auditor initialized")

    async def run_query(self, text: str) -> SearchResult:
        """
        Interpret a query and search Mimecast.

        Args:
            text: The user's message

        Returns:
            Timed search result

        Raises:
            NotReadyError: If initialize() has not succeeded
            AuditQueryError: If interpretation or search fails (cause chained)
        """
        if self._state != AuditorState.READY:
            raise NotReadyError("EmailAuditor not initialized. Call initialize() first.")

        logger.info("Processing query", query=text)
        start_time = time.time()

        try:
            params = await self.interpreter.interpret(text)
            records = await self.gateway.search(params)
        except Exception as e:
            duration_ms = round((time.time() - start_time) * 1000, 2)
            self.metrics.record("run_query", duration_ms, success=False, error_message=str(e))
            logger.error(
                "Query processing failed",
                query=text,
                duration_ms=duration_ms,
                error_type=type(e).__name__,
                error=str(e),
            )
            raise AuditQueryError(f"Failed to process query: {e}", query=text) from e

        elapsed_ms = int((time.time() - start_time) * 1000)
        result = SearchResult(
            query=text,
            parameters=params,
            records=tuple(records),
            elapsed_ms=elapsed_ms,
            completed_at=utcnow(),
        )
        self.metrics.record("run_query", elapsed_ms, success=True)

        logger.info(
            "Query processed",
            query=text,
            result_count=result.count,
            elapsed_ms=elapsed_ms,
        )
        return result

    async def health_check(self) -> bool:
        """Ready and Mimecast reachable; never raises."""
        if self._state != AuditorState.READY:
            return False
        return await self.gateway.health_check()

    async def shutdown(self) -> None:
        """Return to the uninitialized state."""
        logger.info("Email auditor shutting down")
        self._state = AuditorState.UNINITIALIZED

    async def close(self) -> None:
        """Release the model and HTTP clients."""
        await self.interpreter.aclose()
        await self.gateway.aclose()


def build_auditor(config: Settings) -> EmailAuditor:
    """
    Construct an auditor with its shared clients.

    Args:
        config: Application settings

    Returns:
        Uninitialized auditor
    """
    llm_client = AsyncOpenAI(
        api_key=config.llm.api_key.get_secret_value(),
        base_url=config.llm.base_url,
        timeout=config.llm.timeout_seconds,
        max_retries=0,
    )
    http_client = httpx.AsyncClient(
        base_url=config.mimecast.base_url.rstrip("/"),
        timeout=config.mimecast.timeout_seconds,
        headers={"Accept": "application/json"},
    )

    return EmailAuditor(
        interpreter=QueryInterpreter(llm_client, config.llm),
        gateway=SearchGateway(http_client, config.mimecast),
        metrics=AuditMetrics(),
        health_retries=config.mimecast.health_retries,
    )
