"""
High-level code execution interface.

Orchestrates: input validation → spec building → pod lifecycle → outcome.
This is the single entry point consumed by the ``/run-code`` route.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from structlog import get_logger

from coderunner.sandbox.errors import InvalidRequest
from coderunner.sandbox.models import JobOutcome, Language, SandboxRequest
from coderunner.sandbox.orchestrator import PodLifecycleOrchestrator
from coderunner.sandbox.spec_builder import SandboxSpecBuilder

if TYPE_CHECKING:
    from coderunner.config import SandboxConfig
    from coderunner.sandbox.client import LifecycleClient

logger = get_logger()


class CodeExecutor:
    """
    Facade that combines validation and pod orchestration.

    Each execution runs in its own task, awaited through ``asyncio.shield``:
    when the caller goes away the run still reaches a terminal state and
    tears its unit down. In-flight runs are drained on shutdown.

    Usage::

        executor = CodeExecutor(config, client)
        await executor.initialize()
        request = executor.validate("python", "print(1)")
        outcome = await executor.execute(request)
        await executor.shutdown()
    """

    def __init__(self, config: "SandboxConfig", client: "LifecycleClient") -> None:
        self._config = config
        self._client = client
        self._builder = SandboxSpecBuilder(config)
        self._orchestrator = PodLifecycleOrchestrator.from_config(client, config)
        self._inflight: set[asyncio.Task[JobOutcome]] = set()
        self._initialized = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Connect the lifecycle client."""
        if self._initialized:
            return
        await self._client.initialize()
        self._initialized = True
        logger.info("CodeExecutor initialized", namespace=self._client.namespace)

    async def shutdown(self) -> None:
        """Wait for in-flight executions, then release the client."""
        if self._inflight:
            logger.info("Draining in-flight executions", count=len(self._inflight))
            _, pending = await asyncio.wait(
                set(self._inflight), timeout=self._config.drain_timeout
            )
            if pending:
                logger.warning("Executions still running at shutdown", count=len(pending))
        await self._client.close()
        self._initialized = False
        logger.info("CodeExecutor shut down")

    @property
    def inflight(self) -> int:
        return len(self._inflight)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def validate(self, language: str, code: str) -> SandboxRequest:
        """
        Check a raw request before any cluster interaction.

        Raises:
            InvalidRequest: ``code`` is longer than allowed.
            UnsupportedLanguage: ``language`` has no execution image.
        """
        if len(code) > self._config.max_code_length:
            raise InvalidRequest("Invalid or too long code")
        return SandboxRequest(language=Language.parse(language), code=code)

    async def execute(self, request: SandboxRequest) -> JobOutcome:
        """Run a validated request in a fresh execution unit."""
        spec = self._builder.build(request)

        task = asyncio.create_task(self._orchestrator.run(spec))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            logger.info("Caller went away, execution continues in background")
            raise
