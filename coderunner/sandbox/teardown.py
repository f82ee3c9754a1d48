"""
Guaranteed removal of an execution unit.

``TeardownGuard`` is entered right before the unit is created and exited
when the orchestration span ends, whichever way it ends: a terminal
classification, an unexpected exception, or task cancellation. A cleanup
failure, including a delete that does not finish within ``timeout``, is
logged for operators and never replaces the job's outcome.
"""

from __future__ import annotations

import asyncio
from types import TracebackType

from structlog import get_logger

from coderunner.sandbox.client import LifecycleClient
from coderunner.sandbox.errors import JobNotFoundError

logger = get_logger()


class TeardownGuard:
    """Async context manager that deletes one execution unit exactly once."""

    def __init__(
        self, client: LifecycleClient, job_id: str, timeout: float | None = None
    ) -> None:
        self._client = client
        self.job_id = job_id
        self._timeout = timeout
        self.attempted = False
        self.succeeded = False

    async def __aenter__(self) -> "TeardownGuard":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> bool:
        await self.ensure_deleted()
        return False

    async def ensure_deleted(self) -> None:
        """Delete the unit; later calls are no-ops."""
        if self.attempted:
            return
        self.attempted = True

        try:
            await asyncio.wait_for(self._client.delete(self.job_id), timeout=self._timeout)
        except JobNotFoundError:
            # Never created, or already collected by the cluster
            logger.debug("Execution unit already removed", job_id=self.job_id)
        except Exception as exc:
            logger.error(
                "Failed to clean up execution unit",
                job_id=self.job_id,
                error=str(exc) or type(exc).__name__,
                exc_info=True,
            )
            return
        self.succeeded = True
