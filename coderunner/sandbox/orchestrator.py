"""
Pod lifecycle orchestrator.

Lifecycle per job:
  1. Build a unique job id
  2. Create the execution unit
  3. Poll its status on a fixed interval until a terminal classification:
     succeeded, failed, unrecoverable startup error, or timeout
  4. Fetch the unit's logs (best-effort, never changes the classification)
  5. Delete the unit, on every exit path

States: Created -> Polling -> {Succeeded, Failed, StartupError, TimedOut,
TransportError}. The timeout is measured from the create request on a monotonic
clock, and every cluster call is bounded by it as well as by ``call_timeout``.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from collections.abc import Iterable
from typing import TYPE_CHECKING

from structlog import get_logger

from coderunner.sandbox.client import LifecycleClient
from coderunner.sandbox.errors import JobNotFoundError, TransportError
from coderunner.sandbox.models import (
    JobOutcome,
    OutcomeStatus,
    PodPhase,
    PodStatus,
    SandboxJob,
    SandboxSpec,
)
from coderunner.sandbox.teardown import TeardownGuard

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

    from coderunner.config import SandboxConfig

logger = get_logger()

LOGS_UNAVAILABLE = "(logs unavailable)"
TRUNCATION_MARKER = "\n… [output truncated]"

DEFAULT_UNRECOVERABLE_REASONS = frozenset(
    {"CreateContainerConfigError", "ImagePullBackOff", "ErrImagePull", "InvalidImageName"}
)


def new_job_id(prefix: str = "code-runner") -> str:
    """Return a DNS-1123 name unique across concurrently live jobs."""
    return f"{prefix}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}"


class PodLifecycleOrchestrator:
    """
    Drives one execution unit from creation to a terminal ``JobOutcome``.

    The orchestrator holds configuration only; every ``run()`` call owns its
    job exclusively, so many runs can be in flight on the same instance.
    """

    def __init__(
        self,
        client: LifecycleClient,
        *,
        poll_interval: float = 0.5,
        max_wait: float = 10.0,
        unrecoverable_reasons: Iterable[str] = DEFAULT_UNRECOVERABLE_REASONS,
        max_output_size: int | None = None,
        job_prefix: str = "code-runner",
        call_timeout: float = 5.0,
    ) -> None:
        if poll_interval <= 0 or max_wait <= 0 or call_timeout <= 0:
            raise ValueError("poll_interval, max_wait and call_timeout must be positive")
        self._client = client
        self._poll_interval = poll_interval
        self._max_wait = max_wait
        self._unrecoverable = frozenset(unrecoverable_reasons)
        self._max_output_size = max_output_size
        self._job_prefix = job_prefix
        self._call_timeout = call_timeout

    @classmethod
    def from_config(
        cls, client: LifecycleClient, config: "SandboxConfig"
    ) -> "PodLifecycleOrchestrator":
        return cls(
            client,
            poll_interval=config.poll_interval,
            max_wait=config.max_wait,
            unrecoverable_reasons=config.unrecoverable_reasons,
            max_output_size=config.max_output_size,
            job_prefix=config.job_prefix,
            call_timeout=config.call_timeout,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def run(self, spec: SandboxSpec) -> JobOutcome:
        """Execute ``spec`` in a fresh unit and return its outcome."""
        job = SandboxJob(
            id=new_job_id(self._job_prefix),
            namespace=self._client.namespace,
            spec=spec,
        )
        log = logger.bind(job_id=job.id, image=spec.image)
        start_time = time.monotonic()

        async with TeardownGuard(self._client, job.id, timeout=self._call_timeout):
            try:
                outcome = await self._execute(job, log)
            except Exception as exc:
                log.error("Orchestration failed", error=str(exc), exc_info=True)
                outcome = JobOutcome(
                    status=OutcomeStatus.TRANSPORT_ERROR,
                    job_id=job.id,
                    error=str(exc),
                )

        outcome.duration = time.monotonic() - start_time
        log.info(
            "Job finished",
            status=outcome.status.value,
            duration=f"{outcome.duration:.2f}s",
            logs_degraded=outcome.logs_degraded,
        )
        return outcome

    def classify(self, job_id: str, status: PodStatus) -> JobOutcome | None:
        """Return the terminal outcome for ``status``, or None to keep polling."""
        if status.phase == PodPhase.SUCCEEDED:
            return JobOutcome(status=OutcomeStatus.SUCCEEDED, job_id=job_id)
        if status.phase == PodPhase.FAILED:
            return JobOutcome(status=OutcomeStatus.FAILED, job_id=job_id)
        if status.waiting_reason in self._unrecoverable:
            return JobOutcome(
                status=OutcomeStatus.STARTUP_ERROR,
                job_id=job_id,
                error=status.waiting_message or status.waiting_reason,
            )
        return None

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    async def _execute(self, job: SandboxJob, log: FilteringBoundLogger) -> JobOutcome:
        deadline = time.monotonic() + self._max_wait
        budget = self._call_budget(deadline)
        try:
            await asyncio.wait_for(self._client.create(job), timeout=budget)
        except asyncio.TimeoutError:
            log.error("Execution unit creation did not complete", timeout=budget)
            if budget < self._call_timeout:
                return JobOutcome(status=OutcomeStatus.TIMED_OUT, job_id=job.id)
            return JobOutcome(
                status=OutcomeStatus.TRANSPORT_ERROR,
                job_id=job.id,
                error="Timed out creating execution unit",
            )
        except TransportError as exc:
            log.error("Failed to create execution unit", error=exc.detail, status=exc.status)
            return JobOutcome(
                status=OutcomeStatus.TRANSPORT_ERROR,
                job_id=job.id,
                error=exc.detail,
            )

        log.info("Execution unit created", namespace=job.namespace)
        outcome = await self._poll(job, deadline, log)

        if outcome.has_logs:
            await self._attach_logs(job, outcome, log)
        return outcome

    async def _poll(
        self, job: SandboxJob, deadline: float, log: FilteringBoundLogger
    ) -> JobOutcome:
        last_error: TransportError | None = None
        attempts = 0

        while True:
            if time.monotonic() >= deadline:
                if last_error is not None:
                    return JobOutcome(
                        status=OutcomeStatus.TRANSPORT_ERROR,
                        job_id=job.id,
                        error=last_error.detail,
                    )
                log.warning("Execution timed out", max_wait=self._max_wait, attempts=attempts)
                return JobOutcome(status=OutcomeStatus.TIMED_OUT, job_id=job.id)

            attempts += 1
            budget = self._call_budget(deadline)
            try:
                status = await asyncio.wait_for(self._client.get_status(job.id), timeout=budget)
            except asyncio.TimeoutError:
                log.warning("Status poll did not complete", attempt=attempts)
                # Cut short by the deadline: a plain timeout, not a transport fault
                last_error = (
                    None if budget < self._call_timeout
                    else TransportError("Status poll timed out")
                )
            except JobNotFoundError as exc:
                log.warning("Execution unit disappeared while polling", error=exc.detail)
                return JobOutcome(
                    status=OutcomeStatus.TRANSPORT_ERROR,
                    job_id=job.id,
                    error=exc.detail,
                )
            except TransportError as exc:
                # Eventually consistent API: one failed poll is not terminal
                last_error = exc
                log.warning("Status poll failed", error=exc.detail, attempt=attempts)
            else:
                last_error = None
                outcome = self.classify(job.id, status)
                if outcome is not None:
                    log.info(
                        "Execution unit reached terminal state",
                        phase=status.phase.value,
                        reason=status.waiting_reason,
                        attempts=attempts,
                    )
                    return outcome

            remaining = deadline - time.monotonic()
            if remaining > 0:
                await asyncio.sleep(min(self._poll_interval, remaining))

    async def _attach_logs(
        self, job: SandboxJob, outcome: JobOutcome, log: FilteringBoundLogger
    ) -> None:
        try:
            logs = await asyncio.wait_for(
                self._client.get_logs(job.id), timeout=self._call_timeout
            )
        except Exception as exc:
            log.warning("Log retrieval failed", error=str(exc) or type(exc).__name__)
            outcome.logs = LOGS_UNAVAILABLE
            outcome.logs_degraded = True
            return

        max_size = self._max_output_size
        if max_size is not None and len(logs) > max_size:
            logs = logs[:max_size] + TRUNCATION_MARKER
            outcome.truncated = True
        outcome.logs = logs

    def _call_budget(self, deadline: float) -> float:
        """Timeout for one adapter call: never past the deadline."""
        return max(0.0, min(self._call_timeout, deadline - time.monotonic()))
