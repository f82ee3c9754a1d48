"""
Docker lifecycle client for local development.

Each execution unit is a detached container named after the job id.
Container state is mapped onto the pod phase vocabulary so the orchestrator
handles both backends identically:

  created                  -> Pending
  running / restarting     -> Running
  exited / dead, code 0    -> Succeeded
  exited / dead, code != 0 -> Failed

A missing image is pulled inside ``create``, so the pull counts against the
orchestrator's deadline. An image that cannot be pulled is reported as a
waiting container with reason ``ErrImagePull``, which the orchestrator treats
as unrecoverable.

All Docker SDK calls are synchronous and wrapped with ``asyncio.to_thread``.
"""

from __future__ import annotations

import asyncio
import re
from typing import TYPE_CHECKING

import docker
from docker.errors import APIError, DockerException, ImageNotFound, NotFound
from structlog import get_logger

from coderunner.sandbox.client import LifecycleClient
from coderunner.sandbox.errors import JobNotFoundError, TransportError
from coderunner.sandbox.models import PodPhase, PodStatus, SandboxJob

if TYPE_CHECKING:
    from coderunner.config import ClusterConfig

logger = get_logger()

_QUANTITY = re.compile(r"^(\d+(?:\.\d+)?)([A-Za-z]*)$")
_MEMORY_UNITS = {
    "": 1,
    "k": 1000,
    "M": 1000**2,
    "G": 1000**3,
    "Ki": 1024,
    "Mi": 1024**2,
    "Gi": 1024**3,
}


def cpu_to_nano_cpus(quantity: str) -> int:
    """Convert a Kubernetes CPU quantity (``500m``, ``1``) to Docker nano CPUs."""
    match = _QUANTITY.match(quantity.strip())
    if not match or match.group(2) not in ("", "m"):
        raise ValueError(f"Invalid CPU quantity: {quantity!r}")
    value = float(match.group(1))
    if match.group(2) == "m":
        value /= 1000
    return int(value * 1_000_000_000)


def memory_to_bytes(quantity: str) -> int:
    """Convert a Kubernetes memory quantity (``128Mi``) to bytes."""
    match = _QUANTITY.match(quantity.strip())
    if not match or match.group(2) not in _MEMORY_UNITS:
        raise ValueError(f"Invalid memory quantity: {quantity!r}")
    return int(float(match.group(1)) * _MEMORY_UNITS[match.group(2)])


class DockerLifecycleClient(LifecycleClient):
    """
    ``LifecycleClient`` backed by the local Docker daemon.

    The client is long-lived (created once at application startup). The only
    state it keeps is the pull failure for jobs whose image never arrived,
    keyed by job id and cleared on delete.
    """

    def __init__(
        self,
        cluster: "ClusterConfig",
        docker_client: docker.DockerClient | None = None,
    ) -> None:
        self._cluster = cluster
        self._client = docker_client
        self._pull_failures: dict[str, str] = {}

    @property
    def namespace(self) -> str:
        return self._cluster.namespace

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Connect to the Docker daemon."""
        try:
            if self._client is None:
                self._client = await asyncio.to_thread(docker.from_env)
            await asyncio.to_thread(self._client.ping)
            logger.info("Docker daemon connected")
        except DockerException as exc:
            logger.error("Cannot connect to Docker", error=str(exc))
            raise RuntimeError(
                "Docker is not available. Install and start Docker to enable code execution."
            ) from exc

    async def close(self) -> None:
        if self._client:
            await asyncio.to_thread(self._client.close)
            self._client = None
            logger.info("Docker client closed")

    @property
    def _docker(self) -> docker.DockerClient:
        if self._client is None:
            raise RuntimeError("Docker client not initialized. Call initialize() first.")
        return self._client

    # ------------------------------------------------------------------
    # LifecycleClient
    # ------------------------------------------------------------------

    async def create(self, job: SandboxJob) -> None:
        try:
            await asyncio.to_thread(self._ensure_image, job.spec.image)
        except APIError as exc:
            logger.warning("Image pull failed", job_id=job.id, image=job.spec.image)
            self._pull_failures[job.id] = f"Failed to pull image {job.spec.image!r}: {exc}"
            return
        except DockerException as exc:
            raise TransportError(str(exc)) from exc

        try:
            container = await asyncio.to_thread(self._create_container, job)
            await asyncio.to_thread(container.start)
        except DockerException as exc:
            raise TransportError(str(exc), status=_status_of(exc)) from exc

    async def get_status(self, job_id: str) -> PodStatus:
        if job_id in self._pull_failures:
            return PodStatus(
                phase=PodPhase.PENDING,
                waiting_reason="ErrImagePull",
                waiting_message=self._pull_failures[job_id],
            )

        container = await self._get_container(job_id)
        state = container.attrs.get("State", {})
        status = container.status

        if status == "created":
            return PodStatus(phase=PodPhase.PENDING)
        if status in ("running", "restarting", "paused"):
            return PodStatus(phase=PodPhase.RUNNING)
        if status in ("exited", "dead"):
            exit_code = state.get("ExitCode", -1)
            return PodStatus(
                phase=PodPhase.SUCCEEDED if exit_code == 0 else PodPhase.FAILED
            )
        return PodStatus(phase=PodPhase.UNKNOWN)

    async def get_logs(self, job_id: str) -> str:
        container = await self._get_container(job_id)
        try:
            raw: bytes = await asyncio.to_thread(container.logs, stdout=True, stderr=True)
        except DockerException as exc:
            raise TransportError(str(exc), status=_status_of(exc)) from exc
        return raw.decode("utf-8", errors="replace")

    async def delete(self, job_id: str) -> None:
        self._pull_failures.pop(job_id, None)
        try:
            container = await self._get_container(job_id)
            await asyncio.to_thread(container.remove, force=True)
        except (JobNotFoundError, NotFound):
            logger.debug("Container already gone", job_id=job_id)
            return
        except DockerException as exc:
            raise TransportError(str(exc), status=_status_of(exc)) from exc
        logger.debug("Container removed", job_id=job_id)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _ensure_image(self, image: str) -> None:
        try:
            self._docker.images.get(image)
        except ImageNotFound:
            logger.info("Sandbox image not found, pulling", image=image)
            self._docker.images.pull(image)

    def _create_container(self, job: SandboxJob):  # noqa: ANN202
        limits = job.spec.resource_limits
        return self._docker.containers.create(
            image=job.spec.image,
            command=list(job.spec.entrypoint),
            name=job.id,
            detach=True,
            labels={"managed-by": "coderunner", "namespace": job.namespace},
            # Resource limits
            nano_cpus=cpu_to_nano_cpus(limits.cpu),
            mem_limit=memory_to_bytes(limits.memory),
            # Network isolation
            network_disabled=True,
            # Security hardening
            security_opt=["no-new-privileges"],
        )

    async def _get_container(self, job_id: str):  # noqa: ANN202
        try:
            container = await asyncio.to_thread(self._docker.containers.get, job_id)
        except NotFound as exc:
            raise JobNotFoundError(job_id) from exc
        except DockerException as exc:
            raise TransportError(str(exc), status=_status_of(exc)) from exc
        return container


def _status_of(exc: DockerException) -> int | None:
    if isinstance(exc, APIError):
        return exc.status_code
    return None
