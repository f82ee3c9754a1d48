"""
Lifecycle client interface.

The orchestrator talks to the cluster only through this interface, so the
wire protocol stays inside the concrete adapters and tests can substitute an
in-memory cluster.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from coderunner.sandbox.models import PodStatus, SandboxJob


class LifecycleClient(ABC):
    """Create, observe, read and remove execution units in one namespace."""

    @property
    @abstractmethod
    def namespace(self) -> str:
        """Namespace execution units are created in."""

    async def initialize(self) -> None:
        """Connect to the control plane. Called once at startup."""

    async def close(self) -> None:
        """Release client resources. Called once at shutdown."""

    @abstractmethod
    async def create(self, job: SandboxJob) -> None:
        """Create the execution unit. Raises ``TransportError`` on failure."""

    @abstractmethod
    async def get_status(self, job_id: str) -> PodStatus:
        """
        Read the unit's phase and first container's waiting state.

        Raises ``JobNotFoundError`` when the unit does not exist and
        ``TransportError`` for any other failure.
        """

    @abstractmethod
    async def get_logs(self, job_id: str) -> str:
        """Return the combined output of the unit's container."""

    @abstractmethod
    async def delete(self, job_id: str) -> None:
        """
        Remove the unit. Succeeds silently when it is already gone;
        raises ``TransportError`` for any other failure.
        """
