from __future__ import annotations

import asyncio

import pytest

from coderunner.config import SandboxConfig
from coderunner.sandbox.client import LifecycleClient
from coderunner.sandbox.models import PodPhase, PodStatus, SandboxJob


class FakeLifecycleClient(LifecycleClient):
    """In-memory cluster that replays a scripted sequence of statuses.

    Each entry of ``statuses`` is returned (or raised, if it is an exception)
    by one ``get_status`` call; the last entry repeats forever. A ``STALL``
    entry makes that call hang, as does naming an operation in ``stalled``.
    """

    STALL = object()

    def __init__(
        self,
        statuses: list[PodStatus | BaseException] | None = None,
        logs: str | BaseException = "",
        create_error: BaseException | None = None,
        delete_error: BaseException | None = None,
        namespace: str = "sandbox-test",
        stalled: tuple[str, ...] = (),
    ) -> None:
        self._namespace = namespace
        self.statuses = list(statuses or [PodStatus(phase=PodPhase.SUCCEEDED)])
        self.logs = logs
        self.create_error = create_error
        self.delete_error = delete_error
        self.gate: asyncio.Event | None = None
        self.stalled = stalled

        self.calls: list[tuple[str, str]] = []
        self.created: list[SandboxJob] = []
        self.deleted: list[str] = []
        self.initialized = False
        self.closed = False

    @property
    def namespace(self) -> str:
        return self._namespace

    async def initialize(self) -> None:
        self.initialized = True

    async def close(self) -> None:
        self.closed = True

    async def create(self, job: SandboxJob) -> None:
        self.calls.append(("create", job.id))
        self.created.append(job)
        await self._stall_if("create")
        if self.create_error is not None:
            raise self.create_error

    async def get_status(self, job_id: str) -> PodStatus:
        self.calls.append(("get_status", job_id))
        await self._stall_if("get_status")
        if self.gate is not None:
            await self.gate.wait()
        item = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
        if item is self.STALL:
            await asyncio.Event().wait()
        if isinstance(item, BaseException):
            raise item
        return item

    async def get_logs(self, job_id: str) -> str:
        self.calls.append(("get_logs", job_id))
        await self._stall_if("get_logs")
        if isinstance(self.logs, BaseException):
            raise self.logs
        return self.logs

    async def delete(self, job_id: str) -> None:
        self.calls.append(("delete", job_id))
        self.deleted.append(job_id)
        await self._stall_if("delete")
        if self.delete_error is not None:
            raise self.delete_error

    async def _stall_if(self, operation: str) -> None:
        if operation in self.stalled:
            await asyncio.Event().wait()

    @property
    def operations(self) -> list[str]:
        return [name for name, _ in self.calls]


@pytest.fixture
def sandbox_config() -> SandboxConfig:
    return SandboxConfig(poll_interval=0.01, max_wait=0.3, drain_timeout=2.0)


@pytest.fixture
def fake_client() -> FakeLifecycleClient:
    return FakeLifecycleClient()


@pytest.fixture
def make_client() -> type[FakeLifecycleClient]:
    return FakeLifecycleClient
