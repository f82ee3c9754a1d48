import asyncio

import pytest

from coderunner.sandbox.errors import InvalidRequest, UnsupportedLanguage
from coderunner.sandbox.executor import CodeExecutor
from coderunner.sandbox.models import Language, OutcomeStatus, PodPhase, PodStatus


def test_validate_accepts_supported_request(sandbox_config, fake_client):
    executor = CodeExecutor(sandbox_config, fake_client)

    request = executor.validate("sh", "echo hi")

    assert request.language is Language.SHELL
    assert request.code == "echo hi"


def test_validate_rejects_long_code(sandbox_config, fake_client):
    executor = CodeExecutor(sandbox_config, fake_client)

    executor.validate("python", "x" * 1000)
    with pytest.raises(InvalidRequest, match="Invalid or too long code"):
        executor.validate("python", "x" * 1001)
    assert fake_client.calls == []


def test_validate_rejects_unknown_language(sandbox_config, fake_client):
    executor = CodeExecutor(sandbox_config, fake_client)

    with pytest.raises(UnsupportedLanguage):
        executor.validate("ruby", "puts 1")
    assert fake_client.calls == []


@pytest.mark.asyncio
async def test_execute_runs_orchestration(sandbox_config, make_client):
    client = make_client(statuses=[PodStatus(phase=PodPhase.SUCCEEDED)], logs="1\n")
    executor = CodeExecutor(sandbox_config, client)
    await executor.initialize()

    outcome = await executor.execute(executor.validate("python", "print(1)"))

    assert outcome.status == OutcomeStatus.SUCCEEDED
    assert outcome.logs == "1\n"
    assert client.initialized
    assert client.created[0].spec.entrypoint == ("python", "-c", "print(1)")
    assert executor.inflight == 0


@pytest.mark.asyncio
async def test_caller_cancellation_does_not_leak_unit(sandbox_config, make_client):
    client = make_client(statuses=[PodStatus(phase=PodPhase.SUCCEEDED)], logs="late")
    client.gate = asyncio.Event()
    executor = CodeExecutor(sandbox_config, client)

    caller = asyncio.create_task(executor.execute(executor.validate("python", "print(1)")))
    while not client.created:
        await asyncio.sleep(0.01)

    caller.cancel()
    with pytest.raises(asyncio.CancelledError):
        await caller
    assert executor.inflight == 1
    assert client.deleted == []

    client.gate.set()
    await executor.shutdown()

    assert client.operations[-1] == "delete"
    assert client.deleted == [client.created[0].id]
    assert executor.inflight == 0
    assert client.closed


@pytest.mark.asyncio
async def test_concurrent_executions_use_distinct_units(sandbox_config, make_client):
    client = make_client(statuses=[PodStatus(phase=PodPhase.SUCCEEDED)], logs="ok")
    executor = CodeExecutor(sandbox_config, client)
    request = executor.validate("node", "console.log('ok')")

    outcomes = await asyncio.gather(*(executor.execute(request) for _ in range(10)))

    assert all(o.status == OutcomeStatus.SUCCEEDED for o in outcomes)
    job_ids = [job.id for job in client.created]
    assert len(set(job_ids)) == 10
    assert sorted(client.deleted) == sorted(job_ids)
