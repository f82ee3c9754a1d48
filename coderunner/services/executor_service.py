"""
Executor service for dependency injection and lifecycle management.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from structlog import get_logger

from coderunner.config import Settings, get_settings
from coderunner.sandbox.client import LifecycleClient
from coderunner.sandbox.executor import CodeExecutor

logger = get_logger()

# Global executor instance
_executor: CodeExecutor | None = None


def create_lifecycle_client(settings: Settings) -> LifecycleClient:
    """Build the lifecycle client for the configured backend."""
    if settings.cluster.backend == "docker":
        from coderunner.sandbox.docker_client import DockerLifecycleClient

        return DockerLifecycleClient(settings.cluster)

    from coderunner.sandbox.kubernetes_client import KubernetesLifecycleClient

    return KubernetesLifecycleClient(settings.cluster, settings.sandbox)


async def get_executor() -> CodeExecutor:
    """Get the executor instance for dependency injection."""
    if _executor is None:
        raise RuntimeError("Executor not initialized. Use executor_lifespan.")
    return _executor


@asynccontextmanager
async def executor_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage executor lifecycle."""
    global _executor

    settings = get_settings()
    logger.info("Initializing executor...", backend=settings.cluster.backend)

    client = create_lifecycle_client(settings)
    executor = CodeExecutor(settings.sandbox, client)
    await executor.initialize()
    _executor = executor

    logger.info("Executor started successfully")

    try:
        yield
    finally:
        logger.info("Shutting down executor...")
        _executor = None
        await executor.shutdown()
        logger.info("Executor stopped")
