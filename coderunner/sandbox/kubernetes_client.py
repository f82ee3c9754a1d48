"""
Kubernetes lifecycle client.

Execution units are single-container Pods with ``restartPolicy: Never``.
The official client is synchronous, so every call is wrapped with
``asyncio.to_thread`` to keep the event loop responsive, and carries a
``_request_timeout`` so a stalled connection cannot pin a worker thread.
"""

from __future__ import annotations

import asyncio
import json
from typing import TYPE_CHECKING, Any, Callable

from kubernetes import client, config
from kubernetes.client.rest import ApiException
from structlog import get_logger
from urllib3.exceptions import HTTPError

from coderunner.sandbox.client import LifecycleClient
from coderunner.sandbox.errors import JobNotFoundError, TransportError
from coderunner.sandbox.models import PodPhase, PodStatus, SandboxJob

if TYPE_CHECKING:
    from coderunner.config import ClusterConfig, SandboxConfig

logger = get_logger()

MANAGED_BY_LABEL = "app.kubernetes.io/managed-by"
COMPONENT_LABEL = "app.kubernetes.io/component"


def describe_api_error(exc: ApiException) -> str:
    """Extract the control plane's ``message`` from an error body."""
    body = exc.body
    if body:
        try:
            payload = json.loads(body)
        except (TypeError, ValueError):
            payload = None
        if isinstance(payload, dict) and payload.get("message"):
            return str(payload["message"])
    return exc.reason or f"HTTP {exc.status}"


class KubernetesLifecycleClient(LifecycleClient):
    """
    ``LifecycleClient`` backed by the Kubernetes CoreV1 API.

    One instance is created at startup and shared by every request; it holds
    no per-request state.
    """

    def __init__(
        self,
        cluster: "ClusterConfig",
        sandbox: "SandboxConfig",
        core_api: client.CoreV1Api | None = None,
    ) -> None:
        self._cluster = cluster
        self._sandbox = sandbox
        self._core_api = core_api

    @property
    def namespace(self) -> str:
        return self._cluster.namespace

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Load cluster credentials and optionally create the namespace."""
        if self._core_api is None:
            await asyncio.to_thread(self._load_config)
            self._core_api = client.CoreV1Api()
            logger.info("Kubernetes client connected", namespace=self.namespace)

        if self._cluster.create_namespace:
            await self._ensure_namespace()

    async def close(self) -> None:
        if self._core_api is not None:
            await asyncio.to_thread(self._core_api.api_client.close)
            self._core_api = None
            logger.info("Kubernetes client closed")

    def _load_config(self) -> None:
        if self._cluster.kubeconfig is None:
            try:
                config.load_incluster_config()
                logger.info("Loaded in-cluster Kubernetes configuration")
                return
            except config.ConfigException:
                pass
        try:
            config.load_kube_config(
                config_file=self._cluster.kubeconfig,
                context=self._cluster.context,
            )
            logger.info("Loaded kubeconfig", path=self._cluster.kubeconfig or "default")
        except config.ConfigException as exc:
            raise RuntimeError(f"Failed to load Kubernetes configuration: {exc}") from exc

    async def _ensure_namespace(self) -> None:
        try:
            await self._call(self._api.read_namespace, name=self.namespace)
            return
        except JobNotFoundError:
            pass

        body = client.V1Namespace(metadata=client.V1ObjectMeta(name=self.namespace))
        try:
            await self._call(self._api.create_namespace, body=body)
            logger.info("Namespace created", namespace=self.namespace)
        except TransportError as exc:
            # Another replica may have created it concurrently
            if exc.status != 409:
                raise

    @property
    def _api(self) -> client.CoreV1Api:
        if self._core_api is None:
            raise RuntimeError("Kubernetes client not initialized. Call initialize() first.")
        return self._core_api

    async def _call(self, fn: Callable[..., Any], **kwargs: Any) -> Any:
        """Run a blocking API call in a thread and translate its errors."""
        try:
            return await asyncio.to_thread(
                fn, _request_timeout=self._cluster.request_timeout, **kwargs
            )
        except ApiException as exc:
            detail = describe_api_error(exc)
            if exc.status == 404:
                raise JobNotFoundError(kwargs.get("name", ""), detail) from exc
            raise TransportError(detail, status=exc.status) from exc
        except HTTPError as exc:
            raise TransportError(str(exc)) from exc

    # ------------------------------------------------------------------
    # Manifest
    # ------------------------------------------------------------------

    def build_pod(self, job: SandboxJob) -> client.V1Pod:
        limits = job.spec.resource_limits
        container = client.V1Container(
            name=self._sandbox.container_name,
            image=job.spec.image,
            command=list(job.spec.entrypoint),
            resources=client.V1ResourceRequirements(
                limits={"cpu": limits.cpu, "memory": limits.memory},
            ),
        )
        return client.V1Pod(
            api_version="v1",
            kind="Pod",
            metadata=client.V1ObjectMeta(
                name=job.id,
                namespace=job.namespace,
                labels={
                    MANAGED_BY_LABEL: "coderunner",
                    COMPONENT_LABEL: "sandbox",
                },
            ),
            spec=client.V1PodSpec(
                containers=[container],
                restart_policy="Never",
                automount_service_account_token=False,
            ),
        )

    # ------------------------------------------------------------------
    # LifecycleClient
    # ------------------------------------------------------------------

    async def create(self, job: SandboxJob) -> None:
        try:
            await self._call(
                self._api.create_namespaced_pod,
                namespace=job.namespace,
                body=self.build_pod(job),
            )
        except JobNotFoundError as exc:
            # 404 on create means the namespace is missing
            raise TransportError(exc.detail, status=404) from exc

    async def get_status(self, job_id: str) -> PodStatus:
        pod = await self._call(
            self._api.read_namespaced_pod_status,
            name=job_id,
            namespace=self.namespace,
        )
        status = pod.status
        if status is None:
            return PodStatus(phase=PodPhase.PENDING)

        waiting = None
        if status.container_statuses:
            state = status.container_statuses[0].state
            waiting = state.waiting if state else None

        return PodStatus(
            phase=PodPhase.parse(status.phase),
            waiting_reason=waiting.reason if waiting else None,
            waiting_message=waiting.message if waiting else None,
        )

    async def get_logs(self, job_id: str) -> str:
        logs = await self._call(
            self._api.read_namespaced_pod_log,
            name=job_id,
            namespace=self.namespace,
            container=self._sandbox.container_name,
        )
        return logs or ""

    async def delete(self, job_id: str) -> None:
        try:
            await self._call(
                self._api.delete_namespaced_pod,
                name=job_id,
                namespace=self.namespace,
                grace_period_seconds=self._cluster.delete_grace_period,
            )
        except JobNotFoundError:
            logger.debug("Pod already gone", job_id=job_id)
            return
        logger.debug("Pod deleted", job_id=job_id)
