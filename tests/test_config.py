from coderunner.config import Settings
from coderunner.sandbox.docker_client import DockerLifecycleClient
from coderunner.sandbox.kubernetes_client import KubernetesLifecycleClient
from coderunner.services.executor_service import create_lifecycle_client


def test_defaults_match_service_contract():
    settings = Settings(_env_file=None)

    assert settings.sandbox.max_code_length == 1000
    assert settings.sandbox.poll_interval == 0.5
    assert settings.sandbox.max_wait == 10.0
    assert settings.sandbox.call_timeout == 5.0
    assert settings.cluster.request_timeout == 5.0
    assert settings.sandbox.container_name == "runner"
    assert "ImagePullBackOff" in settings.sandbox.unrecoverable_reasons
    assert settings.cluster.backend == "kubernetes"
    assert settings.cluster.namespace == "default"
    assert settings.server.port == 3000


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("SANDBOX_MAX_WAIT", "2.5")
    monkeypatch.setenv("CLUSTER_NAMESPACE", "codespaces")
    monkeypatch.setenv("CLUSTER_BACKEND", "docker")

    settings = Settings(_env_file=None)

    assert settings.sandbox.max_wait == 2.5
    assert settings.cluster.namespace == "codespaces"
    assert settings.cluster.backend == "docker"


def test_debug_accepts_strings():
    assert Settings(_env_file=None, debug="yes").debug is True
    assert Settings(_env_file=None, debug="off").debug is False


def test_backend_selects_client(monkeypatch):
    monkeypatch.setenv("CLUSTER_BACKEND", "docker")
    assert isinstance(create_lifecycle_client(Settings(_env_file=None)), DockerLifecycleClient)

    monkeypatch.setenv("CLUSTER_BACKEND", "kubernetes")
    assert isinstance(create_lifecycle_client(Settings(_env_file=None)), KubernetesLifecycleClient)
