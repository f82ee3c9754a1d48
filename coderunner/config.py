"""
Configuration management for the code runner service.
Supports environment variables and .env files.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SandboxConfig(BaseSettings):
    """Execution unit and orchestration settings."""

    model_config = SettingsConfigDict(env_prefix="SANDBOX_")

    # Request limits
    max_code_length: int = Field(
        default=1000,
        description="Maximum number of characters accepted in a code snippet"
    )
    max_output_size: int = Field(
        default=64 * 1024,
        description="Maximum characters of captured output returned to the caller"
    )

    # Polling policy
    poll_interval: float = Field(
        default=0.5,
        gt=0.0,
        description="Seconds between two status polls"
    )
    max_wait: float = Field(
        default=10.0,
        gt=0.0,
        description="Seconds after creation before a job is declared timed out"
    )
    call_timeout: float = Field(
        default=5.0,
        gt=0.0,
        description="Upper bound in seconds on a single create, status, log or delete call"
    )
    unrecoverable_reasons: list[str] = Field(
        default=[
            "CreateContainerConfigError",
            "ImagePullBackOff",
            "ErrImagePull",
            "InvalidImageName",
        ],
        description="Container waiting reasons that never resolve on their own"
    )

    # Execution unit shape
    job_prefix: str = Field(default="code-runner", description="Execution unit name prefix")
    container_name: str = Field(default="runner", description="Name of the single container")
    cpu_limit: str = Field(default="500m", description="CPU limit (Kubernetes quantity)")
    memory_limit: str = Field(default="128Mi", description="Memory limit (Kubernetes quantity)")

    # Images
    python_image: str = Field(default="python:3.11")
    node_image: str = Field(default="node:22")
    shell_image: str = Field(default="alpine")

    drain_timeout: float = Field(
        default=15.0,
        description="Seconds to wait for in-flight executions at shutdown"
    )


class ClusterConfig(BaseSettings):
    """Cluster control plane configuration."""

    model_config = SettingsConfigDict(env_prefix="CLUSTER_")

    backend: Literal["kubernetes", "docker"] = Field(
        default="kubernetes",
        description="Where execution units are provisioned"
    )
    namespace: str = Field(default="default", description="Namespace for execution units")
    kubeconfig: str | None = Field(
        default=None,
        description="Path to a kubeconfig file (default location when unset)"
    )
    context: str | None = Field(default=None, description="kubeconfig context to use")
    create_namespace: bool = Field(
        default=False,
        description="Create the namespace at startup when it does not exist"
    )
    request_timeout: float = Field(
        default=5.0,
        gt=0.0,
        description="Client-side HTTP timeout in seconds for each Kubernetes API call"
    )
    delete_grace_period: int = Field(
        default=0,
        ge=0,
        description="Grace period in seconds passed on deletion"
    )


class ServerConfig(BaseSettings):
    """Server configuration."""

    model_config = SettingsConfigDict(env_prefix="SERVER_")

    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=3000, description="Server port")
    workers: int = Field(default=1, description="Number of workers")
    cors_origins: list[str] = Field(
        default=["http://localhost:5173", "http://localhost:3000"],
        description="Allowed CORS origins"
    )


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__"
    )

    app_name: str = "Code Runner"
    app_version: str = "1.0.0"
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = Field(default=False, description="Debug mode")

    sandbox: SandboxConfig = Field(default_factory=SandboxConfig)
    cluster: ClusterConfig = Field(default_factory=ClusterConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)

    @field_validator("debug", mode="before")
    @classmethod
    def validate_debug(cls, v: str | bool) -> bool:
        if isinstance(v, bool):
            return v
        if isinstance(v, str):
            return v.lower() in ("true", "1", "yes", "on")
        return False


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
