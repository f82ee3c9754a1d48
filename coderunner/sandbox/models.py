"""Data models for the code execution sandbox."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from coderunner.sandbox.errors import UnsupportedLanguage


class Language(str, Enum):
    """Languages that have a known execution image."""

    PYTHON = "python"
    NODE = "node"
    SHELL = "shell"

    @classmethod
    def parse(cls, value: str) -> "Language":
        """Resolve a caller-supplied language name (``sh`` is accepted for shell)."""
        if value == "sh":
            return cls.SHELL
        try:
            return cls(value)
        except ValueError:
            raise UnsupportedLanguage(value) from None


class PodPhase(str, Enum):
    """Lifecycle phase reported by the cluster for an execution unit."""

    PENDING = "Pending"
    RUNNING = "Running"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    UNKNOWN = "Unknown"

    @classmethod
    def parse(cls, value: str | None) -> "PodPhase":
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN


class OutcomeStatus(str, Enum):
    """Terminal classification of a job."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    STARTUP_ERROR = "startup_error"
    TIMED_OUT = "timed_out"
    TRANSPORT_ERROR = "transport_error"


@dataclass(frozen=True)
class SandboxRequest:
    """A validated request to run a snippet."""

    language: Language
    code: str


@dataclass(frozen=True)
class ResourceLimits:
    cpu: str = "500m"
    memory: str = "128Mi"


@dataclass(frozen=True)
class SandboxSpec:
    """Image and argument vector for one execution unit."""

    image: str
    entrypoint: tuple[str, ...]
    resource_limits: ResourceLimits = field(default_factory=ResourceLimits)


@dataclass(frozen=True)
class SandboxJob:
    """One execution unit owned by a single orchestration flow."""

    id: str
    namespace: str
    spec: SandboxSpec
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class PodStatus:
    """Snapshot of an execution unit's lifecycle state."""

    phase: PodPhase
    waiting_reason: str | None = None
    waiting_message: str | None = None


@dataclass
class JobOutcome:
    """Result of one orchestration; produced exactly once per job."""

    status: OutcomeStatus
    job_id: str
    logs: str = ""
    error: str | None = None
    duration: float = 0.0
    logs_degraded: bool = False
    truncated: bool = False

    @property
    def has_logs(self) -> bool:
        """Whether this classification carries the unit's output."""
        return self.status in (
            OutcomeStatus.SUCCEEDED,
            OutcomeStatus.FAILED,
            OutcomeStatus.STARTUP_ERROR,
        )
