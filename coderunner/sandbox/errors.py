"""Exceptions raised by the sandbox layer."""

from __future__ import annotations


class SandboxError(Exception):
    """Base class for sandbox failures."""


class InvalidRequest(SandboxError):
    """The submitted request was rejected before touching the cluster."""


class UnsupportedLanguage(InvalidRequest):
    """The requested language has no known execution image."""

    def __init__(self, language: str) -> None:
        super().__init__("Unsupported language")
        self.language = language


class TransportError(SandboxError):
    """A call against the cluster control plane failed."""

    def __init__(self, detail: str, status: int | None = None) -> None:
        super().__init__(detail)
        self.detail = detail
        self.status = status


class JobNotFoundError(TransportError):
    """The execution unit does not exist (never created or already removed)."""

    def __init__(self, job_id: str, detail: str | None = None) -> None:
        super().__init__(detail or f"Execution unit {job_id} not found", status=404)
        self.job_id = job_id
