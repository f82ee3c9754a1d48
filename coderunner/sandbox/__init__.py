"""Ephemeral pod sandbox for running untrusted code snippets."""

from coderunner.sandbox.executor import CodeExecutor
from coderunner.sandbox.models import JobOutcome, Language, OutcomeStatus, SandboxRequest

__all__ = ["CodeExecutor", "JobOutcome", "Language", "OutcomeStatus", "SandboxRequest"]
