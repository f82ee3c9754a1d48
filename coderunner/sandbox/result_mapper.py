"""Translate job outcomes into caller-facing HTTP status codes and bodies."""

from __future__ import annotations

from typing import Any

from coderunner.sandbox.errors import InvalidRequest
from coderunner.sandbox.models import JobOutcome, OutcomeStatus

NO_OUTPUT = "(no output)"


def map_outcome(outcome: JobOutcome) -> tuple[int, dict[str, Any]]:
    """Return ``(status_code, body)`` for a terminal outcome."""
    status = outcome.status

    if status == OutcomeStatus.SUCCEEDED:
        return 200, {"output": outcome.logs or NO_OUTPUT}

    if status == OutcomeStatus.FAILED:
        return 422, {"error": "Execution failed", "output": outcome.logs}

    if status == OutcomeStatus.STARTUP_ERROR:
        return 422, {"error": outcome.error or "Execution failed", "output": outcome.logs}

    if status == OutcomeStatus.TIMED_OUT:
        return 504, {"error": "Execution timed out"}

    return 500, {"error": "Failed to run code", "details": outcome.error}


def map_invalid_request(exc: InvalidRequest) -> tuple[int, dict[str, Any]]:
    """Return the 400 response for a request rejected before execution."""
    return 400, {"error": str(exc)}
