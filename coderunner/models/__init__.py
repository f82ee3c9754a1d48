"""API schemas."""

from .schemas import ErrorResponse, RunCodeRequest, RunCodeResponse

__all__ = ["ErrorResponse", "RunCodeRequest", "RunCodeResponse"]
