"""
Request and response schemas for the HTTP API.
"""

from pydantic import BaseModel, Field


class RunCodeRequest(BaseModel):
    """Body of ``POST /run-code``."""

    language: str = Field(description="One of python, node, shell", examples=["python"])
    code: str = Field(description="Source code to execute", examples=["print(1)"])


class RunCodeResponse(BaseModel):
    """Successful execution."""

    output: str = Field(description="Combined stdout/stderr of the execution unit")


class ErrorResponse(BaseModel):
    """Error response model."""

    error: str = Field(description="Stable error message")
    output: str | None = Field(default=None, description="Captured output, when available")
    details: str | None = Field(default=None, description="Cluster error detail")
