"""Services module."""

from .executor_service import executor_lifespan, get_executor

__all__ = ["executor_lifespan", "get_executor"]
