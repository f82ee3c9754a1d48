"""API module."""

from .run import router as run_router

__all__ = ["run_router"]
