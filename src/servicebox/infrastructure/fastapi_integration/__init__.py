"""
FastAPI integration module.

Provides helpers and utilities for integrating servicebox with FastAPI.
"""

from .integration import (
    ScopedContainerMiddleware,
    container_lifespan,
    create_fastapi_dependency,
    create_scoped_dependency,
)

__all__ = [
    "create_fastapi_dependency",
    "create_scoped_dependency",
    "container_lifespan",
    "ScopedContainerMiddleware",
]
