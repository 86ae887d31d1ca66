"""
Infrastructure layer - External integrations.

This layer contains integrations with external frameworks and tools.
It depends on both Application and Domain layers. The FastAPI integration
is imported on demand so that fastapi stays an optional dependency.
"""

from . import testing

__all__ = [
    "testing",
]
