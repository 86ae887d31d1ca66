"""
Application layer - Use cases and orchestration.

This layer contains the use cases that orchestrate domain objects.
It depends only on the Domain layer.
"""

from .circular_detector import CircularDependencyDetector
from .container import ServiceContainer
from .lifetime_manager import LifetimeManager, get_dispose_method
from .resolver import FactoryInvoker, implements
from .scope import ServiceScope

__all__ = [
    "ServiceContainer",
    "ServiceScope",
    "FactoryInvoker",
    "LifetimeManager",
    "CircularDependencyDetector",
    "get_dispose_method",
    "implements",
]
