"""
Domain layer - Core business logic and models.

This layer contains the fundamental rules and models for dependency injection.
It has no dependencies on other layers.
"""

from .enums import DuplicatePolicy, Lifetime
from .exceptions import (
    CircularDependencyError,
    ContractViolationError,
    DisposalAggregateError,
    DuplicateRegistrationError,
    ObjectDisposedError,
    RegistrationClosedError,
    ScopeRequiredError,
    ServiceBoxError,
    ServiceConstructionError,
    UnregisteredServiceError,
    key_name,
)
from .interfaces import IContainer, IDisposable, ILifetimeManager, IServiceProvider
from .models import Construction, Decoration, Registration
from .settings import ContainerSettings

__all__ = [
    # Enums
    "Lifetime",
    "DuplicatePolicy",
    # Exceptions
    "ServiceBoxError",
    "DuplicateRegistrationError",
    "UnregisteredServiceError",
    "CircularDependencyError",
    "ScopeRequiredError",
    "RegistrationClosedError",
    "ObjectDisposedError",
    "ServiceConstructionError",
    "ContractViolationError",
    "DisposalAggregateError",
    "key_name",
    # Interfaces
    "IDisposable",
    "IServiceProvider",
    "IContainer",
    "ILifetimeManager",
    # Models
    "Registration",
    "Decoration",
    "Construction",
    # Settings
    "ContainerSettings",
]
