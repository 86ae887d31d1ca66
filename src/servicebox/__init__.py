"""
servicebox: Explicit dependency injection container with lifetime management.

Public API exports for the servicebox package.
"""

# Application exports
from servicebox.application.container import ServiceContainer
from servicebox.application.scope import ServiceScope

# Domain exports
from servicebox.domain.enums import DuplicatePolicy, Lifetime
from servicebox.domain.exceptions import (
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
)
from servicebox.domain.interfaces import IDisposable, IServiceProvider
from servicebox.domain.settings import ContainerSettings

__version__ = "0.1.0"

__all__ = [
    # Container
    "ServiceContainer",
    "ServiceScope",
    "IServiceProvider",
    "IDisposable",
    # Configuration
    "ContainerSettings",
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
]
