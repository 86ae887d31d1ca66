from typing import Any, Hashable, List, Optional, Sequence


def key_name(service_key: Hashable) -> str:
    """Return a readable name for a service key (class name or repr)."""
    return getattr(service_key, "__name__", None) or repr(service_key)


class ServiceBoxError(Exception):
    """Base exception for container-related errors."""


class DuplicateRegistrationError(ServiceBoxError):
    """Raised when a service key is registered twice under the FAIL policy.

    Attributes:
        service_key: The key that was already registered.
    """

    def __init__(self, service_key: Hashable) -> None:
        self.service_key = service_key
        super().__init__(
            f"Service {key_name(service_key)} is already registered. "
            "Pass replace=True or use DuplicatePolicy.REPLACE to overwrite."
        )


class UnregisteredServiceError(ServiceBoxError):
    """Raised when resolving or decorating a key that has no registration.

    Attributes:
        service_key: The key that could not be found.
    """

    def __init__(self, service_key: Hashable) -> None:
        self.service_key = service_key
        super().__init__(f"No registration found for service: {key_name(service_key)}")


class CircularDependencyError(ServiceBoxError):
    """Raised when a circular dependency is detected.

    Attributes:
        dependency_chain: List of service keys involved in the cycle,
            starting and ending with the same key.
    """

    def __init__(self, dependency_chain: List[Hashable]) -> None:
        self.dependency_chain = dependency_chain
        message = f"Circular dependency detected: {' -> '.join(key_name(key) for key in dependency_chain)}"
        super().__init__(message)


class ScopeRequiredError(ServiceBoxError):
    """Raised when a scoped service is resolved without an active scope.

    This occurs when:
    - Resolving a scoped service from the root container.
    - A singleton (always built by the root container) depends on a scoped service.

    Attributes:
        service_key: The scoped key that was requested.
    """

    def __init__(self, service_key: Hashable) -> None:
        self.service_key = service_key
        super().__init__(
            f"Service {key_name(service_key)} is registered as scoped and must be resolved "
            "from a scope created with begin_scope()"
        )


class RegistrationClosedError(ServiceBoxError):
    """Raised when registrations are changed after resolution has begun."""


class ObjectDisposedError(ServiceBoxError):
    """Raised when a disposed container or scope is used."""


class ServiceConstructionError(ServiceBoxError):
    """Raised when a factory or decorator fails while building a service.

    The original exception is chained as ``__cause__``.

    Attributes:
        service_key: The key being built.
        reason: Optional reason for the failure.
    """

    def __init__(self, service_key: Hashable, reason: Optional[str] = None) -> None:
        self.service_key = service_key
        self.reason = reason
        message = f"Cannot construct service: {key_name(service_key)}"
        if reason:
            message += f". Reason: {reason}"
        super().__init__(message)


class ContractViolationError(ServiceBoxError):
    """Raised when a built instance does not implement its service key.

    Attributes:
        service_key: The class key the instance should implement.
        instance: The offending instance.
    """

    def __init__(self, service_key: Hashable, instance: Any) -> None:
        self.service_key = service_key
        self.instance = instance
        super().__init__(
            f"Instance of {type(instance).__name__} does not implement service {key_name(service_key)}"
        )


class DisposalAggregateError(ServiceBoxError):
    """Raised after teardown when one or more instances failed to dispose.

    Disposal of the remaining instances always completes before this is raised.

    Attributes:
        errors: The exceptions raised by individual dispose calls, in disposal order.
    """

    def __init__(self, errors: Sequence[BaseException]) -> None:
        self.errors = list(errors)
        details = "; ".join(f"{type(error).__name__}: {error}" for error in self.errors)
        super().__init__(f"{len(self.errors)} instance(s) failed to dispose: {details}")
