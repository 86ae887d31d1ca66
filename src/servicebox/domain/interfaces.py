from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Hashable, Iterable, Optional, Type, TypeVar

from servicebox.domain.enums import Lifetime
from servicebox.domain.models import Registration

T = TypeVar("T")


class IDisposable(ABC):
    """Contract for instances that hold resources released on teardown."""

    @abstractmethod
    def dispose(self) -> None:
        """Release the resources held by this instance."""


class IServiceProvider(ABC):
    """Abstract interface for anything that resolves services (container or scope)."""

    @abstractmethod
    def resolve(self, service_key: Type[T]) -> T:
        """Resolve and return an instance for the requested service key.

        Args:
            service_key: The key to resolve.
        """

    @abstractmethod
    def try_resolve(self, service_key: Hashable, default: Optional[Any] = None) -> Any:
        """Resolve the key, or return ``default`` when it is not registered.

        Args:
            service_key: The key to resolve.
            default: Value returned for unregistered keys.
        """

    @abstractmethod
    def is_registered(self, service_key: Hashable) -> bool:
        """Return whether the key has a registration."""

    @abstractmethod
    def begin_scope(self) -> "IServiceProvider":
        """Create and return a new scope with its own scoped-instance cache."""

    @abstractmethod
    def dispose(self) -> None:
        """Release every disposable instance owned by this provider."""


class IContainer(IServiceProvider):
    """Abstract interface for dependency injection container operations."""

    @abstractmethod
    def register(
        self,
        service_key: Hashable,
        factory: Callable[..., Any],
        lifetime: Lifetime = Lifetime.TRANSIENT,
        *,
        depends_on: Iterable[Hashable] = (),
        replace: bool = False,
    ) -> None:
        """Bind a service key to a factory and a lifetime.

        Args:
            service_key: The key to register.
            factory: Callable receiving the resolved ``depends_on`` keys positionally.
            lifetime: How long built instances live.
            depends_on: Keys resolved and passed to the factory.
            replace: Overwrite an existing registration.
        """

    @abstractmethod
    def decorate(
        self,
        service_key: Hashable,
        decorator_factory: Callable[..., Any],
        *,
        depends_on: Iterable[Hashable] = (),
    ) -> None:
        """Wrap the current registration of a key with a decorator.

        Args:
            service_key: The registered key to decorate.
            decorator_factory: Callable receiving the wrapped instance, then the resolved ``depends_on`` keys.
            depends_on: Extra keys passed to the decorator.
        """

    @abstractmethod
    def get_registration(self, service_key: Hashable) -> Registration:
        """Return the active registration for a key."""

    @abstractmethod
    def registrations(self) -> Dict[Hashable, Registration]:
        """Return a copy of the current registry."""


class ILifetimeManager(ABC):
    """Abstract interface for an instance cache with disposal tracking."""

    @abstractmethod
    def get_or_create(self, registration: Registration, factory: Callable[[], Any], track: bool = True) -> Any:
        """Get the cached instance or create a new one based on lifetime.

        Args:
            registration: The registration being resolved.
            factory: A callable creating a new instance (or a Construction) if needed.
            track: Whether disposable transients built by this call are tracked.
        """

    @abstractmethod
    def dispose(self) -> None:
        """Dispose tracked instances in reverse construction order."""
