"""Application layer - Scoped resolution contexts."""

import logging
from typing import TYPE_CHECKING, Any, Hashable, Optional, Type, TypeVar

from servicebox.application.lifetime_manager import LifetimeManager
from servicebox.domain import IServiceProvider, ObjectDisposedError

if TYPE_CHECKING:
    from servicebox.application.container import ServiceContainer

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ServiceScope(IServiceProvider):
    """A bounded resolution context created by ``ServiceContainer.begin_scope()``.

    Scoped services are built at most once per scope; singletons come from
    the parent container; transients are built fresh and, when disposable,
    released with the scope.

    Example:
        >>> with container.begin_scope() as scope:
        ...     unit_of_work = scope.resolve(UnitOfWork)
        ... # unit_of_work.dispose() has been called here
    """

    def __init__(self, container: "ServiceContainer") -> None:
        """Initialize the scope with its own instance cache.

        Args:
            container: The container owning registrations and singletons.
        """
        self._container = container
        self._lifetime_manager = LifetimeManager("scope", container.settings.track_transient_disposables)
        logger.debug("Scope opened")

    @property
    def container(self) -> "ServiceContainer":
        return self._container

    @property
    def disposed(self) -> bool:
        return self._lifetime_manager.disposed

    def resolve(self, service_key: Type[T]) -> T:
        """Resolve a key within this scope.

        Raises:
            ObjectDisposedError: If the scope has been disposed.
        """
        if self._lifetime_manager.disposed:
            raise ObjectDisposedError("Cannot use a disposed scope")
        return self._container._resolve(service_key, self, self._lifetime_manager)

    def try_resolve(self, service_key: Hashable, default: Optional[Any] = None) -> Any:
        if not self.is_registered(service_key):
            return default
        return self.resolve(service_key)

    def is_registered(self, service_key: Hashable) -> bool:
        return self._container.is_registered(service_key)

    def begin_scope(self) -> "ServiceScope":
        """Open another scope from the same container.

        The new scope is independent of this one: it shares singletons, not scoped instances.

        Raises:
            ObjectDisposedError: If this scope or its container has been disposed.
        """
        if self._lifetime_manager.disposed:
            raise ObjectDisposedError("Cannot use a disposed scope")
        return self._container.begin_scope()

    def dispose(self) -> None:
        """Release scoped and transient disposables built in this scope, in reverse construction order.

        Calling dispose() more than once is a no-op.

        Raises:
            DisposalAggregateError: If one or more instances failed to dispose.
        """
        if self._lifetime_manager.disposed:
            return
        logger.debug("Disposing scope")
        self._lifetime_manager.dispose()

    def __enter__(self) -> "ServiceScope":
        """Context manager entry - returns self."""
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> bool:
        """Context manager exit - dispose the scope."""
        self.dispose()
        return False
