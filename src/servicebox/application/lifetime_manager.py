import logging
import threading
from typing import Any, Callable, Dict, Hashable, Iterable, List, Optional

from servicebox.domain import (
    Construction,
    DisposalAggregateError,
    IDisposable,
    ILifetimeManager,
    Lifetime,
    ObjectDisposedError,
    Registration,
    key_name,
)

logger = logging.getLogger(__name__)


def get_dispose_method(instance: Any) -> Optional[Callable[[], Any]]:
    """Return the release callable of a disposable instance, or None.

    An instance is disposable when it is an IDisposable or exposes a callable
    ``dispose()`` or ``close()``, checked in that order.
    """
    if isinstance(instance, IDisposable):
        return instance.dispose
    for name in ("dispose", "close"):
        method = getattr(instance, name, None)
        if callable(method):
            return method
    return None


def as_construction(result: Any) -> Construction:
    """Normalize a factory result to a Construction owning the returned object."""
    if isinstance(result, Construction):
        return result
    return Construction(instance=result, built=(result,))


class LifetimeManager(ILifetimeManager):
    """Instance cache and disposal tracker for one provider (the root container or a scope).

    The root container's manager caches singletons, a scope's manager caches
    scoped instances. Both build transients fresh. Each tracks the disposable
    objects its factories built, unless a transient is resolved with
    ``track=False``. Construction is guarded by a reentrant lock so that at
    most one instance is built per key, even under concurrent first resolution.

    Attributes:
        _name: Label used in log messages ("container" or "scope").
        _instances: Cache of singleton or scoped instances by service key.
        _disposables: Disposable instances in construction order.
        _track_transients: Whether disposable transients are tracked.
    """

    def __init__(self, name: str = "container", track_transients: bool = True) -> None:
        """Initialize the lifetime manager with an empty cache.

        Args:
            name: Label used in log messages.
            track_transients: Whether disposable transient instances are tracked for disposal.
        """
        self._name = name
        self._track_transients = track_transients
        self._instances: Dict[Hashable, Any] = {}
        self._disposables: List[Any] = []
        self._tracked_ids: set = set()
        self._lock = threading.RLock()
        self._disposed = False

    @property
    def disposed(self) -> bool:
        return self._disposed

    def get_or_create(self, registration: Registration, factory: Callable[[], Any], track: bool = True) -> Any:
        """Get the cached instance or create a new one based on lifetime.

        The factory may return a Construction naming every object it built
        (the inner instance and each decorator layer). Any other return value
        is taken as a single object built by the factory.

        Args:
            registration: Registration containing the lifetime and ownership info.
            factory: Function to create a new instance if needed.
            track: Whether disposable transients built by this call are tracked.
                Singleton and scoped instances are always tracked.

        Returns:
            Instance according to lifetime rules:
            - Singleton/Scoped: Returns the cached instance or creates and caches a new one
            - Transient: Always creates a new instance

        Raises:
            ObjectDisposedError: If this manager has already been disposed.
        """
        service_key = registration.service_key
        self._check_not_disposed()

        if registration.lifetime == Lifetime.TRANSIENT:
            construction = as_construction(factory())
            if track and self._track_transients:
                self._track(registration, construction.built)
            return construction.instance

        with self._lock:
            self._check_not_disposed()
            if service_key not in self._instances:
                construction = as_construction(factory())
                self._instances[service_key] = construction.instance
                self._track(registration, construction.built)
                logger.debug("Created %s instance of %s in %s", registration.lifetime, key_name(service_key), self._name)
            return self._instances[service_key]

    def _track(self, registration: Registration, built: Iterable[Any]) -> None:
        """Remember the disposable objects of one construction so that dispose() releases them."""
        if not registration.owned:
            return
        with self._lock:
            self._check_not_disposed()
            for instance in built:
                if get_dispose_method(instance) is None or id(instance) in self._tracked_ids:
                    continue
                self._tracked_ids.add(id(instance))
                self._disposables.append(instance)

    def _check_not_disposed(self) -> None:
        if self._disposed:
            raise ObjectDisposedError(f"Cannot use a disposed {self._name}")

    def dispose(self) -> None:
        """Dispose tracked instances in reverse construction order.

        Every instance is released even if an earlier release fails; failures
        are logged and raised together afterwards. Calling dispose() again is a no-op.

        Raises:
            DisposalAggregateError: If one or more instances failed to dispose.
        """
        with self._lock:
            if self._disposed:
                return
            self._disposed = True
            disposables = list(reversed(self._disposables))
            self._disposables.clear()
            self._tracked_ids.clear()
            self._instances.clear()

        errors: List[BaseException] = []
        for instance in disposables:
            dispose_method = get_dispose_method(instance)
            if dispose_method is None:
                continue
            try:
                dispose_method()
            except Exception as e:
                logger.error("Failed to dispose %s in %s", type(instance).__name__, self._name, exc_info=True)
                errors.append(e)

        logger.debug("Disposed %d instance(s) in %s", len(disposables) - len(errors), self._name)
        if errors:
            raise DisposalAggregateError(errors)
