import logging
import threading
from typing import Any, Callable, Dict, Hashable, Iterable, Optional, Type, TypeVar

from servicebox.application.circular_detector import CircularDependencyDetector
from servicebox.application.lifetime_manager import LifetimeManager
from servicebox.application.resolver import FactoryInvoker
from servicebox.application.scope import ServiceScope
from servicebox.domain import (
    Construction,
    ContainerSettings,
    Decoration,
    DuplicatePolicy,
    DuplicateRegistrationError,
    IContainer,
    IServiceProvider,
    Lifetime,
    ObjectDisposedError,
    Registration,
    RegistrationClosedError,
    ScopeRequiredError,
    UnregisteredServiceError,
    key_name,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

Builder = Callable[[IServiceProvider], Any]


class ServiceContainer(IContainer):
    """Main dependency injection container.

    Maps service keys to registrations and resolves instance graphs honouring
    transient, singleton and scoped lifetimes. Registrations are explicit:
    a factory plus the keys it depends on, or a builder receiving the provider.

    Registrations are frozen once the container has served its first resolution
    or opened its first scope. Singletons are always built against the root
    container, so a singleton can never capture a scoped service. A transient
    injected into a singleton lives as long as the singleton (captive
    dependency); this is kept and reported with a warning.

    Attributes:
        _settings: Behaviour switches (duplicate policy, contract checks, ...).
        _registry: Dictionary mapping service keys to their registrations.
        _invoker: Component building instances from registrations.
        _lifetime_manager: Singleton cache and disposal tracker of the root container.
        _circular_detector: Component detecting circular dependencies, shared with scopes.
    """

    def __init__(self, settings: Optional[ContainerSettings] = None) -> None:
        """Initialize the container with an empty registry.

        Args:
            settings: Container settings. Read from ``SERVICEBOX_*`` environment variables when omitted.
        """
        self._settings = settings if settings is not None else ContainerSettings()
        self._registry: Dict[Hashable, Registration] = {}
        self._invoker = FactoryInvoker(validate_contracts=self._settings.validate_contracts)
        self._lifetime_manager = LifetimeManager("container", self._settings.track_transient_disposables)
        self._circular_detector = CircularDependencyDetector()
        self._lock = threading.RLock()
        self._closed = False

    @property
    def settings(self) -> ContainerSettings:
        return self._settings

    def _register(self, registration: Registration, replace: bool = False) -> None:
        """Internal registration method with validation.

        Args:
            registration: The registration to store.
            replace: Overwrite an existing registration regardless of the duplicate policy.

        Raises:
            RegistrationClosedError: If resolution has already begun.
            DuplicateRegistrationError: If the key is registered and replacing is not allowed.
        """
        service_key = registration.service_key
        with self._lock:
            self._check_open()
            if service_key in self._registry:
                if not replace and self._settings.duplicate_policy == DuplicatePolicy.FAIL:
                    raise DuplicateRegistrationError(service_key)
                logger.debug("Replacing registration of %s", key_name(service_key))
            self._registry[service_key] = registration

        logger.debug("Registered %s as %s", key_name(service_key), registration.lifetime)

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
            service_key: The key to register, usually an abstract class or Protocol.
            factory: Callable (usually the implementation class) receiving the
                resolved ``depends_on`` keys positionally.
            lifetime: How long built instances live.
            depends_on: Keys resolved, in order, and passed to the factory.
            replace: Overwrite an existing registration even under DuplicatePolicy.FAIL.

        Raises:
            DuplicateRegistrationError: If the key is already registered and replacing is not allowed.
            RegistrationClosedError: If resolution has already begun.

        Example:
            >>> container.register(IOrderNotifier, EmailOrderNotifier, Lifetime.SINGLETON)
            >>> container.register(
            ...     IOrderService, OrderService, Lifetime.SINGLETON, depends_on=[IOrderNotifier]
            ... )
        """
        self._register(
            Registration(
                service_key=service_key,
                factory=factory,
                dependencies=tuple(depends_on),
                lifetime=lifetime,
            ),
            replace=replace,
        )

    def register_transient(
        self,
        service_key: Hashable,
        factory: Callable[..., Any],
        *,
        depends_on: Iterable[Hashable] = (),
        replace: bool = False,
    ) -> None:
        """Register a service built fresh on every resolution."""
        self.register(service_key, factory, Lifetime.TRANSIENT, depends_on=depends_on, replace=replace)

    def register_singleton(
        self,
        service_key: Hashable,
        factory: Callable[..., Any],
        *,
        depends_on: Iterable[Hashable] = (),
        replace: bool = False,
    ) -> None:
        """Register a service built once per container."""
        self.register(service_key, factory, Lifetime.SINGLETON, depends_on=depends_on, replace=replace)

    def register_scoped(
        self,
        service_key: Hashable,
        factory: Callable[..., Any],
        *,
        depends_on: Iterable[Hashable] = (),
        replace: bool = False,
    ) -> None:
        """Register a service built once per scope."""
        self.register(service_key, factory, Lifetime.SCOPED, depends_on=depends_on, replace=replace)

    def register_instance(self, service_key: Hashable, instance: Any, *, replace: bool = False) -> None:
        """Bind a pre-built instance as a singleton.

        The container does not own the instance and never disposes it.

        Args:
            service_key: The key to register.
            instance: The instance returned for every resolution.
            replace: Overwrite an existing registration even under DuplicatePolicy.FAIL.
        """
        self._register(
            Registration(
                service_key=service_key,
                factory=lambda: instance,
                lifetime=Lifetime.SINGLETON,
                owned=False,
            ),
            replace=replace,
        )

    def _register_builders(self, dependencies: Dict[Hashable, Builder], lifetime: Lifetime) -> None:
        for service_key, builder in dependencies.items():
            self._register(
                Registration(
                    service_key=service_key,
                    factory=builder,
                    receives_provider=True,
                    lifetime=lifetime,
                )
            )

    def register_singletons(self, dependencies: Dict[Hashable, Builder]) -> None:
        """Register multiple singleton services at once.

        Args:
            dependencies: Dictionary mapping service keys to builder functions.
                         Each builder receives the provider and returns an instance.

        Example:
            >>> container.register_singletons({
            ...     DatabaseConfig: lambda c: DatabaseConfig.from_env(),
            ...     DatabaseConnection: lambda c: DatabaseConnection(c.resolve(DatabaseConfig)),
            ... })
        """
        self._register_builders(dependencies, Lifetime.SINGLETON)

    def register_transients(self, dependencies: Dict[Hashable, Builder]) -> None:
        """Register multiple transient services at once.

        Args:
            dependencies: Dictionary mapping service keys to builder functions.
                         Each builder receives the provider and returns an instance.
        """
        self._register_builders(dependencies, Lifetime.TRANSIENT)

    def register_scoped_services(self, dependencies: Dict[Hashable, Builder]) -> None:
        """Register multiple scoped services at once.

        Args:
            dependencies: Dictionary mapping service keys to builder functions.
                         Each builder receives the resolving scope and returns an instance.
        """
        self._register_builders(dependencies, Lifetime.SCOPED)

    def decorate(
        self,
        service_key: Hashable,
        decorator_factory: Callable[..., Any],
        *,
        depends_on: Iterable[Hashable] = (),
    ) -> None:
        """Wrap the current registration of a key with a decorator.

        Resolution builds the original instance, then wraps it with each
        decorator in the order they were added, so the last one is outermost.
        The decorated instance is what gets cached for singletons and scoped services.

        Args:
            service_key: The registered key to decorate.
            decorator_factory: Callable receiving the wrapped instance, then the
                resolved ``depends_on`` keys.
            depends_on: Extra keys passed to the decorator.

        Raises:
            UnregisteredServiceError: If the key has no registration.
            RegistrationClosedError: If resolution has already begun.

        Example:
            >>> container.decorate(IOrderNotifier, LoggedOrderNotifier)
        """
        decoration = Decoration(factory=decorator_factory, dependencies=tuple(depends_on))
        with self._lock:
            self._check_open()
            if service_key not in self._registry:
                raise UnregisteredServiceError(service_key)
            self._registry[service_key] = self._registry[service_key].with_decoration(decoration)

        logger.debug("Decorated registration of %s", key_name(service_key))

    def resolve(self, service_key: Type[T]) -> T:
        """Resolve and return an instance for the specified key.

        Args:
            service_key: The key to resolve.

        Returns:
            Instance honouring the key's lifetime, with all dependencies injected.

        Raises:
            UnregisteredServiceError: If the key (or one of its dependencies) is not registered.
            CircularDependencyError: If a circular dependency is detected.
            ScopeRequiredError: If a scoped service is resolved outside a scope.
            ServiceConstructionError: If a factory or decorator raises.
            ObjectDisposedError: If the container has been disposed.

        Example:
            >>> order_service = container.resolve(IOrderService)
        """
        self._check_not_disposed()
        self._closed = True
        return self._resolve(service_key, self, None)

    def try_resolve(self, service_key: Hashable, default: Optional[Any] = None) -> Any:
        """Resolve the key, or return ``default`` when it is not registered.

        Only the requested key is checked; errors from its dependencies propagate.
        """
        if not self.is_registered(service_key):
            return default
        return self.resolve(service_key)

    def _resolve(
        self,
        service_key: Hashable,
        provider: IServiceProvider,
        scoped_manager: Optional[LifetimeManager],
    ) -> Any:
        """Resolve a key on behalf of a provider.

        Args:
            service_key: The key to resolve.
            provider: The container or scope the resolution started from.
            scoped_manager: The scope's instance cache, or None at the root.
        """
        registration = self._registry.get(service_key)
        if registration is None:
            raise UnregisteredServiceError(service_key)

        lifetime = registration.lifetime
        self._circular_detector.push(service_key, lifetime)

        try:
            if lifetime == Lifetime.SINGLETON:
                instance = self._lifetime_manager.get_or_create(
                    registration,
                    lambda: self._construct(registration, self),
                )

            elif lifetime == Lifetime.SCOPED:
                if scoped_manager is None:
                    raise ScopeRequiredError(service_key)
                instance = scoped_manager.get_or_create(
                    registration,
                    lambda: self._construct(registration, provider),
                )

            else:
                # Lifetime.TRANSIENT
                owner = self._circular_detector.nearest(Lifetime.SINGLETON)
                if owner is not None and self._settings.warn_on_captive_dependency:
                    logger.warning(
                        "Transient service %s is captured by singleton %s and will live as long as it",
                        key_name(service_key),
                        key_name(owner),
                    )
                if scoped_manager is not None:
                    instance = scoped_manager.get_or_create(
                        registration,
                        lambda: self._construct(registration, provider),
                    )
                else:
                    # At the root only captured transients are tracked; others belong to the caller
                    instance = self._lifetime_manager.get_or_create(
                        registration,
                        lambda: self._construct(registration, provider),
                        track=owner is not None,
                    )

        finally:
            self._circular_detector.pop()

        self._circular_detector.record(instance)
        return instance

    def _construct(self, registration: Registration, provider: IServiceProvider) -> Construction:
        """Build a registration, keeping only the objects the factory created itself.

        Objects a builder or decorator obtained by resolving other keys stay
        with the provider that built them (or with nobody, for registered instances).
        """
        construction = self._invoker.invoke(registration, provider)
        built = tuple(item for item in construction.built if not self._circular_detector.was_resolved(item))
        return construction.model_copy(update={"built": built})

    def is_registered(self, service_key: Hashable) -> bool:
        return service_key in self._registry

    def get_registration(self, service_key: Hashable) -> Registration:
        """Return the active registration for a key.

        Raises:
            UnregisteredServiceError: If the key has no registration.
        """
        try:
            return self._registry[service_key]
        except KeyError:
            raise UnregisteredServiceError(service_key) from None

    def registrations(self) -> Dict[Hashable, Registration]:
        """Get a copy of the registry.

        Returns:
            Copy of the current registry.
        """
        with self._lock:
            return self._registry.copy()

    def begin_scope(self) -> ServiceScope:
        """Create a scope for scoped lifetime.

        Scopes share the container's registrations and singletons but keep
        their own cache of scoped instances. Use the scope as a context manager
        so that its disposables are released on every exit path.

        Returns:
            New scope bound to this container.

        Example:
            >>> with container.begin_scope() as scope:
            ...     # Same instance within this scope
            ...     ctx1 = scope.resolve(RequestContext)
            ...     ctx2 = scope.resolve(RequestContext)
            ...     assert ctx1 is ctx2
        """
        self._check_not_disposed()
        self._closed = True
        return ServiceScope(self)

    def dispose(self) -> None:
        """Release singleton (and tracked transient) disposables in reverse construction order.

        Calling dispose() more than once is a no-op.

        Raises:
            DisposalAggregateError: If one or more instances failed to dispose.
        """
        if self._lifetime_manager.disposed:
            return
        logger.debug("Disposing container")
        self._lifetime_manager.dispose()

    @property
    def disposed(self) -> bool:
        return self._lifetime_manager.disposed

    def _check_open(self) -> None:
        if self._closed:
            raise RegistrationClosedError(
                "Registrations cannot change after the container has started resolving services"
            )

    def _check_not_disposed(self) -> None:
        if self._lifetime_manager.disposed:
            raise ObjectDisposedError("Cannot use a disposed container")

    def __enter__(self) -> "ServiceContainer":
        """Context manager entry - returns self."""
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> bool:
        """Context manager exit - dispose the container."""
        self.dispose()
        return False
