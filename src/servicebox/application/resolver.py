import inspect
import logging
from typing import Any, Callable, Hashable, Sequence

from servicebox.domain import (
    Construction,
    ContractViolationError,
    IServiceProvider,
    Registration,
    ServiceBoxError,
    ServiceConstructionError,
    key_name,
)

logger = logging.getLogger(__name__)


def implements(service_key: Hashable, instance: Any) -> bool:
    """Check that an instance honours a class service key.

    Non-class keys (e.g. string tokens) and non-runtime-checkable Protocols
    cannot be checked and always pass.
    """
    if not inspect.isclass(service_key):
        return True
    if getattr(service_key, "_is_protocol", False) and not getattr(service_key, "_is_runtime_protocol", False):
        return True
    return isinstance(instance, service_key)


class FactoryInvoker:
    """Builds instances from explicit registrations.

    Dependencies are declared up front (``depends_on``) or fetched by a
    builder that receives the provider; nothing is discovered by inspecting
    constructor signatures. Decorators registered for the key are applied
    innermost first.

    Attributes:
        _validate_contracts: Whether built instances are checked against class keys.
    """

    def __init__(self, validate_contracts: bool = True) -> None:
        self._validate_contracts = validate_contracts

    def invoke(self, registration: Registration, provider: IServiceProvider) -> Construction:
        """Build the instance for a registration, decorators included.

        Args:
            registration: The registration to build.
            provider: The container or scope resolving dependencies.

        Returns:
            The (possibly decorated) instance, with every layer built on the way.

        Raises:
            ServiceConstructionError: If a factory or decorator raises.
            ContractViolationError: If the result does not implement a class key.

        Example:
            >>> registration = Registration(
            ...     service_key=IOrderService,
            ...     factory=OrderService,
            ...     dependencies=(IOrderNotifier,),
            ...     lifetime=Lifetime.SINGLETON,
            ... )
            >>> service = FactoryInvoker().invoke(registration, container).instance
        """
        service_key = registration.service_key

        if registration.receives_provider:
            instance = self._call(service_key, registration.factory, provider)
        else:
            arguments = self._resolve_all(registration.dependencies, provider)
            instance = self._call(service_key, registration.factory, *arguments)
        self._check_contract(service_key, instance)
        built = [instance]

        for decoration in registration.decorators:
            arguments = self._resolve_all(decoration.dependencies, provider)
            instance = self._call(service_key, decoration.factory, instance, *arguments)
            self._check_contract(service_key, instance)
            logger.debug("Decorated %s with %s", key_name(service_key), type(instance).__name__)
            built.append(instance)

        return Construction(instance=instance, built=tuple(built))

    def _resolve_all(self, dependencies: Sequence[Hashable], provider: IServiceProvider) -> list:
        # Depth-first, in declaration order
        return [provider.resolve(dependency) for dependency in dependencies]

    def _call(self, service_key: Hashable, factory: Callable[..., Any], *args: Any) -> Any:
        try:
            return factory(*args)
        except ServiceBoxError:
            raise
        except Exception as e:
            raise ServiceConstructionError(
                service_key,
                f"{getattr(factory, '__name__', repr(factory))} raised {type(e).__name__}: {e}",
            ) from e

    def _check_contract(self, service_key: Hashable, instance: Any) -> None:
        if self._validate_contracts and not implements(service_key, instance):
            raise ContractViolationError(service_key, instance)
