import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Hashable, Type, TypeVar

from fastapi import FastAPI, Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response
from starlette.types import ASGIApp

from servicebox.application import ServiceContainer
from servicebox.domain import DisposalAggregateError, IServiceProvider, ScopeRequiredError

logger = logging.getLogger(__name__)

T = TypeVar("T")

SCOPE_STATE_ATTRIBUTE = "service_scope"


def create_fastapi_dependency(provider: IServiceProvider, service_key: Type[T]) -> Callable[[], T]:
    """Create a FastAPI Depends() callable that resolves from a container.

    The resolved instance lifetime follows the registration in the container.
    Scoped services cannot be resolved this way; use create_scoped_dependency().

    Args:
        provider: The container to resolve services from.
        service_key: The key to resolve when the dependency is called.

    Returns:
        A callable that FastAPI can use with Depends().

    Example:
        >>> container = ServiceContainer()
        >>> container.register_singleton(IOrderService, OrderService, depends_on=[IOrderNotifier])
        >>>
        >>> get_order_service = create_fastapi_dependency(container, IOrderService)
        >>>
        >>> @app.post("/orders")
        >>> async def save_order(service: IOrderService = Depends(get_order_service)):
        ...     service.save(Order())
    """

    def dependency() -> T:
        """Resolve the service from the container."""
        return provider.resolve(service_key)

    return dependency


def create_scoped_dependency(service_key: Hashable) -> Callable[[Request], Any]:
    """Create a FastAPI dependency that resolves from the request scope.

    Requires the ScopedContainerMiddleware to be installed, so that each
    request gets its own instances of scoped services.

    Args:
        service_key: The key to resolve from the request scope.

    Returns:
        A callable that resolves from the request scope.

    Example:
        >>> app.add_middleware(ScopedContainerMiddleware, container=container)
        >>>
        >>> get_unit_of_work = create_scoped_dependency(UnitOfWork)
        >>>
        >>> @app.post("/orders")
        >>> async def save_order(uow: UnitOfWork = Depends(get_unit_of_work)):
        ...     uow.commit()
    """

    def scoped_dependency(request: Request) -> Any:
        """Resolve from the request's scope."""
        scope = getattr(request.state, SCOPE_STATE_ATTRIBUTE, None)
        if scope is None:
            # Did you forget to add ScopedContainerMiddleware?
            raise ScopeRequiredError(service_key)
        return scope.resolve(service_key)

    return scoped_dependency


class ScopedContainerMiddleware(BaseHTTPMiddleware):
    """Middleware that opens a scope for each request.

    The scope is accessible via ``request.state.service_scope`` and is
    disposed when the request completes, whether the endpoint succeeded or raised.

    Attributes:
        container: The container to create scopes from.

    Example:
        >>> container = ServiceContainer()
        >>> container.register_scoped(UnitOfWork, SqlUnitOfWork, depends_on=[Database])
        >>>
        >>> app = FastAPI()
        >>> app.add_middleware(ScopedContainerMiddleware, container=container)
    """

    def __init__(self, app: ASGIApp, container: ServiceContainer):
        """Initialize the middleware with a container.

        Args:
            app: The FastAPI/Starlette application.
            container: The container to create scopes from.
        """
        super().__init__(app)
        self.container = container

    async def dispatch(self, request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        """Open a scope for the request and execute the endpoint.

        Args:
            request: The incoming HTTP request.
            call_next: The next middleware or endpoint handler.

        Returns:
            The response from the endpoint.
        """
        scope = self.container.begin_scope()
        setattr(request.state, SCOPE_STATE_ATTRIBUTE, scope)

        try:
            response = await call_next(request)
            return response
        finally:
            try:
                scope.dispose()
            except DisposalAggregateError:
                # The response is already produced; failures were logged per instance
                logger.error("Request scope for %s %s disposed with errors", request.method, request.url.path)


def container_lifespan(container: ServiceContainer) -> Callable[[FastAPI], Any]:
    """Create a FastAPI lifespan that disposes the container at shutdown.

    The container is also exposed as ``app.state.container``.

    Example:
        >>> app = FastAPI(lifespan=container_lifespan(container))
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        app.state.container = container
        try:
            yield
        finally:
            logger.debug("Application shutting down, disposing container")
            container.dispose()

    return lifespan
