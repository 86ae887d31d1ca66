"""Integration tests for scoped lifetime management."""

import pytest

from servicebox import ContainerSettings, ScopeRequiredError, ServiceContainer


class RequestId:
    instance_count = 0

    def __init__(self):
        RequestId.instance_count += 1
        self.id = RequestId.instance_count


class RequestLogger:
    def __init__(self, request_id: RequestId):
        self.request_id = request_id


class RequestHandler:
    def __init__(self, request_id: RequestId, logger: RequestLogger):
        self.request_id = request_id
        self.logger = logger


class GlobalConfig:
    pass


@pytest.fixture
def container():
    RequestId.instance_count = 0
    container = ServiceContainer(ContainerSettings())
    container.register_scoped(RequestId, RequestId)
    container.register_transient(RequestLogger, RequestLogger, depends_on=[RequestId])
    container.register_transient(RequestHandler, RequestHandler, depends_on=[RequestId, RequestLogger])
    container.register_singleton(GlobalConfig, GlobalConfig)
    return container


class TestScopedLifetimeScenarios:
    """Test realistic scoped lifetime scenarios."""

    def test_request_scoped_context(self, container):
        """Test scoped services in a request-like context."""
        with container.begin_scope() as scope1:
            handler1 = scope1.resolve(RequestHandler)
            logger1 = scope1.resolve(RequestLogger)

            # Within same scope, should share instances
            assert handler1.request_id is logger1.request_id
            assert handler1.logger.request_id is handler1.request_id

        with container.begin_scope() as scope2:
            handler2 = scope2.resolve(RequestHandler)

            # Different scope should have different instances
            assert handler2.request_id is not handler1.request_id
            assert handler2.request_id.id == 2

    def test_scopes_share_singletons(self, container):
        """Test that every scope sees the same singleton."""
        with container.begin_scope() as scope1:
            config1 = scope1.resolve(GlobalConfig)

        with container.begin_scope() as scope2:
            config2 = scope2.resolve(GlobalConfig)

        assert config1 is config2 is container.resolve(GlobalConfig)

    def test_many_scopes_each_build_once(self, container):
        """Test that N scopes build N scoped instances, regardless of resolution count."""
        for _ in range(5):
            with container.begin_scope() as scope:
                for _ in range(3):
                    scope.resolve(RequestHandler)

        assert RequestId.instance_count == 5


class TestScopedOutsideScope:
    """Resolving scoped services without a scope fails fast."""

    def test_direct_resolution_from_root_fails(self, container):
        """Test that the container refuses to resolve a scoped service."""
        with pytest.raises(ScopeRequiredError):
            container.resolve(RequestId)

    def test_indirect_resolution_from_root_fails(self, container):
        """Test that a transient needing a scoped service also fails at the root."""
        with pytest.raises(ScopeRequiredError) as exc_info:
            container.resolve(RequestHandler)

        assert exc_info.value.service_key is RequestId

    def test_root_failure_does_not_poison_scopes(self, container):
        """Test that a failed root resolution leaves the container usable."""
        with pytest.raises(ScopeRequiredError):
            container.resolve(RequestId)

        with container.begin_scope() as scope:
            assert isinstance(scope.resolve(RequestId), RequestId)

    def test_builder_singleton_cannot_capture_scoped(self):
        """Test that builders of singletons receive the root container."""
        container = ServiceContainer(ContainerSettings())
        container.register_scoped_services({RequestId: lambda c: RequestId()})
        container.register_singletons({RequestLogger: lambda c: RequestLogger(c.resolve(RequestId))})

        with container.begin_scope() as scope:
            with pytest.raises(ScopeRequiredError):
                scope.resolve(RequestLogger)
