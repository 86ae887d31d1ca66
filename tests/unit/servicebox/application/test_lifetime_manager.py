"""Unit tests for LifetimeManager."""

import logging
import threading
import time

import pytest

from servicebox.application.lifetime_manager import LifetimeManager, get_dispose_method
from servicebox.domain import (
    Construction,
    DisposalAggregateError,
    IDisposable,
    ILifetimeManager,
    Lifetime,
    ObjectDisposedError,
    Registration,
)


def make_registration(service_key, lifetime, owned=True):
    return Registration(service_key=service_key, factory=lambda: None, lifetime=lifetime, owned=owned)


class Resource:
    def __init__(self, name, log):
        self.name = name
        self.log = log

    def dispose(self):
        self.log.append(self.name)


class TestGetDisposeMethod:
    """Test cases for disposable detection."""

    def test_idisposable_instance(self):
        """Test that IDisposable implementations are disposable."""

        class Connection(IDisposable):
            def dispose(self):
                pass

        connection = Connection()
        assert get_dispose_method(connection) == connection.dispose

    def test_duck_typed_dispose(self):
        """Test that any object with dispose() is disposable."""
        resource = Resource("r", [])
        assert get_dispose_method(resource) == resource.dispose

    def test_close_is_used_when_dispose_missing(self):
        """Test that close() is accepted as the release method."""

        class FileLike:
            def close(self):
                pass

        file_like = FileLike()
        assert get_dispose_method(file_like) == file_like.close

    def test_dispose_preferred_over_close(self):
        """Test that dispose() wins when both exist."""

        class Both:
            def dispose(self):
                pass

            def close(self):
                pass

        both = Both()
        assert get_dispose_method(both) == both.dispose

    def test_plain_object_is_not_disposable(self):
        """Test that objects without release methods are ignored."""
        assert get_dispose_method(object()) is None

    def test_non_callable_attribute_is_ignored(self):
        """Test that a non-callable dispose attribute does not count."""

        class Flag:
            dispose = True

        assert get_dispose_method(Flag()) is None


class TestLifetimeManagerInitialization:
    """Test cases for LifetimeManager initialization."""

    def test_manager_initialization(self):
        """Test that manager initializes with empty caches."""
        manager = LifetimeManager()
        assert manager._instances == {}
        assert manager._disposables == []
        assert manager.disposed is False

    def test_manager_implements_interface(self):
        """Test that LifetimeManager implements ILifetimeManager."""
        assert isinstance(LifetimeManager(), ILifetimeManager)


class TestCachedLifetimes:
    """Test cases for singleton and scoped caching."""

    @pytest.mark.parametrize("lifetime", [Lifetime.SINGLETON, Lifetime.SCOPED])
    def test_factory_called_once(self, lifetime):
        """Test that cached lifetimes build the instance once."""
        manager = LifetimeManager()
        calls = []

        def factory():
            calls.append(1)
            return object()

        registration = make_registration("key", lifetime)
        first = manager.get_or_create(registration, factory)
        second = manager.get_or_create(registration, factory)

        assert first is second
        assert len(calls) == 1

    def test_failed_factory_is_not_cached(self):
        """Test that a failing construction can be retried."""
        manager = LifetimeManager()
        registration = make_registration("key", Lifetime.SINGLETON)

        def failing():
            raise RuntimeError("database unavailable")

        with pytest.raises(RuntimeError):
            manager.get_or_create(registration, failing)

        instance = manager.get_or_create(registration, lambda: "ok")
        assert instance == "ok"

    def test_concurrent_first_resolution_constructs_once(self):
        """Test that racing threads receive the same instance built once."""
        manager = LifetimeManager()
        registration = make_registration("key", Lifetime.SINGLETON)
        calls = []
        results = []
        barrier = threading.Barrier(8)

        def slow_factory():
            calls.append(1)
            time.sleep(0.05)
            return object()

        def worker():
            barrier.wait()
            results.append(manager.get_or_create(registration, slow_factory))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(calls) == 1
        assert len(results) == 8
        assert all(result is results[0] for result in results)


class TestTransientLifetime:
    """Test cases for transient creation."""

    def test_transient_always_creates(self):
        """Test that transients are never cached."""
        manager = LifetimeManager()
        registration = make_registration("key", Lifetime.TRANSIENT)

        first = manager.get_or_create(registration, object)
        second = manager.get_or_create(registration, object)

        assert first is not second
        assert manager._instances == {}

    def test_disposable_transient_is_tracked(self):
        """Test that disposable transients are released with the manager."""
        log = []
        manager = LifetimeManager()
        registration = make_registration("key", Lifetime.TRANSIENT)

        manager.get_or_create(registration, lambda: Resource("t1", log))
        manager.get_or_create(registration, lambda: Resource("t2", log))
        manager.dispose()

        assert log == ["t2", "t1"]

    def test_transient_tracking_can_be_disabled(self):
        """Test that untracked transients are left to the caller."""
        log = []
        manager = LifetimeManager(track_transients=False)
        registration = make_registration("key", Lifetime.TRANSIENT)

        manager.get_or_create(registration, lambda: Resource("t", log))
        manager.dispose()

        assert log == []

    def test_transient_untracked_on_request(self):
        """Test that a caller can keep a transient out of the manager."""
        log = []
        manager = LifetimeManager()
        registration = make_registration("key", Lifetime.TRANSIENT)

        manager.get_or_create(registration, lambda: Resource("t", log), track=False)
        manager.dispose()

        assert log == []
        assert manager._disposables == []


class TestConstruction:
    """Test cases for factories reporting what they built."""

    def test_every_built_layer_is_tracked(self):
        """Test that inner instances are released after the objects wrapping them."""
        log = []
        manager = LifetimeManager()
        inner = Resource("inner", log)
        outer = Resource("outer", log)

        instance = manager.get_or_create(
            make_registration("key", Lifetime.SINGLETON),
            lambda: Construction(instance=outer, built=(inner, outer)),
        )
        manager.dispose()

        assert instance is outer
        assert log == ["outer", "inner"]

    def test_objects_not_built_are_not_tracked(self):
        """Test that an instance obtained elsewhere is returned but not released."""
        log = []
        manager = LifetimeManager()
        borrowed = Resource("borrowed", log)

        instance = manager.get_or_create(
            make_registration("key", Lifetime.TRANSIENT),
            lambda: Construction(instance=borrowed, built=()),
        )
        manager.dispose()

        assert instance is borrowed
        assert log == []


class TestDisposal:
    """Test cases for disposal."""

    def test_dispose_in_reverse_construction_order(self):
        """Test that the last built instance is released first."""
        log = []
        manager = LifetimeManager()

        for name in ("config", "connection", "repository"):
            manager.get_or_create(make_registration(name, Lifetime.SINGLETON), lambda n=name: Resource(n, log))
        manager.dispose()

        assert log == ["repository", "connection", "config"]

    def test_nested_construction_order(self):
        """Test that a dependency built during its consumer's construction is released after it."""
        log = []
        manager = LifetimeManager()
        outer_registration = make_registration("outer", Lifetime.SINGLETON)
        inner_registration = make_registration("inner", Lifetime.SINGLETON)

        def build_outer():
            manager.get_or_create(inner_registration, lambda: Resource("inner", log))
            return Resource("outer", log)

        manager.get_or_create(outer_registration, build_outer)
        manager.dispose()

        assert log == ["outer", "inner"]

    def test_unowned_instances_are_not_disposed(self):
        """Test that instances of unowned registrations are left alone."""
        log = []
        manager = LifetimeManager()

        manager.get_or_create(make_registration("key", Lifetime.SINGLETON, owned=False), lambda: Resource("x", log))
        manager.dispose()

        assert log == []

    def test_same_instance_disposed_once(self):
        """Test that an instance returned by several transient builds is released once."""
        log = []
        shared = Resource("shared", log)
        manager = LifetimeManager()
        registration = make_registration("key", Lifetime.TRANSIENT)

        manager.get_or_create(registration, lambda: shared)
        manager.get_or_create(registration, lambda: shared)
        manager.dispose()

        assert log == ["shared"]

    def test_dispose_twice_is_noop(self):
        """Test that a second dispose releases nothing."""
        log = []
        manager = LifetimeManager()
        manager.get_or_create(make_registration("key", Lifetime.SINGLETON), lambda: Resource("x", log))

        manager.dispose()
        manager.dispose()

        assert log == ["x"]

    def test_failures_are_aggregated_and_logged(self, caplog):
        """Test that one failing release does not block the others."""
        log = []

        class Broken:
            def dispose(self):
                raise RuntimeError("socket already closed")

        manager = LifetimeManager(name="scope")
        manager.get_or_create(make_registration("first", Lifetime.SCOPED), lambda: Resource("first", log))
        manager.get_or_create(make_registration("broken", Lifetime.SCOPED), Broken)
        manager.get_or_create(make_registration("last", Lifetime.SCOPED), lambda: Resource("last", log))

        with caplog.at_level(logging.ERROR, logger="servicebox.application.lifetime_manager"):
            with pytest.raises(DisposalAggregateError) as exc_info:
                manager.dispose()

        assert log == ["last", "first"]
        assert len(exc_info.value.errors) == 1
        assert isinstance(exc_info.value.errors[0], RuntimeError)
        assert "Failed to dispose Broken in scope" in caplog.text
        assert manager.disposed is True

    def test_use_after_dispose_raises(self):
        """Test that a disposed manager refuses new work."""
        manager = LifetimeManager()
        manager.dispose()

        with pytest.raises(ObjectDisposedError):
            manager.get_or_create(make_registration("key", Lifetime.SINGLETON), object)

        with pytest.raises(ObjectDisposedError):
            manager.get_or_create(make_registration("key", Lifetime.TRANSIENT), object)
