"""Application layer - Circular dependency detection."""

import threading
from typing import Any, Dict, Hashable, List, Optional, Tuple

from servicebox.domain import CircularDependencyError, Lifetime


class CircularDependencyDetector:
    """Detects circular dependencies during resolution.

    Uses thread-local storage to track the keys currently being resolved,
    together with their lifetimes. When a key appears twice in the stack,
    a circular dependency is detected. One detector is shared by a container
    and all of its scopes.

    Each frame also remembers the objects its factory received from nested
    resolutions, so that the container can tell objects a factory built
    from objects it merely passed on.

    Attributes:
        _local: Thread-local storage for resolution stacks.
    """

    def __init__(self) -> None:
        """Initialize the circular dependency detector with thread-local storage."""
        self._local = threading.local()

    def _get_stack(self) -> List[Tuple[Hashable, Optional[Lifetime]]]:
        """Get the current thread's resolution stack.

        Returns:
            The resolution stack for the current thread.
        """
        if not hasattr(self._local, "stack"):
            self._local.stack = []
        return self._local.stack

    def _get_resolved(self) -> List[Dict[int, Any]]:
        # One entry per stack frame; values keep the objects alive so their ids stay unique
        if not hasattr(self._local, "resolved"):
            self._local.resolved = []
        return self._local.resolved

    def push(self, service_key: Hashable, lifetime: Optional[Lifetime] = None) -> None:
        """Add a service key to the resolution stack.

        Args:
            service_key: The key being resolved.
            lifetime: The lifetime of the key's registration.

        Raises:
            CircularDependencyError: If the key is already in the stack.

        Example:
            >>> detector = CircularDependencyDetector()
            >>> detector.push(ServiceA)
            >>> detector.push(ServiceB)
            >>> detector.push(ServiceA)  # Raises CircularDependencyError
        """
        stack = self._get_stack()
        keys = [key for key, _ in stack]

        if service_key in keys:
            # Build cycle path from first occurrence to current
            cycle = keys[keys.index(service_key) :] + [service_key]
            raise CircularDependencyError(cycle)

        stack.append((service_key, lifetime))
        self._get_resolved().append({})

    def pop(self) -> None:
        """Remove the last key from the resolution stack.

        Called after resolution of a key completes or fails.
        """
        stack = self._get_stack()
        if stack:
            stack.pop()
            self._get_resolved().pop()

    def record(self, instance: Any) -> None:
        """Note that the key being resolved received ``instance`` from a nested resolution.

        Does nothing when no key is being resolved.
        """
        resolved = self._get_resolved()
        if resolved:
            resolved[-1][id(instance)] = instance

    def was_resolved(self, instance: Any) -> bool:
        """Return whether the key being resolved received ``instance`` from a nested resolution."""
        resolved = self._get_resolved()
        return bool(resolved) and id(instance) in resolved[-1]

    def nearest(self, lifetime: Lifetime) -> Optional[Hashable]:
        """Return the innermost key being resolved with the given lifetime, below the top frame.

        Used to find the singleton that captures a transient currently being built.
        """
        for service_key, frame_lifetime in reversed(self._get_stack()[:-1]):
            if frame_lifetime == lifetime:
                return service_key
        return None

    def clear(self) -> None:
        """Clear the entire resolution stack.

        Useful for testing or error recovery.
        """
        if hasattr(self._local, "stack"):
            self._local.stack.clear()
        if hasattr(self._local, "resolved"):
            self._local.resolved.clear()
