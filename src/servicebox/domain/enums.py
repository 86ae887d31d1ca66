from enum import Enum


class Lifetime(str, Enum):
    """Defines the lifetime of a service instance.

    Attributes:
        TRANSIENT: New instance created on each resolution.
        SCOPED: Single instance per scope (e.g., per HTTP request).
        SINGLETON: Single instance shared across the entire container.
    """

    TRANSIENT = "transient"
    SCOPED = "scoped"
    SINGLETON = "singleton"

    def __str__(self) -> str:
        return self.value


class DuplicatePolicy(str, Enum):
    """What happens when a service key is registered twice.

    Attributes:
        FAIL: Reject the second registration with DuplicateRegistrationError.
        REPLACE: The last registration wins.
    """

    FAIL = "fail"
    REPLACE = "replace"

    def __str__(self) -> str:
        return self.value
