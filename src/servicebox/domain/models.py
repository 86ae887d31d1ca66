from typing import Any, Callable, Tuple

from pydantic import BaseModel, ConfigDict, Field

from servicebox.domain.enums import Lifetime


class Decoration(BaseModel):
    """Value object representing a decorator applied to a registration.

    Attributes:
        factory: Callable receiving the wrapped instance, then the resolved dependencies.
        dependencies: Service keys resolved and passed after the wrapped instance.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    factory: Callable[..., Any] = Field(..., description="Builds the decorator around the wrapped instance.")
    dependencies: Tuple[Any, ...] = Field(
        default=(),
        description="Service keys passed to the decorator after the wrapped instance.",
    )


class Registration(BaseModel):
    """Value object binding a service key to a construction strategy and lifetime.

    Attributes:
        service_key: The key being registered (usually an abstract class or Protocol).
        factory: Callable producing the implementation.
        dependencies: Service keys resolved and passed positionally to the factory.
        receives_provider: When True the factory is called with the resolving provider
            instead of resolved dependencies.
        lifetime: How long the instance should live.
        decorators: Decorations in application order (innermost first).
        owned: Whether the container disposes instances built by this registration.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    service_key: Any = Field(..., description="The service key to be registered.")
    factory: Callable[..., Any] = Field(..., description="The factory building the implementation.")
    dependencies: Tuple[Any, ...] = Field(
        default=(),
        description="Service keys passed positionally to the factory.",
    )
    receives_provider: bool = Field(
        default=False,
        description="Call the factory with the resolving provider.",
    )
    lifetime: Lifetime = Field(..., description="The lifetime of the registered service.")
    decorators: Tuple[Decoration, ...] = Field(
        default=(),
        description="Decorators wrapping the built instance, innermost first.",
    )
    owned: bool = Field(
        default=True,
        description="Whether the container disposes instances of this registration.",
    )

    def with_decoration(self, decoration: Decoration) -> "Registration":
        """Return a copy of this registration with one more (outermost) decoration."""
        return self.model_copy(update={"decorators": self.decorators + (decoration,)})


class Construction(BaseModel):
    """Value object describing the outcome of one factory call.

    Attributes:
        instance: The object handed to the caller (the outermost decorator, if any).
        built: Objects created by this call in construction order. Objects the
            factory obtained by resolving other services are not included, as
            their owner is the provider that built them.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    instance: Any = Field(..., description="The resolved instance.")
    built: Tuple[Any, ...] = Field(default=(), description="Objects created by the call, innermost first.")
