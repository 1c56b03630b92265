from __future__ import annotations

import importlib
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from refwire.exceptions import RefWireInvalidRegistrationError

if TYPE_CHECKING:
    from refwire.keys import ProviderKey


@runtime_checkable
class ProviderFactory(Protocol):
    """Capability that produces a new instance for a provider key.

    Implementations may raise any exception; the owning provider wraps it in
    ``RefWireProvideError``. Returning ``None`` is treated as a failure too.
    """

    def create(self, key: ProviderKey) -> Any:
        """Create a new instance for ``key``."""


@dataclass(frozen=True, slots=True)
class ConcreteTypeFactory:
    """Instantiate a concrete class through its zero-argument constructor."""

    concrete_type: type[Any]

    def create(self, key: ProviderKey) -> Any:  # noqa: ARG002
        return self.concrete_type()


@dataclass(frozen=True, slots=True)
class ClassNameFactory:
    """Instantiate a class given by its dotted path, for example ``"app.db.SqlRepo"``.

    The class is imported when the factory is built so that a misspelled name
    fails at registration time instead of at first resolution.
    """

    class_name: str
    concrete_type: type[Any] = field(init=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "concrete_type", import_class(self.class_name))

    def create(self, key: ProviderKey) -> Any:  # noqa: ARG002
        return self.concrete_type()


@dataclass(frozen=True, slots=True)
class CallableFactory:
    """Call a zero-argument factory function."""

    factory: Callable[[], Any]

    def create(self, key: ProviderKey) -> Any:  # noqa: ARG002
        return self.factory()


@dataclass(frozen=True, slots=True, eq=False)
class InstanceFactory:
    """Hand out a pre-built instance."""

    instance: Any

    def create(self, key: ProviderKey) -> Any:  # noqa: ARG002
        return self.instance

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, InstanceFactory):
            return NotImplemented
        return other.instance is self.instance

    def __hash__(self) -> int:
        return id(self.instance)


def import_class(class_name: str) -> type[Any]:
    """Import and return the class named by a dotted path.

    Raises:
        RefWireInvalidRegistrationError: If the module cannot be imported, the
            attribute is missing, or the attribute is not a class.

    """
    module_name, _, attribute_name = class_name.rpartition(".")
    if not module_name or not attribute_name:
        msg = f"Class name '{class_name}' must be a dotted path such as 'package.module.Class'."
        raise RefWireInvalidRegistrationError(msg)

    try:
        module = importlib.import_module(module_name)
    except ImportError as error:
        msg = f"Unable to import module '{module_name}' for class name '{class_name}'."
        raise RefWireInvalidRegistrationError(msg) from error

    concrete_type = getattr(module, attribute_name, None)
    if not isinstance(concrete_type, type):
        msg = f"Class name '{class_name}' does not name a class."
        raise RefWireInvalidRegistrationError(msg)
    return concrete_type
