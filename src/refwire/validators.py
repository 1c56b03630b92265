from __future__ import annotations

import inspect
import types
from typing import Any, TypeGuard

from refwire.exceptions import RefWireInvalidRegistrationError


def is_runtime_class(candidate: object) -> TypeGuard[type[Any]]:
    """Return true when candidate is a runtime class safe for class-only operations."""
    return isinstance(candidate, type) and not isinstance(candidate, types.GenericAlias)


class DependencyRegistrationValidator:
    """Validates bindings before providers are created for them."""

    def validate_concrete_type(self, concrete_type: object, provides: Any) -> None:
        """Validate that a concrete provider is instantiable and fulfils its contract."""
        if not inspect.isclass(concrete_type):
            msg = f"Concrete provider must be a class, got {concrete_type!r}."
            raise RefWireInvalidRegistrationError(msg)

        if inspect.isabstract(concrete_type):
            msg = f"Concrete provider '{concrete_type.__qualname__}' cannot be an abstract class."
            raise RefWireInvalidRegistrationError(msg)

        if not is_runtime_class(provides) or _is_protocol(provides):
            return
        if not issubclass(concrete_type, provides):
            msg = (
                f"Concrete provider '{concrete_type.__qualname__}' is not a subclass of "
                f"'{provides.__qualname__}'."
            )
            raise RefWireInvalidRegistrationError(msg)

    def validate_factory(self, factory: object) -> None:
        """Validate that a factory provider is callable."""
        if not callable(factory):
            msg = f"Factory provider must be callable, got {factory!r}."
            raise RefWireInvalidRegistrationError(msg)

    def validate_provides(self, provides: Any, *, method_name: str) -> None:
        """Reject a missing contract type."""
        if provides is None:
            msg = f"{method_name}() parameter 'provides' must not be None; use 'infer'."
            raise RefWireInvalidRegistrationError(msg)


def _is_protocol(candidate: type[Any]) -> bool:
    return bool(getattr(candidate, "_is_protocol", False))
