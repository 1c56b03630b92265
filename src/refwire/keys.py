from __future__ import annotations

from dataclasses import dataclass, field
from typing import Annotated, Any, get_args, get_origin

from refwire.exceptions import RefWireInvalidRegistrationError
from refwire.markers import InjectedMarker, build_annotated


@dataclass(frozen=True, slots=True)
class ProviderKey:
    """Identify one provider slot: a contract type plus an optional qualifier.

    The qualifier's type is part of the identity, so ``Component("x")`` and a
    user-defined ``Named("x")`` qualifier produce different keys even though
    both wrap the same value.
    """

    provides: Any
    """The contract type that the provider supplies."""
    qualifier_type: type[Any] | None = None
    """Type of the qualifier object, or ``None`` for an unqualified key."""
    qualifier_value: Any = None
    """Hashable value carried by the qualifier."""
    qualifier: Any = field(default=None, compare=False, hash=False)
    """The qualifier object itself, kept for messages and annotation rebuilding."""

    @classmethod
    def from_dependency(cls, dependency: Any, qualifier: Any = None) -> ProviderKey:
        """Build a key from a type, an optional qualifier, or an ``Annotated`` token.

        Args:
            dependency: A contract type, or ``Annotated[T, qualifier]``.
            qualifier: Optional qualifier object such as ``Component("primary")``.

        Raises:
            RefWireInvalidRegistrationError: If more than one qualifier is given.

        """
        if isinstance(dependency, ProviderKey):
            if qualifier is not None:
                msg = f"Key '{dependency}' already carries its qualifier; got {qualifier!r} too."
                raise RefWireInvalidRegistrationError(msg)
            return dependency

        provides = dependency
        if get_origin(dependency) is Annotated:
            annotation_args = get_args(dependency)
            provides = annotation_args[0]
            metadata = [
                item for item in annotation_args[1:] if not isinstance(item, InjectedMarker)
            ]
            if len(metadata) > 1:
                msg = f"Dependency {dependency!r} carries more than one qualifier: {metadata!r}."
                raise RefWireInvalidRegistrationError(msg)
            if metadata:
                if qualifier is not None:
                    msg = (
                        f"Dependency {dependency!r} is already qualified; "
                        f"refusing the extra qualifier {qualifier!r}."
                    )
                    raise RefWireInvalidRegistrationError(msg)
                qualifier = metadata[0]

        if qualifier is None:
            return cls(provides=provides)
        return cls(
            provides=provides,
            qualifier_type=type(qualifier),
            qualifier_value=_qualifier_value(qualifier),
            qualifier=qualifier,
        )

    @property
    def annotation(self) -> Any:
        """Return the key as a type annotation (``Annotated`` when qualified)."""
        if self.qualifier is None:
            return self.provides
        return build_annotated((self.provides, self.qualifier))

    def __str__(self) -> str:
        name = getattr(self.provides, "__qualname__", repr(self.provides))
        if self.qualifier is None:
            return name
        return f"{name}[{self.qualifier!r}]"


def _qualifier_value(qualifier: Any) -> Any:
    # NamedTuple qualifiers such as Component compare by their fields.
    if isinstance(qualifier, tuple):
        return tuple(qualifier)
    return qualifier
