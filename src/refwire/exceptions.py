from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from refwire.keys import ProviderKey


class RefWireError(Exception):
    """Represent a base class for all refwire-specific failures.

    Catch this type when you want to handle any refwire error path without
    matching each concrete exception class individually.
    """


class RefWireInvalidRegistrationError(RefWireError):
    """Signal an invalid registration.

    Raised by ``Graph.register``, ``Graph.add_concrete``,
    ``Graph.add_class_name``, ``Graph.add_factory`` and ``Graph.add_instance``
    when the binding cannot be turned into a provider, for example an abstract
    concrete class, a class name that cannot be imported, a factory without a
    return annotation, or a qualifier passed both inside ``Annotated`` and as
    an argument.
    """


class RefWireProviderMissingError(RefWireError):
    """Signal that a dependency key has no provider.

    This is always a configuration defect. Typical fixes are registering the
    module that provides the key, or correcting the qualifier on the
    injection point.
    """

    def __init__(self, key: ProviderKey) -> None:
        self.key = key
        super().__init__(f"No provider is registered for '{key}'.")


class RefWireProviderConflictError(RefWireError):
    """Signal that two different providers were registered for the same key.

    Re-registering the very same provider, or an identical binding, is
    accepted and ignored. Anything else bound to an equal key is rejected at
    registration time.
    """

    def __init__(self, key: ProviderKey, existing: Any, conflicting: Any) -> None:
        self.key = key
        self.existing = existing
        self.conflicting = conflicting
        super().__init__(
            f"Provider for '{key}' is already registered ({existing!r}); "
            f"refusing to replace it with {conflicting!r}.",
        )


class RefWireCircularDependencyError(RefWireError):
    """Signal that a key was requested again while it was still being constructed.

    ``stack`` holds the keys that were under construction, outermost first.
    The whole top-level ``inject``/``reference`` call is aborted and every
    reference taken by it is rolled back.
    """

    def __init__(self, key: ProviderKey, stack: list[ProviderKey]) -> None:
        self.key = key
        self.stack = stack
        chain = " -> ".join(str(item) for item in [*stack, key])
        super().__init__(f"Circular dependency detected: {chain}.")


class RefWireProvideError(RefWireError):
    """Signal that a provider's factory failed to produce an instance.

    The underlying exception, if any, is chained as ``__cause__``.
    Construction failures are assumed to be deterministic and are never
    retried.
    """

    def __init__(self, key: ProviderKey, reason: str) -> None:
        self.key = key
        super().__init__(f"Failed to provide '{key}': {reason}")


class RefWireReferenceCountError(RefWireError):
    """Signal a reference count that would become inconsistent.

    Raised when a release is requested for an instance that is not live for
    its provider, which would otherwise push a reference count below zero.
    This is a programming error in the caller's pairing of
    ``inject``/``release`` or ``reference``/``dereference``.
    """

    def __init__(self, key: ProviderKey, reason: str) -> None:
        self.key = key
        super().__init__(f"Invalid release of '{key}': {reason}")
