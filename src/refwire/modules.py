from __future__ import annotations

import inspect
from collections.abc import Callable
from dataclasses import dataclass
from inspect import Parameter
from typing import Any, Literal, TypeVar, get_type_hints, overload

from refwire.defaults import DEFAULT_LIFETIME
from refwire.exceptions import RefWireInvalidRegistrationError
from refwire.factories import CallableFactory
from refwire.keys import ProviderKey
from refwire.providers import Lifetime

F = TypeVar("F", bound=Callable[..., Any])

PROVIDES_ATTR = "__refwire_provides__"
_MISSING_ANNOTATION: Any = object()


@dataclass(frozen=True, slots=True)
class ProvidesSpec:
    """Registration options attached to a module method by ``@provides``."""

    provides: Any
    qualifier: Any
    lifetime: Lifetime


@dataclass(frozen=True, slots=True)
class ModuleBinding:
    """One provider contributed by a module."""

    key: ProviderKey
    factory: CallableFactory
    lifetime: Lifetime


@overload
def provides(method: F, /) -> F: ...


@overload
def provides(
    method: None = None,
    /,
    *,
    provides: Any | Literal["infer"] = "infer",
    qualifier: Any = None,
    lifetime: Lifetime = DEFAULT_LIFETIME,
) -> Callable[[F], F]: ...


def provides(
    method: F | None = None,
    /,
    *,
    provides: Any | Literal["infer"] = "infer",
    qualifier: Any = None,
    lifetime: Lifetime = DEFAULT_LIFETIME,
) -> F | Callable[[F], F]:
    """Mark a module method as a provider.

    The method takes no arguments besides ``self`` and returns a new
    instance. Its return annotation is the contract type unless ``provides``
    is given; an ``Annotated[T, Component("x")]`` return annotation carries
    the qualifier.

    Args:
        method: Method to mark, in the bare decorator form.
        provides: Contract type, or ``"infer"`` to use the return annotation.
        qualifier: Optional qualifier such as ``Component("primary")``.
        lifetime: ``Lifetime.SINGLETON`` shares one instance through the
            module's scope cache; ``Lifetime.TRANSIENT`` builds one per
            resolution.

    Examples:
        .. code-block:: python

            class AppModule:
                @provides
                def controller(self) -> Controller:
                    return ControllerImpl()

                @provides(lifetime=Lifetime.TRANSIENT)
                def request(self) -> Annotated[Request, Component("draft")]:
                    return Request()

    """
    spec = ProvidesSpec(provides=provides, qualifier=qualifier, lifetime=lifetime)

    def decorator(decorated: F) -> F:
        setattr(decorated, PROVIDES_ATTR, spec)
        return decorated

    if method is None:
        return decorator
    return decorator(method)


@dataclass(slots=True)
class ModuleBindingsExtractor:
    """Enumerate the ``@provides`` methods of a module object as bindings."""

    def extract(self, module: object) -> list[ModuleBinding]:
        """Return one binding per marked method, in definition order."""
        bindings: list[ModuleBinding] = []
        for name in self._marked_method_names(type(module)):
            bound_method = getattr(module, name)
            spec: ProvidesSpec | None = getattr(bound_method, PROVIDES_ATTR, None)
            if spec is None:
                continue
            self.validate_no_arguments(bound_method)
            dependency = (
                self.extract_return_type(bound_method) if spec.provides == "infer" else spec.provides
            )
            bindings.append(
                ModuleBinding(
                    key=ProviderKey.from_dependency(dependency, spec.qualifier),
                    factory=CallableFactory(bound_method),
                    lifetime=spec.lifetime,
                ),
            )
        return bindings

    def extract_return_type(self, factory: Callable[..., Any]) -> Any:
        """Extract a contract type from a factory's return annotation.

        Raises:
            RefWireInvalidRegistrationError: If the annotation is missing or
                cannot be resolved.

        """
        try:
            return_annotation = get_type_hints(factory, include_extras=True).get(
                "return",
                _MISSING_ANNOTATION,
            )
            annotation_error: Exception | None = None
        except (AttributeError, NameError, TypeError) as error:
            return_annotation = _MISSING_ANNOTATION
            annotation_error = error

        if return_annotation is _MISSING_ANNOTATION:
            raw_return_annotation = inspect.signature(factory).return_annotation
            if raw_return_annotation is not inspect.Signature.empty and not isinstance(
                raw_return_annotation,
                str,
            ):
                return_annotation = raw_return_annotation

        if return_annotation is _MISSING_ANNOTATION or return_annotation is None:
            msg = (
                f"Unable to infer the provided type of '{self._provider_name(factory)}'. "
                "Add a return type annotation or pass provides= explicitly."
            )
            if annotation_error is None:
                raise RefWireInvalidRegistrationError(msg)
            full_msg = f"{msg} Original annotation error: {annotation_error}"
            raise RefWireInvalidRegistrationError(full_msg) from annotation_error
        return return_annotation

    def validate_no_arguments(self, factory: Callable[..., Any]) -> None:
        """Reject factories with required parameters."""
        required = [
            parameter.name
            for parameter in inspect.signature(factory).parameters.values()
            if parameter.default is Parameter.empty
            and parameter.kind not in (Parameter.VAR_POSITIONAL, Parameter.VAR_KEYWORD)
        ]
        if required:
            names = ", ".join(f"'{name}'" for name in required)
            msg = (
                f"Provider '{self._provider_name(factory)}' must not take required "
                f"parameters; got {names}. Inject dependencies through Injected[...] "
                "attributes on the returned instance instead."
            )
            raise RefWireInvalidRegistrationError(msg)

    def _marked_method_names(self, module_type: type[Any]) -> list[str]:
        names: list[str] = []
        for base in reversed(module_type.__mro__):
            for name, value in base.__dict__.items():
                if hasattr(value, PROVIDES_ATTR) and name not in names:
                    names.append(name)
        return names

    def _provider_name(self, provider: Callable[..., Any]) -> str:
        return getattr(provider, "__qualname__", repr(provider))
