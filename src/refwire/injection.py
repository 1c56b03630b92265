from __future__ import annotations

import inspect
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Protocol, get_type_hints

from refwire.keys import ProviderKey
from refwire.markers import is_injected_annotation, strip_injected_annotation


@dataclass(frozen=True, slots=True)
class InjectionPoint:
    """A named slot on a consumer that the graph fills with a provided instance."""

    name: str
    key: ProviderKey


@dataclass(frozen=True, slots=True)
class InjectedCallableInspection:
    """Injection metadata derived from a callable signature and annotations."""

    signature: inspect.Signature
    injected_parameters: tuple[InjectionPoint, ...]
    public_signature: inspect.Signature


class InjectionPointDiscovery(Protocol):
    """Enumerate the injection points of a consumer, in a stable order."""

    def inspect(self, consumer: object) -> tuple[InjectionPoint, ...]: ...


@dataclass(slots=True)
class InjectionPointInspector:
    """Find ``Injected[...]`` attributes declared on consumer classes.

    Points are the class-level annotations of the consumer's type and its
    bases, base classes first, in definition order. Results are cached per
    class.
    """

    _points_by_class: dict[type[Any], tuple[InjectionPoint, ...]] = field(default_factory=dict)

    def inspect(self, consumer: object) -> tuple[InjectionPoint, ...]:
        """Return the injection points of ``consumer``."""
        consumer_type = type(consumer)
        points = self._points_by_class.get(consumer_type)
        if points is None:
            points = self.inspect_class(consumer_type)
            self._points_by_class[consumer_type] = points
        return points

    def inspect_class(self, consumer_type: type[Any]) -> tuple[InjectionPoint, ...]:
        """Return the injection points declared on ``consumer_type`` and its bases."""
        annotations = self.resolved_class_annotations(consumer_type=consumer_type)
        return tuple(
            InjectionPoint(
                name=name,
                key=ProviderKey.from_dependency(strip_injected_annotation(annotation)),
            )
            for name, annotation in annotations.items()
            if is_injected_annotation(annotation)
        )

    def inspect_callable(self, callable_obj: Callable[..., Any]) -> InjectedCallableInspection:
        """Build injection metadata and a public signature for a callable."""
        signature = inspect.signature(callable_obj)
        resolved_annotations = self.resolved_annotations_for_injection(callable_obj=callable_obj)
        injected_parameters = tuple(
            InjectionPoint(
                name=parameter.name,
                key=ProviderKey.from_dependency(strip_injected_annotation(annotation)),
            )
            for parameter in signature.parameters.values()
            if is_injected_annotation(
                annotation := resolved_annotations.get(parameter.name, parameter.annotation),
            )
        )
        hidden_parameter_names = {parameter.name for parameter in injected_parameters}
        public_signature = signature.replace(
            parameters=[
                parameter
                for parameter in signature.parameters.values()
                if parameter.name not in hidden_parameter_names
            ],
        )
        return InjectedCallableInspection(
            signature=signature,
            injected_parameters=injected_parameters,
            public_signature=public_signature,
        )

    def resolved_class_annotations(self, *, consumer_type: type[Any]) -> dict[str, Any]:
        """Resolve class annotations with extras, falling back to raw annotations."""
        try:
            return get_type_hints(consumer_type, include_extras=True)
        except (AttributeError, NameError, TypeError):
            annotations: dict[str, Any] = {}
            for base in reversed(consumer_type.__mro__):
                annotations.update(base.__dict__.get("__annotations__", {}))
            return annotations

    def resolved_annotations_for_injection(
        self,
        *,
        callable_obj: Callable[..., Any],
    ) -> dict[str, Any]:
        """Resolve callable annotations with extras, falling back to an empty mapping."""
        try:
            return get_type_hints(callable_obj, include_extras=True)
        except (AttributeError, NameError, TypeError):
            return {}
