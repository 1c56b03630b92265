from __future__ import annotations

import inspect
from typing import Annotated, ClassVar

from refwire.injection import InjectionPoint, InjectionPointInspector
from refwire.keys import ProviderKey
from refwire.markers import Component, Injected


class Database:
    pass


class Clock:
    pass


class BaseConsumer:
    database: Injected[Database]
    label: str = "base"


class Consumer(BaseConsumer):
    clock: Injected[Clock]
    replica: Injected[Annotated[Database, Component("replica")]]
    registry: ClassVar[dict[str, int]] = {}


def test_inspect_collects_points_base_first() -> None:
    inspector = InjectionPointInspector()

    points = inspector.inspect(Consumer())

    assert points == (
        InjectionPoint(name="database", key=ProviderKey(Database)),
        InjectionPoint(name="clock", key=ProviderKey(Clock)),
        InjectionPoint(
            name="replica",
            key=ProviderKey.from_dependency(Database, Component("replica")),
        ),
    )


def test_inspect_caches_per_class() -> None:
    inspector = InjectionPointInspector()

    assert inspector.inspect(Consumer()) is inspector.inspect(Consumer())


def test_consumer_without_points() -> None:
    assert InjectionPointInspector().inspect(Database()) == ()


def test_inspect_callable_hides_injected_parameters() -> None:
    def handler(value: int, clock: Injected[Clock]) -> None:
        _ = value, clock

    inspection = InjectionPointInspector().inspect_callable(handler)

    assert inspection.injected_parameters == (
        InjectionPoint(name="clock", key=ProviderKey(Clock)),
    )
    assert tuple(inspection.public_signature.parameters) == ("value",)
    assert inspection.signature == inspect.signature(handler)


def test_unresolvable_annotations_yield_no_points() -> None:
    class Partial:
        clock: Injected[Clock]
        unknown: Undefined  # type: ignore[name-defined] # noqa: F821

    assert InjectionPointInspector().inspect_class(Partial) == ()
