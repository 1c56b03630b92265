from __future__ import annotations

import pytest

from refwire import Graph, Injected, provides

pytest_plugins = ["refwire.integrations.pytest_plugin"]


class _Storage:
    pass


class _FakeStorage(_Storage):
    pass


class _Controller:
    storage: Injected[_Storage]


class _TestModule:
    @provides(provides=_Storage)
    def storage(self) -> _FakeStorage:
        return _FakeStorage()

    @provides
    def controller(self) -> _Controller:
        return _Controller()


@pytest.fixture()
def refwire_graph() -> Graph:
    graph = Graph()
    graph.register(_TestModule())
    return graph


@pytest.fixture()
def value() -> int:
    return 42


def test_injected_parameters_are_referenced_from_refwire_graph(
    value: int,
    storage: Injected[_Storage],
    refwire_graph: Graph,
) -> None:
    assert value == 42
    assert isinstance(storage, _FakeStorage)
    assert refwire_graph.get_provider(_Storage).reference_count == 1


def test_parameters_share_cached_instances(
    controller: Injected[_Controller],
    storage: Injected[_Storage],
    refwire_graph: Graph,
) -> None:
    assert controller.storage is storage
    assert refwire_graph.get_provider(_Controller).reference_count == 1
    assert refwire_graph.get_provider(_Storage).reference_count == 2
