"""Shared pytest fixtures for refwire tests."""

import pytest

from refwire.graph import Graph
from refwire.lock_mode import LockMode


@pytest.fixture()
def graph() -> Graph:
    """Default graph with thread locking."""
    return Graph()


@pytest.fixture()
def graph_unlocked() -> Graph:
    """Graph with locking disabled."""
    return Graph(lock_mode=LockMode.NONE)


@pytest.fixture()
def freed_log(graph: Graph) -> list[type]:
    """Contract types of every provider freed on ``graph``, in notification order."""
    log: list[type] = []
    graph.register_provider_freed_listener(lambda provider: log.append(provider.key.provides))
    return log
