"""Pytest plugin that supplies ``Injected[...]`` test parameters from a per-test graph.

Enable it with ``pytest_plugins = ["refwire.integrations.pytest_plugin"]``.
"""

from refwire.integrations.pytest_plugin.plugin import (
    _refwire_state,
    pytest_pycollect_makeitem,
    pytest_pyfunc_call,
    refwire_graph,
)

__all__ = [
    "_refwire_state",
    "pytest_pycollect_makeitem",
    "pytest_pyfunc_call",
    "refwire_graph",
]
