from __future__ import annotations

import functools
import inspect
from collections.abc import Callable, Iterator
from contextlib import ExitStack, suppress
from typing import Any, cast

import pytest

from refwire.graph import Graph
from refwire.injection import InjectionPoint, InjectionPointInspector

_REFWIRE_GRAPH_ATTR = "_refwire_graph"
_REFWIRE_INJECTED_PARAMETERS_ATTR = "__refwire_pytest_injected_parameters__"
_REFWIRE_ORIGINAL_SIGNATURE_ATTR = "__refwire_pytest_original_signature__"
_INJECTION_POINT_INSPECTOR = InjectionPointInspector()


@pytest.fixture()
def refwire_graph() -> Graph:
    """Create a per-test graph used by the plugin.

    Tests that use ``Injected[...]`` parameters reference them from this graph.
    Override the fixture to register the modules a test suite needs. It is
    function-scoped, so registrations and live instances are isolated between
    tests unless the fixture scope is overridden.

    Returns:
        A new ``Graph`` instance.

    """
    return Graph()


@pytest.fixture(autouse=True)
def _refwire_state(
    request: pytest.FixtureRequest,
    refwire_graph: Graph,
) -> None:
    """Store plugin state on the test node for hook access."""
    node = cast("Any", request.node)
    setattr(node, _REFWIRE_GRAPH_ATTR, refwire_graph)


def pytest_pycollect_makeitem(
    collector: Any,
    name: str,
    obj: object,
) -> Any | None:
    """Hide ``Injected[...]`` parameters from pytest fixture name matching.

    Pytest treats test function parameters as fixture names. This hook rewrites
    the signature of test functions with injected parameters so those
    parameters are not reported as missing fixtures.

    Args:
        collector: Pytest collector instance.
        name: Collected object name.
        obj: Candidate object.

    Returns:
        ``None`` to continue default collection flow.

    """
    if not callable(obj):
        return None
    if not collector.istestfunction(obj, name):
        return None

    callable_obj = cast("Callable[..., Any]", obj)
    inspection = _INJECTION_POINT_INSPECTOR.inspect_callable(callable_obj)
    if not inspection.injected_parameters:
        return None

    obj_as_any = cast("Any", obj)
    obj_as_any.__dict__[_REFWIRE_INJECTED_PARAMETERS_ATTR] = inspection.injected_parameters
    obj_as_any.__dict__[_REFWIRE_ORIGINAL_SIGNATURE_ATTR] = inspection.signature
    obj_as_any.__signature__ = inspection.public_signature
    return None


@pytest.hookimpl(hookwrapper=True, tryfirst=True)
def pytest_pyfunc_call(pyfuncitem: pytest.Function) -> Iterator[None]:
    """Wrap test function execution to supply ``Injected[...]`` parameters.

    Every injected parameter takes one reference on the test graph right
    before the test body runs, and the references are released in reverse
    order once it returns or raises. If no graph is attached to the node, this
    hook is a no-op.

    Args:
        pyfuncitem: Collected pytest function item.

    Yields:
        Control back to pytest around test execution.

    """
    original_callable = cast("Callable[..., Any]", pyfuncitem.obj)
    original_callable_as_any = cast("Any", original_callable)
    injected_parameters = cast(
        "tuple[InjectionPoint, ...] | None",
        getattr(original_callable_as_any, _REFWIRE_INJECTED_PARAMETERS_ATTR, None),
    )
    if injected_parameters is None:
        injected_parameters = _INJECTION_POINT_INSPECTOR.inspect_callable(
            original_callable,
        ).injected_parameters
    if not injected_parameters:
        yield
        return

    item = cast("Any", pyfuncitem)
    graph = cast("Graph | None", getattr(item, _REFWIRE_GRAPH_ATTR, None))
    if graph is None:
        yield
        return

    had_signature_override = hasattr(original_callable_as_any, "__signature__")
    signature_override = cast("Any", getattr(original_callable_as_any, "__signature__", None))
    original_signature = cast(
        "inspect.Signature | None",
        getattr(original_callable_as_any, _REFWIRE_ORIGINAL_SIGNATURE_ATTR, None),
    )
    if original_signature is not None:
        original_callable_as_any.__signature__ = original_signature

    try:
        pyfuncitem.obj = _bind_injected_parameters(original_callable, injected_parameters, graph)
    finally:
        if had_signature_override:
            original_callable_as_any.__signature__ = signature_override
        else:
            with suppress(AttributeError):
                del original_callable_as_any.__signature__

    try:
        yield
    finally:
        pyfuncitem.obj = original_callable


def _bind_injected_parameters(
    callable_obj: Callable[..., Any],
    injected_parameters: tuple[InjectionPoint, ...],
    graph: Graph,
) -> Callable[..., Any]:
    def _reference_all(stack: ExitStack, kwargs: dict[str, Any]) -> None:
        for parameter in injected_parameters:
            if parameter.name in kwargs:
                continue
            kwargs[parameter.name] = stack.enter_context(graph.use(parameter.key))

    if inspect.iscoroutinefunction(callable_obj):

        @functools.wraps(callable_obj)
        async def _invoke_with_references(*args: Any, **kwargs: Any) -> Any:
            with ExitStack() as stack:
                _reference_all(stack, kwargs)
                return await callable_obj(*args, **kwargs)

        return _invoke_with_references

    @functools.wraps(callable_obj)
    def _invoke_with_references(*args: Any, **kwargs: Any) -> Any:
        with ExitStack() as stack:
            _reference_all(stack, kwargs)
            return callable_obj(*args, **kwargs)

    return _invoke_with_references
