from __future__ import annotations

import pytest

from refwire.exceptions import RefWireCircularDependencyError
from refwire.factories import ConcreteTypeFactory
from refwire.keys import ProviderKey
from refwire.providers import Provider
from refwire.resolution_stack import ResolutionStack, active_resolution_stack
from refwire.scope_cache import CacheItem


class Database:
    pass


class Clock:
    pass


def _item() -> CacheItem:
    provider = Provider(ProviderKey(Database), ConcreteTypeFactory(Database))
    return CacheItem(provider=provider, instance=Database())


def test_push_rejects_key_under_construction() -> None:
    stack = ResolutionStack()
    stack.push(ProviderKey(Database))
    stack.push(ProviderKey(Clock))

    with pytest.raises(RefWireCircularDependencyError) as exc_info:
        stack.push(ProviderKey(Database))

    assert exc_info.value.stack == [ProviderKey(Database), ProviderKey(Clock)]
    assert stack.keys == [ProviderKey(Database), ProviderKey(Clock)]


def test_record_targets_innermost_frame() -> None:
    stack = ResolutionStack()
    outer = stack.push(ProviderKey(Database))
    inner = stack.push(ProviderKey(Clock))
    item = _item()

    stack.record(item)

    assert inner.acquired == [item]
    assert outer.acquired == []
    assert stack.pop() is inner
    assert stack.top is outer


def test_record_without_frames_is_ignored() -> None:
    stack = ResolutionStack()

    stack.record(_item())
    stack.discard(_item())

    assert stack.top is None


def test_discard_removes_latest_record() -> None:
    stack = ResolutionStack()
    frame = stack.push(ProviderKey(Database))
    first = _item()
    second = _item()
    stack.record(first)
    stack.record(second)
    stack.record(first)

    stack.discard(first)

    assert frame.acquired == [first, second]


def test_active_stack_is_shared_by_nested_calls() -> None:
    with active_resolution_stack() as outer:
        outer.push(ProviderKey(Database))
        with active_resolution_stack() as inner:
            assert inner is outer

    with active_resolution_stack() as fresh:
        assert fresh is not outer
        assert fresh.frames == []
