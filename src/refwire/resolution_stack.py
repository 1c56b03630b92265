from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field

from refwire.exceptions import RefWireCircularDependencyError
from refwire.keys import ProviderKey
from refwire.scope_cache import CacheItem


@dataclass(slots=True)
class ResolutionFrame:
    """One key under construction and the items acquired on its behalf."""

    key: ProviderKey
    acquired: list[CacheItem] = field(default_factory=list)


@dataclass(slots=True)
class ResolutionStack:
    """Keys currently being constructed by one top-level graph call, outermost first."""

    frames: list[ResolutionFrame] = field(default_factory=list)

    @property
    def keys(self) -> list[ProviderKey]:
        return [frame.key for frame in self.frames]

    @property
    def top(self) -> ResolutionFrame | None:
        return self.frames[-1] if self.frames else None

    def push(self, key: ProviderKey) -> ResolutionFrame:
        """Enter the construction of ``key``.

        Raises:
            RefWireCircularDependencyError: If ``key`` is already being constructed.

        """
        if any(frame.key == key for frame in self.frames):
            raise RefWireCircularDependencyError(key, self.keys)
        frame = ResolutionFrame(key=key)
        self.frames.append(frame)
        return frame

    def pop(self) -> ResolutionFrame:
        return self.frames.pop()

    def record(self, item: CacheItem) -> None:
        """Record ``item`` as held by the key under construction, if any."""
        if self.frames:
            self.frames[-1].acquired.append(item)

    def discard(self, item: CacheItem) -> None:
        """Forget the most recent record of ``item`` on the key under construction."""
        if not self.frames:
            return
        acquired = self.frames[-1].acquired
        for index in range(len(acquired) - 1, -1, -1):
            if acquired[index] is item:
                del acquired[index]
                return


# Context variable for resolution tracking. Each thread (and each copied context)
# gets its own stack, while reentrant calls made by factories share the caller's.
_resolution_stack: ContextVar[ResolutionStack | None] = ContextVar(
    "refwire_resolution_stack",
    default=None,
)


@contextmanager
def active_resolution_stack() -> Iterator[ResolutionStack]:
    """Yield the stack of the running top-level call, creating it when there is none.

    The stack created here is discarded when the outermost call returns or raises.
    """
    stack = _resolution_stack.get()
    if stack is not None:
        yield stack
        return

    stack = ResolutionStack()
    token = _resolution_stack.set(stack)
    try:
        yield stack
    finally:
        _resolution_stack.reset(token)
