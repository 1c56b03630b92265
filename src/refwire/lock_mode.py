from __future__ import annotations

from enum import Enum


class LockMode(Enum):
    """Select how a graph serializes its mutating operations.

    Every reference count change, cache insert/evict, and registry write of a
    graph runs inside one mutual-exclusion domain per graph.
    """

    THREAD = "thread"
    """Guard graph operations with a reentrant ``threading.RLock``."""

    NONE = "none"
    """Disable locking; the caller guarantees single-threaded use."""
