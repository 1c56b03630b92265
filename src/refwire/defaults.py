from refwire.lock_mode import LockMode
from refwire.providers import Lifetime

DEFAULT_LIFETIME = Lifetime.SINGLETON
"""Lifetime used by registrations that omit ``lifetime``."""

DEFAULT_LOCK_MODE = LockMode.THREAD
"""Lock mode used by graphs that omit ``lock_mode``."""

DEFAULT_SCOPE_CACHE_NAME = "graph"
"""Name of the scope cache a graph creates for its own singleton registrations."""
