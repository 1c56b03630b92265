from __future__ import annotations

import logging
from enum import Enum, auto
from typing import Any, Protocol

from refwire.exceptions import RefWireError, RefWireProvideError, RefWireReferenceCountError
from refwire.factories import ProviderFactory
from refwire.keys import ProviderKey
from refwire.scope_cache import CacheItem, ScopeCache

logger = logging.getLogger(__name__)

MISSING: Any = object()


class Lifetime(Enum):
    """Defines how long a provided instance is shared."""

    TRANSIENT = auto()
    """A new instance is created for every resolution and freed on its own."""

    SINGLETON = auto()
    """One instance is shared through a scope cache while anything references it."""


class OnFreedListener(Protocol):
    """Callback invoked synchronously when a provider's instance is discarded."""

    def __call__(self, provider: Provider) -> None: ...


class Provider:
    """Bind a provider key to a factory and own the instances it builds.

    A provider with a ``ScopeCache`` is scoped: at most one instance is live at
    a time, shared by every holder, and the provider's reference count is that
    instance's count. Without a cache every resolution builds an independent
    instance with its own count of one.

    Reference counts only change through ``attach``, ``increment_ref`` and
    ``decrement_ref``, and every change is mirrored onto the held edges, so
    a dependency never has fewer references than any of its holders. Reaching
    zero evicts the instance, notifies the listeners, and then releases the
    edges the instance acquired while it was constructed, depth first.
    """

    def __init__(
        self,
        key: ProviderKey,
        factory: ProviderFactory,
        *,
        scope_cache: ScopeCache | None = None,
    ) -> None:
        self.key = key
        self.factory = factory
        self.scope_cache = scope_cache
        self._live: dict[int, CacheItem] = {}
        self._listeners: list[OnFreedListener] = []

    @property
    def lifetime(self) -> Lifetime:
        return Lifetime.SINGLETON if self.scope_cache is not None else Lifetime.TRANSIENT

    @property
    def reference_count(self) -> int:
        """Return the number of outstanding references across live instances."""
        return sum(item.references for item in self._live.values())

    def find_item(self, instance: Any = MISSING) -> CacheItem | None:
        """Return a live item.

        Without ``instance`` this is the cached item of a scoped provider (always
        ``None`` for transient providers). With ``instance`` it is the item
        holding exactly that object.
        """
        if instance is MISSING:
            if self.scope_cache is None:
                return None
            return self.scope_cache.find_by_key(self.key)
        item = self._live.get(id(instance))
        if item is None or item.instance is not instance:
            return None
        return item

    def get(self) -> Any:
        """Return the live scoped instance.

        The 0 -> 1 transition, which constructs the instance and resolves its
        injection points, belongs to the graph: ``create_instance`` followed by
        ``attach``. Counts are never changed here.

        Raises:
            RefWireReferenceCountError: If no instance is live, including for
                transient providers, which never share one.

        """
        item = self.find_item()
        if item is None:
            raise RefWireReferenceCountError(self.key, "no live instance is referenced.")
        return item.instance

    def create_instance(self) -> Any:
        """Invoke the factory, wrapping its failures in ``RefWireProvideError``."""
        try:
            instance = self.factory.create(self.key)
        except RefWireError:
            raise
        except Exception as error:
            raise RefWireProvideError(self.key, f"{type(error).__name__}: {error}") from error
        if instance is None:
            raise RefWireProvideError(self.key, "the factory returned None.")
        return instance

    def attach(self, instance: Any, held: tuple[CacheItem, ...] = ()) -> CacheItem:
        """Publish a newly constructed instance with a reference count of one."""
        if self.find_item(instance) is not None:
            raise RefWireProvideError(
                self.key,
                f"the factory returned an instance that is already live ({instance!r}).",
            )
        item = CacheItem(provider=self, instance=instance, references=1, held=held)
        self._live[id(instance)] = item
        if self.scope_cache is not None:
            self.scope_cache.cache(self, item)
        logger.debug("Constructed '%s' holding %d edge(s)", self.key, len(held))
        return item

    def increment_ref(self, item: CacheItem | None = None) -> CacheItem:
        """Add one reference to a live item (the cached one by default).

        The edges the item holds gain a reference too, transitively, so a
        dependency is counted once for every reference to each of its holders.
        """
        item = self._live_item(item)
        item.references += 1
        for edge in item.held:
            edge.provider.increment_ref(edge)
        return item

    def decrement_ref(self, item: CacheItem | None = None) -> bool:
        """Remove one reference from a live item and free it on reaching zero.

        Held edges lose one reference as well. When the item itself reaches
        zero it is freed first, so its listeners run before those of the
        providers it held.

        Returns:
            ``True`` when the item was freed by this call.

        Raises:
            RefWireReferenceCountError: If the item is not live, which would
                drive the count below zero.

        """
        item = self._live_item(item)
        if item.references <= 0:  # pragma: no cover - live items always hold a reference
            raise RefWireReferenceCountError(self.key, "reference count is already zero.")
        item.references -= 1
        if item.references:
            for edge in item.held:
                edge.provider.decrement_ref(edge)
            return False
        self._free(item)
        return True

    def held_edges(self, instance: Any = MISSING) -> tuple[Provider, ...]:
        """Return the providers held by a live item, in acquisition order."""
        item = self.find_item(instance)
        if item is None:
            return ()
        return tuple(edge.provider for edge in item.held)

    def add_on_freed_listener(self, listener: OnFreedListener) -> None:
        self._listeners.append(listener)

    def remove_on_freed_listener(self, listener: OnFreedListener) -> None:
        self._listeners.remove(listener)

    def _live_item(self, item: CacheItem | None) -> CacheItem:
        if item is None:
            item = self.find_item()
            if item is None:
                raise RefWireReferenceCountError(self.key, "no live instance is referenced.")
            return item
        if item.provider is not self or self._live.get(id(item.instance)) is not item:
            raise RefWireReferenceCountError(self.key, "the instance is not live.")
        return item

    def _free(self, item: CacheItem) -> None:
        del self._live[id(item.instance)]
        if self.scope_cache is not None:
            self.scope_cache.evict_key(self.key)
        logger.debug("Freed '%s', cascading to %d edge(s)", self.key, len(item.held))

        try:
            for listener in list(self._listeners):
                listener(self)
        finally:
            held, item.held = item.held, ()
            for edge in held:
                edge.provider.decrement_ref(edge)

    def __repr__(self) -> str:
        return (
            f"Provider(key={self.key!s}, lifetime={self.lifetime.name}, "
            f"references={self.reference_count})"
        )
