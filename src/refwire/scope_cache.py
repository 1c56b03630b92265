from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from refwire.keys import ProviderKey

if TYPE_CHECKING:
    from refwire.providers import Provider


@dataclass(eq=False, slots=True)
class CacheItem:
    """A live instance together with its provider, count, and held edges."""

    provider: Provider
    """The provider that built the instance."""
    instance: Any
    """The live instance."""
    references: int = 1
    """Outstanding references to this instance."""
    held: tuple[CacheItem, ...] = ()
    """Items acquired while this instance was being constructed."""

    def __repr__(self) -> str:
        return (
            f"CacheItem(key={self.provider.key!s}, references={self.references}, "
            f"held={len(self.held)})"
        )


class ScopeCache:
    """Hold at most one live instance per provider key.

    One cache is usually shared by every singleton provider of a module. An
    entry exists exactly while its provider's reference count is positive;
    providers add and evict entries at their 0 -> 1 and 1 -> 0 transitions.
    """

    def __init__(self, name: str | None = None) -> None:
        self.name = name
        self._items: dict[ProviderKey, CacheItem] = {}

    def find(self, provides: Any, qualifier: Any = None) -> CacheItem | None:
        """Return the cached item for a type and qualifier, if any."""
        return self.find_by_key(ProviderKey.from_dependency(provides, qualifier))

    def find_by_key(self, key: ProviderKey) -> CacheItem | None:
        """Return the cached item for a key, if any."""
        return self._items.get(key)

    def cache(self, provider: Provider, item: CacheItem) -> None:
        """Store the live item of ``provider``."""
        self._items[provider.key] = item

    def evict(self, provides: Any, qualifier: Any = None) -> CacheItem | None:
        """Remove and return the cached item for a type and qualifier."""
        return self.evict_key(ProviderKey.from_dependency(provides, qualifier))

    def evict_key(self, key: ProviderKey) -> CacheItem | None:
        """Remove and return the cached item for a key."""
        return self._items.pop(key, None)

    def keys(self) -> list[ProviderKey]:
        return list(self._items)

    def __contains__(self, key: object) -> bool:
        return key in self._items

    def __iter__(self) -> Iterator[CacheItem]:
        return iter(list(self._items.values()))

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        label = f"{self.name!r}, " if self.name else ""
        return f"ScopeCache({label}size={len(self._items)})"
