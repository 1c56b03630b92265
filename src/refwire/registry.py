from __future__ import annotations

from refwire.exceptions import RefWireProviderConflictError, RefWireProviderMissingError
from refwire.keys import ProviderKey
from refwire.providers import Provider


class ProviderRegistry:
    """Holds every provider registered in a graph, by key."""

    def __init__(self) -> None:
        self._providers: dict[ProviderKey, Provider] = {}

    def register(self, provider: Provider) -> Provider:
        """Bind ``provider`` to its key and return the provider now bound.

        Registering the same provider again, or an identical binding, keeps the
        provider already bound and returns it.

        Raises:
            RefWireProviderConflictError: If a different provider is bound to
                an equal key.

        """
        existing = self._providers.get(provider.key)
        if existing is None:
            self._providers[provider.key] = provider
            return provider
        if existing is provider or _is_identical_binding(existing, provider):
            return existing
        raise RefWireProviderConflictError(provider.key, existing, provider)

    def register_all(self, providers: list[Provider]) -> list[Provider]:
        """Register several providers at once, binding none of them on conflict.

        Raises:
            RefWireProviderConflictError: If any provider conflicts with a bound
                provider or with another provider of the same batch.

        """
        staged: dict[ProviderKey, Provider] = {}
        for provider in providers:
            existing = staged.get(provider.key) or self._providers.get(provider.key)
            if (
                existing is not None
                and existing is not provider
                and not _is_identical_binding(existing, provider)
            ):
                raise RefWireProviderConflictError(provider.key, existing, provider)
            staged.setdefault(provider.key, existing or provider)
        return [self.register(provider) for provider in providers]

    def lookup(self, key: ProviderKey) -> Provider:
        """Get the provider bound to ``key``.

        Raises:
            RefWireProviderMissingError: If nothing is bound to ``key``.

        """
        provider = self._providers.get(key)
        if provider is None:
            raise RefWireProviderMissingError(key)
        return provider

    def find(self, key: ProviderKey) -> Provider | None:
        """Get the provider bound to ``key``, if any."""
        return self._providers.get(key)

    def values(self) -> list[Provider]:
        """Get all registered providers."""
        return list(self._providers.values())

    def __contains__(self, key: object) -> bool:
        return key in self._providers

    def __len__(self) -> int:
        return len(self._providers)


def _is_identical_binding(existing: Provider, candidate: Provider) -> bool:
    return (
        existing.key == candidate.key
        and existing.scope_cache is candidate.scope_cache
        and existing.factory == candidate.factory
    )
