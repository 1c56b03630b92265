from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterator
from contextlib import AbstractContextManager, contextmanager, nullcontext, suppress
from typing import Any, Literal, TypeVar, overload

from refwire.defaults import DEFAULT_LIFETIME, DEFAULT_LOCK_MODE, DEFAULT_SCOPE_CACHE_NAME
from refwire.exceptions import RefWireReferenceCountError
from refwire.factories import (
    CallableFactory,
    ClassNameFactory,
    ConcreteTypeFactory,
    InstanceFactory,
    ProviderFactory,
)
from refwire.injection import InjectionPoint, InjectionPointDiscovery, InjectionPointInspector
from refwire.keys import ProviderKey
from refwire.lock_mode import LockMode
from refwire.modules import ModuleBindingsExtractor
from refwire.providers import Lifetime, OnFreedListener, Provider
from refwire.registry import ProviderRegistry
from refwire.resolution_stack import ResolutionFrame, ResolutionStack, active_resolution_stack
from refwire.scope_cache import CacheItem, ScopeCache
from refwire.validators import DependencyRegistrationValidator

T = TypeVar("T")
ConsumerT = TypeVar("ConsumerT")

logger = logging.getLogger(__name__)
_MISSING_SLOT: Any = object()


class Graph:
    """Resolve, inject, and reference-count provided instances.

    A graph owns a provider registry and the scope caches of everything
    registered on it. Consumers take references with ``inject`` (every
    ``Injected[...]`` attribute) or ``reference`` (one key), and give them back
    with ``release`` or ``dereference``. While a scoped provider is referenced
    every resolution returns the same instance; the instance is freed the
    moment its count returns to zero, and the references it took while it was
    being built are released with it.

    Constructing an instance resolves its own injection points on the same
    resolution stack, so a provider that depends on itself, directly or
    through other providers, fails with ``RefWireCircularDependencyError``.
    Any failure rolls back every reference taken by the failed call.
    """

    def __init__(
        self,
        *,
        lock_mode: LockMode = DEFAULT_LOCK_MODE,
        injection_inspector: InjectionPointDiscovery | None = None,
    ) -> None:
        """Initialize an empty graph.

        Args:
            lock_mode: ``LockMode.THREAD`` serializes every graph operation
                under one reentrant lock; ``LockMode.NONE`` leaves
                coordination to the caller.
            injection_inspector: Collaborator that enumerates the injection
                points of consumers. Defaults to ``InjectionPointInspector``,
                which reads ``Injected[...]`` class annotations.

        Examples:
            .. code-block:: python

                graph = Graph()
                graph.register(AppModule())

                screen = graph.inject(Screen())
                ...
                graph.release(screen)

        """
        self._lock_mode = lock_mode
        self._lock: AbstractContextManager[Any] = (
            threading.RLock() if lock_mode is LockMode.THREAD else nullcontext()
        )
        self._injection_inspector = injection_inspector or InjectionPointInspector()

        self._registry = ProviderRegistry()
        self._bindings_extractor = ModuleBindingsExtractor()
        self._registration_validator = DependencyRegistrationValidator()
        self._default_scope_cache = ScopeCache(name=DEFAULT_SCOPE_CACHE_NAME)
        self._module_scope_caches: dict[int, tuple[object, ScopeCache]] = {}
        self._freed_listeners: list[OnFreedListener] = []
        self._watched_providers: set[Provider] = set()

    @property
    def lock_mode(self) -> LockMode:
        return self._lock_mode

    @property
    def default_scope_cache(self) -> ScopeCache:
        """Scope cache shared by singleton registrations made directly on the graph."""
        return self._default_scope_cache

    # region Registration
    def register(self, module: object) -> ScopeCache:
        """Register every ``@provides`` method of ``module``.

        Singleton providers of one module share one scope cache, which is
        returned. Registering the same module object again returns the same
        cache and changes nothing.

        Raises:
            RefWireProviderConflictError: If any binding conflicts with a
                registered provider; none of the module's bindings are kept.
            RefWireInvalidRegistrationError: If a marked method cannot be
                turned into a provider.

        """
        with self._lock:
            registered = self._module_scope_caches.get(id(module))
            if registered is not None:
                return registered[1]

            scope_cache = ScopeCache(name=type(module).__qualname__)
            providers = [
                Provider(
                    binding.key,
                    binding.factory,
                    scope_cache=scope_cache if binding.lifetime is Lifetime.SINGLETON else None,
                )
                for binding in self._bindings_extractor.extract(module)
            ]
            for provider in self._registry.register_all(providers):
                self._watch(provider)
            self._module_scope_caches[id(module)] = (module, scope_cache)

        logger.info(
            "Registered module %s with %d provider(s)",
            type(module).__qualname__,
            len(providers),
        )
        return scope_cache

    def scope_cache_of(self, module: object) -> ScopeCache | None:
        """Return the scope cache of a registered module, if it was registered."""
        registered = self._module_scope_caches.get(id(module))
        return registered[1] if registered is not None else None

    def register_provider(self, provider: Provider) -> Provider:
        """Register a ready-made provider and return the provider bound to its key.

        Raises:
            RefWireProviderConflictError: If a different provider is bound to
                an equal key.

        """
        with self._lock:
            return self._watch(self._registry.register(provider))

    def add_concrete(
        self,
        concrete_type: type[Any],
        *,
        provides: Any | Literal["infer"] = "infer",
        qualifier: Any = None,
        lifetime: Lifetime = DEFAULT_LIFETIME,
        scope_cache: ScopeCache | None = None,
    ) -> Provider:
        """Register a class instantiated through its zero-argument constructor.

        Args:
            concrete_type: Class to instantiate.
            provides: Contract type, or ``"infer"`` to use ``concrete_type``.
            qualifier: Optional qualifier such as ``Component("primary")``.
            lifetime: Singleton or transient.
            scope_cache: Cache for a singleton provider; defaults to the
                graph's default scope cache.

        Raises:
            RefWireInvalidRegistrationError: If ``concrete_type`` is not an
                instantiable subclass of ``provides``.
            RefWireProviderConflictError: If the key is bound to something else.

        """
        resolved_provides = concrete_type if provides == "infer" else provides
        self._registration_validator.validate_provides(resolved_provides, method_name="add_concrete")
        key = ProviderKey.from_dependency(resolved_provides, qualifier)
        self._registration_validator.validate_concrete_type(concrete_type, key.provides)
        return self._add(key, ConcreteTypeFactory(concrete_type), lifetime, scope_cache)

    def add_class_name(
        self,
        provides: Any,
        class_name: str,
        *,
        qualifier: Any = None,
        lifetime: Lifetime = DEFAULT_LIFETIME,
        scope_cache: ScopeCache | None = None,
    ) -> Provider:
        """Register a class given by its dotted path, e.g. ``"app.services.SqlRepository"``.

        The class is imported immediately and must have a zero-argument
        constructor.

        Raises:
            RefWireInvalidRegistrationError: If the class cannot be imported or
                does not fulfil ``provides``.

        """
        self._registration_validator.validate_provides(provides, method_name="add_class_name")
        key = ProviderKey.from_dependency(provides, qualifier)
        factory = ClassNameFactory(class_name)
        self._registration_validator.validate_concrete_type(factory.concrete_type, key.provides)
        return self._add(key, factory, lifetime, scope_cache)

    def add_factory(
        self,
        factory: Callable[[], Any],
        *,
        provides: Any | Literal["infer"] = "infer",
        qualifier: Any = None,
        lifetime: Lifetime = DEFAULT_LIFETIME,
        scope_cache: ScopeCache | None = None,
    ) -> Provider:
        """Register a zero-argument callable that builds new instances.

        ``provides`` is inferred from the return annotation unless given.

        Raises:
            RefWireInvalidRegistrationError: If the factory is not callable,
                takes required parameters, or has no usable return annotation.

        """
        self._registration_validator.validate_factory(factory)
        self._bindings_extractor.validate_no_arguments(factory)
        resolved_provides = (
            self._bindings_extractor.extract_return_type(factory) if provides == "infer" else provides
        )
        self._registration_validator.validate_provides(resolved_provides, method_name="add_factory")
        key = ProviderKey.from_dependency(resolved_provides, qualifier)
        return self._add(key, CallableFactory(factory), lifetime, scope_cache)

    def add_instance(
        self,
        instance: Any,
        *,
        provides: Any | Literal["infer"] = "infer",
        qualifier: Any = None,
    ) -> Provider:
        """Register a pre-built instance, always shared through the default scope cache.

        The instance leaves the cache when its last reference is released and
        is handed out again on the next reference.
        """
        resolved_provides = type(instance) if provides == "infer" else provides
        self._registration_validator.validate_provides(resolved_provides, method_name="add_instance")
        key = ProviderKey.from_dependency(resolved_provides, qualifier)
        return self._add(key, InstanceFactory(instance), Lifetime.SINGLETON, None)

    # endregion Registration

    # region Resolution
    def inject(self, consumer: ConsumerT) -> ConsumerT:
        """Reference and assign every injection point of ``consumer``.

        Each point takes one reference on its provider. Instances constructed
        along the way have their own injection points resolved first.

        Returns:
            ``consumer``, for chaining.

        Raises:
            RefWireProviderMissingError: If a point's key has no provider.
            RefWireCircularDependencyError: If construction re-enters a key
                that is still being constructed.
            RefWireProvideError: If a factory fails.

        On failure every reference taken by this call is released again and
        the consumer's slots are restored before the error propagates.

        """
        with self._lock, active_resolution_stack() as stack:
            self._inject_into(consumer, stack)
        return consumer

    def release(self, consumer: ConsumerT) -> ConsumerT:
        """Release one reference for every populated injection point of ``consumer``.

        This mirrors the references taken by the latest ``inject`` on the
        consumer. Points whose slot is unset or ``None`` are skipped; slots
        keep their values.

        Raises:
            RefWireReferenceCountError: If a slot holds an instance that is not
                live for its provider.

        """
        with self._lock, active_resolution_stack() as stack:
            for point in self._injection_inspector.inspect(consumer):
                instance = getattr(consumer, point.name, None)
                if instance is None:
                    continue
                self._dereference(instance, point.key, stack)
        return consumer

    @overload
    def reference(self, provides: type[T], qualifier: Any = None) -> T: ...

    @overload
    def reference(self, provides: Any, qualifier: Any = None) -> Any: ...

    def reference(self, provides: Any, qualifier: Any = None) -> Any:
        """Take one reference on the provider of a key and return its instance.

        ``provides`` may be a type or an ``Annotated[T, Component(...)]`` token.
        Called from inside a factory, the reference is held by the instance
        under construction and released with it.
        """
        key = ProviderKey.from_dependency(provides, qualifier)
        with self._lock, active_resolution_stack() as stack:
            return self._acquire(key, stack).instance

    def dereference(self, instance: Any, provides: Any, qualifier: Any = None) -> None:
        """Release one reference to ``instance`` taken through ``reference``.

        Called from inside a factory, a reference the factory took earlier is
        released without becoming a held edge of the instance under construction.

        Raises:
            RefWireProviderMissingError: If the key has no provider.
            RefWireReferenceCountError: If ``instance`` is not live for it.

        """
        key = ProviderKey.from_dependency(provides, qualifier)
        with self._lock, active_resolution_stack() as stack:
            self._dereference(instance, key, stack)

    @contextmanager
    def use(self, provides: Any, qualifier: Any = None) -> Iterator[Any]:
        """Reference an instance for the duration of a ``with`` block.

        Examples:
            .. code-block:: python

                with graph.use(Controller) as controller:
                    controller.refresh()

        """
        instance = self.reference(provides, qualifier)
        try:
            yield instance
        finally:
            self.dereference(instance, provides, qualifier)

    def get_provider(self, provides: Any, qualifier: Any = None) -> Provider:
        """Return the provider registered for a key.

        Raises:
            RefWireProviderMissingError: If the key has no provider.

        """
        key = ProviderKey.from_dependency(provides, qualifier)
        with self._lock:
            return self._registry.lookup(key)

    def providers(self) -> list[Provider]:
        """Return every registered provider."""
        with self._lock:
            return self._registry.values()

    # endregion Resolution

    # region Listeners
    def register_provider_freed_listener(self, listener: OnFreedListener) -> None:
        """Call ``listener`` with the provider every time one of its instances is freed."""
        with self._lock:
            self._freed_listeners.append(listener)

    def unregister_provider_freed_listener(self, listener: OnFreedListener) -> None:
        with self._lock:
            self._freed_listeners.remove(listener)

    def clear_provider_freed_listeners(self) -> None:
        with self._lock:
            self._freed_listeners.clear()

    # endregion Listeners

    def _add(
        self,
        key: ProviderKey,
        factory: ProviderFactory,
        lifetime: Lifetime,
        scope_cache: ScopeCache | None,
    ) -> Provider:
        if lifetime is Lifetime.SINGLETON and scope_cache is None:
            scope_cache = self._default_scope_cache
        if lifetime is Lifetime.TRANSIENT:
            scope_cache = None
        return self.register_provider(Provider(key, factory, scope_cache=scope_cache))

    def _watch(self, provider: Provider) -> Provider:
        if provider not in self._watched_providers:
            provider.add_on_freed_listener(self._notify_provider_freed)
            self._watched_providers.add(provider)
        return provider

    def _notify_provider_freed(self, provider: Provider) -> None:
        for listener in list(self._freed_listeners):
            listener(provider)

    def _acquire(self, key: ProviderKey, stack: ResolutionStack) -> CacheItem:
        frame = stack.push(key)
        try:
            provider = self._registry.lookup(key)
            item = provider.find_item()
            if item is not None:
                provider.increment_ref(item)
            else:
                item = self._construct(provider, frame, stack)
        finally:
            stack.pop()
        stack.record(item)
        return item

    def _construct(
        self,
        provider: Provider,
        frame: ResolutionFrame,
        stack: ResolutionStack,
    ) -> CacheItem:
        try:
            instance = provider.create_instance()
            self._inject_into(instance, stack)
            return provider.attach(instance, tuple(frame.acquired))
        except BaseException:
            if frame.acquired:
                logger.debug(
                    "Construction of '%s' failed, releasing %d edge(s)",
                    provider.key,
                    len(frame.acquired),
                )
            for edge in reversed(frame.acquired):
                edge.provider.decrement_ref(edge)
            frame.acquired.clear()
            raise

    def _inject_into(self, target: object, stack: ResolutionStack) -> None:
        points = self._injection_inspector.inspect(target)
        assigned: list[tuple[InjectionPoint, CacheItem, Any]] = []
        try:
            for point in points:
                previous = getattr(target, point.name, _MISSING_SLOT)
                item = self._acquire(point.key, stack)
                assigned.append((point, item, previous))
                setattr(target, point.name, item.instance)
        except BaseException:
            self._roll_back(target, assigned, stack)
            raise

    def _roll_back(
        self,
        target: object,
        assigned: list[tuple[InjectionPoint, CacheItem, Any]],
        stack: ResolutionStack,
    ) -> None:
        if assigned:
            logger.debug(
                "Injection into %s failed, rolling back %d reference(s)",
                type(target).__qualname__,
                len(assigned),
            )
        for point, item, previous in reversed(assigned):
            stack.discard(item)
            item.provider.decrement_ref(item)
            if previous is _MISSING_SLOT:
                with suppress(AttributeError):
                    delattr(target, point.name)
            else:
                setattr(target, point.name, previous)

    def _dereference(self, instance: Any, key: ProviderKey, stack: ResolutionStack) -> None:
        provider = self._registry.lookup(key)
        item = provider.find_item(instance)
        if item is None:
            raise RefWireReferenceCountError(key, f"{instance!r} is not a live instance.")
        stack.discard(item)
        provider.decrement_ref(item)
