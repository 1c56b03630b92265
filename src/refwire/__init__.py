from refwire.exceptions import (
    RefWireCircularDependencyError,
    RefWireError,
    RefWireInvalidRegistrationError,
    RefWireProvideError,
    RefWireProviderConflictError,
    RefWireProviderMissingError,
    RefWireReferenceCountError,
)
from refwire.factories import (
    CallableFactory,
    ClassNameFactory,
    ConcreteTypeFactory,
    InstanceFactory,
    ProviderFactory,
)
from refwire.graph import Graph
from refwire.keys import ProviderKey
from refwire.lock_mode import LockMode
from refwire.markers import Component, Injected
from refwire.modules import provides
from refwire.providers import Lifetime, Provider
from refwire.scope_cache import CacheItem, ScopeCache

__all__ = [
    "CacheItem",
    "CallableFactory",
    "ClassNameFactory",
    "Component",
    "ConcreteTypeFactory",
    "Graph",
    "Injected",
    "InstanceFactory",
    "Lifetime",
    "LockMode",
    "Provider",
    "ProviderFactory",
    "ProviderKey",
    "RefWireCircularDependencyError",
    "RefWireError",
    "RefWireInvalidRegistrationError",
    "RefWireProvideError",
    "RefWireProviderConflictError",
    "RefWireProviderMissingError",
    "RefWireReferenceCountError",
    "ScopeCache",
    "provides",
]
