from __future__ import annotations

from typing import Annotated

import pytest

from refwire.exceptions import RefWireInvalidRegistrationError
from refwire.keys import ProviderKey
from refwire.markers import Component
from refwire.modules import PROVIDES_ATTR, ModuleBindingsExtractor, ProvidesSpec, provides
from refwire.providers import Lifetime


class Database:
    pass


class Clock:
    pass


class BaseModule:
    @provides
    def database(self) -> Database:
        return Database()

    @provides
    def clock(self) -> Clock:
        return Clock()


class ChildModule(BaseModule):
    def clock(self) -> Clock:
        return Clock()

    @provides(lifetime=Lifetime.TRANSIENT)
    def replica(self) -> Annotated[Database, Component("replica")]:
        return Database()

    def helper(self) -> int:
        return 1


class UnannotatedModule:
    @provides
    def database(self):  # type: ignore[no-untyped-def]
        return Database()


class ArgumentModule:
    @provides
    def database(self, name: str) -> Database:
        _ = name
        return Database()


@pytest.fixture()
def extractor() -> ModuleBindingsExtractor:
    return ModuleBindingsExtractor()


def test_provides_attaches_spec() -> None:
    spec = getattr(BaseModule.database, PROVIDES_ATTR)

    assert spec == ProvidesSpec(provides="infer", qualifier=None, lifetime=Lifetime.SINGLETON)


def test_provides_with_options() -> None:
    @provides(provides=Database, qualifier=Component("x"), lifetime=Lifetime.TRANSIENT)
    def factory() -> object:
        return Database()

    spec = getattr(factory, PROVIDES_ATTR)

    assert spec.provides is Database
    assert spec.qualifier == Component("x")
    assert spec.lifetime is Lifetime.TRANSIENT


def test_extract_walks_bases_and_skips_unmarked_overrides(
    extractor: ModuleBindingsExtractor,
) -> None:
    bindings = extractor.extract(ChildModule())

    assert [binding.key for binding in bindings] == [
        ProviderKey(Database),
        ProviderKey.from_dependency(Database, Component("replica")),
    ]
    assert [binding.lifetime for binding in bindings] == [
        Lifetime.SINGLETON,
        Lifetime.TRANSIENT,
    ]


def test_extracted_factory_calls_bound_method(extractor: ModuleBindingsExtractor) -> None:
    module = BaseModule()

    binding = extractor.extract(module)[0]

    assert isinstance(binding.factory.create(binding.key), Database)
    assert binding.factory.factory == module.database


def test_missing_return_annotation(extractor: ModuleBindingsExtractor) -> None:
    with pytest.raises(RefWireInvalidRegistrationError, match="UnannotatedModule.database"):
        extractor.extract(UnannotatedModule())


def test_required_arguments(extractor: ModuleBindingsExtractor) -> None:
    with pytest.raises(RefWireInvalidRegistrationError, match="must not take required"):
        extractor.extract(ArgumentModule())


def test_unresolvable_annotation_is_reported(extractor: ModuleBindingsExtractor) -> None:
    def factory() -> MissingType:  # type: ignore[name-defined] # noqa: F821
        return Database()

    with pytest.raises(RefWireInvalidRegistrationError, match="Original annotation error"):
        extractor.extract_return_type(factory)
