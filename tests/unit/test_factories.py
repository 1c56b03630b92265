from __future__ import annotations

from collections import OrderedDict

import pytest

from refwire.exceptions import RefWireInvalidRegistrationError
from refwire.factories import (
    CallableFactory,
    ClassNameFactory,
    ConcreteTypeFactory,
    InstanceFactory,
    ProviderFactory,
    import_class,
)
from refwire.keys import ProviderKey

KEY = ProviderKey(dict)


def test_factories_implement_the_protocol() -> None:
    factories: list[object] = [
        ConcreteTypeFactory(dict),
        ClassNameFactory("collections.OrderedDict"),
        CallableFactory(dict),
        InstanceFactory({}),
    ]

    assert all(isinstance(factory, ProviderFactory) for factory in factories)


def test_concrete_type_factory_builds_new_instances() -> None:
    factory = ConcreteTypeFactory(dict)

    assert factory.create(KEY) is not factory.create(KEY)


def test_class_name_factory_imports_eagerly() -> None:
    factory = ClassNameFactory("collections.OrderedDict")

    assert factory.concrete_type is OrderedDict
    assert isinstance(factory.create(KEY), OrderedDict)
    assert factory == ClassNameFactory("collections.OrderedDict")


def test_instance_factory_compares_by_identity() -> None:
    instance: dict[str, int] = {}

    assert InstanceFactory(instance) == InstanceFactory(instance)
    assert InstanceFactory(instance) != InstanceFactory({})
    assert InstanceFactory(instance).create(KEY) is instance


@pytest.mark.parametrize(
    ("class_name", "message"),
    [
        ("OrderedDict", "dotted path"),
        ("refwire_missing_module.Thing", "Unable to import module"),
        ("collections.NotThere", "does not name a class"),
    ],
)
def test_import_class_errors(class_name: str, message: str) -> None:
    with pytest.raises(RefWireInvalidRegistrationError, match=message):
        import_class(class_name)
