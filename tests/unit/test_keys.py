from __future__ import annotations

from typing import Annotated, Any, NamedTuple

import pytest

from refwire.exceptions import RefWireInvalidRegistrationError
from refwire.keys import ProviderKey
from refwire.markers import Component, Injected


class Database:
    pass


class Named(NamedTuple):
    value: Any


def test_unqualified_key() -> None:
    key = ProviderKey.from_dependency(Database)

    assert key == ProviderKey(Database)
    assert key.qualifier is None
    assert key.annotation is Database
    assert str(key) == "Database"


def test_qualifier_argument_and_annotated_token_are_equal() -> None:
    from_argument = ProviderKey.from_dependency(Database, Component("primary"))
    from_token = ProviderKey.from_dependency(Annotated[Database, Component("primary")])

    assert from_argument == from_token
    assert hash(from_argument) == hash(from_token)
    assert str(from_token) == "Database[Component(value='primary')]"


def test_qualifier_type_is_part_of_identity() -> None:
    component = ProviderKey.from_dependency(Database, Component("primary"))
    named = ProviderKey.from_dependency(Database, Named("primary"))

    assert component != named


def test_injected_marker_is_ignored() -> None:
    key = ProviderKey.from_dependency(Injected[Annotated[Database, Component("x")]])

    assert key == ProviderKey.from_dependency(Database, Component("x"))


def test_annotation_round_trips_qualifier() -> None:
    key = ProviderKey.from_dependency(Database, Component("replica"))

    assert ProviderKey.from_dependency(key.annotation) == key


def test_key_passthrough() -> None:
    key = ProviderKey.from_dependency(Database)

    assert ProviderKey.from_dependency(key) is key
    with pytest.raises(RefWireInvalidRegistrationError):
        ProviderKey.from_dependency(key, Component("x"))


def test_multiple_qualifiers_are_rejected() -> None:
    with pytest.raises(RefWireInvalidRegistrationError, match="more than one qualifier"):
        ProviderKey.from_dependency(Annotated[Database, Component("a"), Named("b")])


def test_qualifier_in_token_and_argument_is_rejected() -> None:
    with pytest.raises(RefWireInvalidRegistrationError, match="already qualified"):
        ProviderKey.from_dependency(Annotated[Database, Component("a")], Component("b"))
