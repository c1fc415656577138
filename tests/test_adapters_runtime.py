from __future__ import annotations

from dataclasses import dataclass

import pytest

from sealedgen.adapters import (
    JsonAdapter,
    JsonDataError,
    JsonRegistry,
    ObjectJsonAdapter,
    PolymorphicJsonAdapterFactory,
    PydanticJsonAdapter,
)


class Message:
    pass


@dataclass
class Success(Message):
    value: str


@dataclass
class Error(Message):
    code: int


class Unknown(Message):
    pass


UNKNOWN = Unknown()


def _adapter(factory: PolymorphicJsonAdapterFactory, registry: JsonRegistry | None = None):
    adapter = factory.create(Message, registry or JsonRegistry())
    assert adapter is not None
    return adapter


def _factory() -> PolymorphicJsonAdapterFactory:
    return (
        PolymorphicJsonAdapterFactory.of(Message, "type")
        .with_subtype(Success, "success")
        .with_subtype(Success, "ok")
        .with_subtype(Error, "error")
    )


def test_decode_dispatches_on_any_registered_label() -> None:
    adapter = _adapter(_factory())
    assert adapter.from_json_value({"type": "success", "value": "x"}) == Success("x")
    assert adapter.from_json_value({"value": "y", "type": "ok"}) == Success("y")
    assert adapter.from_json_value({"type": "error", "code": 3}) == Error(3)
    assert adapter.from_json_value(None) is None


def test_encode_writes_the_primary_label_first() -> None:
    adapter = _adapter(_factory())
    assert adapter.to_json_value(Success("x")) == {"type": "success", "value": "x"}
    assert list(adapter.to_json_value(Error(2))) == ["type", "code"]
    assert adapter.to_json_value(None) is None
    assert adapter.to_json(Error(2)) == '{"type":"error","code":2}'
    assert adapter.from_json('{"type":"error","code":2}') == Error(2)


def test_unknown_label_without_default_is_a_data_error() -> None:
    adapter = _adapter(_factory())
    with pytest.raises(JsonDataError, match="Register a subtype for this label"):
        adapter.from_json_value({"type": "nope"})
    with pytest.raises(JsonDataError, match="Missing label"):
        adapter.from_json_value({"value": "x"})
    with pytest.raises(JsonDataError, match="Expected an object"):
        adapter.from_json_value(["type", "success"])
    with pytest.raises(JsonDataError, match="Malformed JSON"):
        adapter.from_json("{")


def test_unknown_label_uses_the_default_value() -> None:
    assert _adapter(_factory().with_default_value(None)).from_json_value({"type": "x"}) is None
    registry = JsonRegistry().new_builder().add(Unknown, ObjectJsonAdapter(UNKNOWN)).build()
    adapter = _adapter(
        _factory().with_subtype(Unknown, "unknown").with_default_value(UNKNOWN), registry
    )
    assert adapter.from_json_value({"type": "x", "extra": 1}) is UNKNOWN
    assert adapter.from_json_value({"type": "unknown"}) is UNKNOWN
    assert adapter.to_json_value(UNKNOWN) == {"type": "unknown"}


def test_unregistered_type_cannot_be_encoded() -> None:
    with pytest.raises(ValueError, match="Register this subtype"):
        _adapter(_factory()).to_json_value(UNKNOWN)


def test_labels_must_be_unique() -> None:
    with pytest.raises(ValueError, match="Labels must be unique"):
        _factory().with_subtype(Error, "ok")


def test_factory_declines_other_types_and_plugs_into_the_registry() -> None:
    factory = _factory()
    registry = JsonRegistry().new_builder().add_factory(factory).build()
    assert factory.create(Success, registry) is None
    adapter = registry.adapter(Message)
    assert adapter is registry.adapter(Message)
    assert adapter.from_json_value({"type": "error", "code": 1}) == Error(1)
    assert isinstance(registry.adapter(Success), PydanticJsonAdapter)


def test_pydantic_adapter_reports_invalid_fields() -> None:
    adapter = PydanticJsonAdapter(Error)
    with pytest.raises(JsonDataError, match="Invalid value for Error"):
        adapter.from_json_value({"code": "not a number"})


def test_builder_does_not_mutate_the_source_registry() -> None:
    base = JsonRegistry()
    custom = ObjectJsonAdapter(Error(0))
    derived = base.new_builder().add(Error, custom).build()
    assert derived.adapter(Error) is custom
    assert isinstance(base.adapter(Error), PydanticJsonAdapter)


def test_object_adapter_ignores_fields() -> None:
    adapter: JsonAdapter[Unknown] = ObjectJsonAdapter(UNKNOWN)
    assert adapter.from_json_value({"anything": [1, 2]}) is UNKNOWN
    assert adapter.to_json_value(UNKNOWN) == {}
    with pytest.raises(JsonDataError):
        adapter.from_json_value(3)
