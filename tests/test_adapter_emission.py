from __future__ import annotations

import textwrap

from sealedgen.synthesis.emission import render_adapter_module, render_adapter_source
from sealedgen.synthesis.model import (
    BaseTypeDecl,
    ShapeKind,
    ValidatedHierarchy,
    make_variant,
)
from sealedgen.synthesis.naming import adapter_identity

BASE = BaseTypeDecl(module="test.messages", qualname="BaseType", label_key="type")


def _variant(module: str, name: str, label: str, **kwargs):
    return make_variant(module, name, base=BASE.identity, label=label, **kwargs)


def test_renders_every_primary_and_alternate_label_in_merge_order() -> None:
    hierarchy = ValidatedHierarchy(
        base=BASE,
        variants=(
            _variant("test.messages", "TypeA", "a", alternate_labels=["aa"]),
            _variant("test.messages", "TypeB", "b"),
        ),
    )
    artifact = render_adapter_module(hierarchy)
    assert artifact.relative_path == "test/messages_base_type_json_adapter.py"
    assert artifact.kind == "adapter"
    assert artifact.text == textwrap.dedent(
        '''\
        # Code generated by sealedgen. Do not edit.
        from __future__ import annotations

        from typing import Any

        from sealedgen.adapters import JsonAdapter, JsonRegistry, ObjectJsonAdapter, PolymorphicJsonAdapterFactory
        from test.messages import BaseType, TypeA, TypeB


        class BaseTypeJsonAdapter(JsonAdapter[BaseType]):
            def __init__(self, registry: JsonRegistry) -> None:
                self._runtime_adapter: JsonAdapter[BaseType] = (
                    PolymorphicJsonAdapterFactory.of(BaseType, "type")
                    .with_subtype(TypeA, "a")
                    .with_subtype(TypeA, "aa")
                    .with_subtype(TypeB, "b")
                    .create(
                        BaseType,
                        registry,
                    )
                )

            def from_json_value(self, value: Any) -> BaseType | None:
                return self._runtime_adapter.from_json_value(value)

            def to_json_value(self, value: BaseType | None) -> Any:
                return self._runtime_adapter.to_json_value(value)
        '''
    )


def test_singletons_are_registered_before_the_dispatch_object() -> None:
    hierarchy = ValidatedHierarchy(
        base=BASE,
        variants=(
            _variant("test.messages", "TypeA", "a"),
            _variant("test.messages", "Unknown", "unknown", shape=ShapeKind.SINGLETON),
        ),
    )
    expected = (
        '            .with_subtype(Unknown, "unknown")\n'
        "            .create(\n"
        "                BaseType,\n"
        "                registry.new_builder()\n"
        "                .add(Unknown, ObjectJsonAdapter(Unknown.INSTANCE))\n"
        "                .build(),\n"
        "            )\n"
    )
    assert expected in render_adapter_source(hierarchy)


def test_default_values() -> None:
    singleton_default = ValidatedHierarchy(
        base=BASE,
        variants=(
            _variant(
                "test.messages",
                "Unknown",
                "unknown",
                shape=ShapeKind.SINGLETON,
                is_default=True,
            ),
        ),
    )
    assert ".with_default_value(Unknown.INSTANCE)" in render_adapter_source(singleton_default)
    null_base = BaseTypeDecl(module="test.messages", qualname="BaseType", default_null=True)
    null_default = ValidatedHierarchy(
        base=null_base,
        variants=(make_variant("test.messages", "A", base=null_base.identity, label="a"),),
    )
    assert ".with_default_value(None)" in render_adapter_source(null_default)


def test_clashing_simple_names_are_aliased_deterministically() -> None:
    hierarchy = ValidatedHierarchy(
        base=BASE,
        variants=(
            _variant("test.one", "Event", "one"),
            _variant("test.two", "Event", "two"),
        ),
    )
    text = render_adapter_source(hierarchy)
    assert "from test.one import Event as test_one_Event" in text
    assert "from test.two import Event as test_two_Event" in text
    assert '.with_subtype(test_one_Event, "one")' in text
    assert '.with_subtype(test_two_Event, "two")' in text
    assert render_adapter_source(hierarchy) == text


def test_nested_classes_are_referenced_through_their_outer_class() -> None:
    base = BaseTypeDecl(module="test.api", qualname="Api.Message", label_key="kind")
    hierarchy = ValidatedHierarchy(
        base=base,
        variants=(make_variant("test.api", "Api.Ping", base=base.identity, label="ping"),),
    )
    artifact = render_adapter_module(hierarchy)
    assert artifact.relative_path == "test/api_api_message_json_adapter.py"
    assert "from test.api import Api\n" in artifact.text
    assert "class ApiMessageJsonAdapter(JsonAdapter[Api.Message]):" in artifact.text
    assert 'PolymorphicJsonAdapterFactory.of(Api.Message, "kind")' in artifact.text
    assert '.with_subtype(Api.Ping, "ping")' in artifact.text
    assert adapter_identity(base) == "test.api_api_message_json_adapter.ApiMessageJsonAdapter"


def test_labels_are_rendered_as_escaped_string_literals() -> None:
    hierarchy = ValidatedHierarchy(
        base=BASE,
        variants=(_variant("test.messages", "Quoted", 'say "hi"\\'),),
    )
    assert '.with_subtype(Quoted, "say \\"hi\\"\\\\")' in render_adapter_source(hierarchy)
