"""Render the polymorphic adapter module for a validated hierarchy.

The generated module only talks to the narrow runtime surface exported by
``sealedgen.adapters``: one dispatch object is built from
``PolymorphicJsonAdapterFactory`` and every call is delegated to it.
"""

from __future__ import annotations

import json
from dataclasses import dataclass

from sealedgen.order_contract import sort_once
from sealedgen.synthesis.model import (
    GeneratedArtifact,
    ShapeKind,
    ValidatedHierarchy,
)
from sealedgen.synthesis.naming import (
    adapter_class_name,
    adapter_module_path,
    assign_import_names,
)
from sealedgen.timeout_context import check_deadline, deadline_loop_iter

GENERATED_HEADER = "# Code generated by sealedgen. Do not edit."
RUNTIME_MODULE = "sealedgen.adapters"
RUNTIME_NAMES = (
    "JsonAdapter",
    "JsonRegistry",
    "ObjectJsonAdapter",
    "PolymorphicJsonAdapterFactory",
)
ADAPTER_KIND = "adapter"

_INDENT = "    "


@dataclass(frozen=True)
class _TypeRef:
    module: str
    qualname: str

    @property
    def outer(self) -> str:
        return self.qualname.split(".", 1)[0]

    @property
    def rest(self) -> str:
        _, _, rest = self.qualname.partition(".")
        return rest


def _string_literal(value: str) -> str:
    return json.dumps(value, ensure_ascii=True)


class _ImportTable:
    def __init__(self, refs: list[_TypeRef], reserved: set[str]) -> None:
        self._names = assign_import_names(
            [(ref.module, ref.outer) for ref in refs], reserved
        )

    def reference(self, ref: _TypeRef) -> str:
        local = self._names[(ref.module, ref.outer)]
        if ref.rest:
            return f"{local}.{ref.rest}"
        return local

    def lines(self) -> list[str]:
        by_module: dict[str, list[str]] = {}
        for (module, name), local in self._names.items():
            check_deadline()
            entry = name if local == name else f"{name} as {local}"
            by_module.setdefault(module, []).append(entry)
        lines: list[str] = []
        for module in sort_once(by_module, source="_ImportTable.lines.modules"):
            check_deadline()
            names = sort_once(
                by_module[module], source="_ImportTable.lines.names"
            )
            lines.append(f"from {module} import {', '.join(names)}")
        return lines


def _registry_expression(
    hierarchy: ValidatedHierarchy, imports: _ImportTable, depth: int
) -> list[str]:
    pad = _INDENT * depth
    if not hierarchy.has_singletons:
        return [f"{pad}registry,"]
    lines = [f"{pad}registry.new_builder()"]
    for variant in deadline_loop_iter(hierarchy.variants):
        if variant.shape is not ShapeKind.SINGLETON:
            continue
        ref = imports.reference(_TypeRef(variant.module, variant.qualname))
        lines.append(f"{pad}.add({ref}, ObjectJsonAdapter({ref}.INSTANCE))")
    lines.append(f"{pad}.build(),")
    return lines


def _default_expression(
    hierarchy: ValidatedHierarchy, imports: _ImportTable
) -> str | None:
    default = hierarchy.default_variant
    if default is not None:
        ref = imports.reference(_TypeRef(default.module, default.qualname))
        return f"{ref}.INSTANCE"
    if hierarchy.base.default_null:
        return "None"
    return None


def render_adapter_source(hierarchy: ValidatedHierarchy) -> str:
    check_deadline()
    base = hierarchy.base
    class_name = adapter_class_name(base)
    base_ref = _TypeRef(base.module, base.qualname)
    refs = [base_ref] + [
        _TypeRef(variant.module, variant.qualname) for variant in hierarchy.variants
    ]
    reserved = {class_name, "Any", *RUNTIME_NAMES}
    imports = _ImportTable(refs, reserved)
    base_name = imports.reference(base_ref)

    lines = [
        GENERATED_HEADER,
        "from __future__ import annotations",
        "",
        "from typing import Any",
        "",
        *sort_once(
            [*imports.lines(), f"from {RUNTIME_MODULE} import {', '.join(RUNTIME_NAMES)}"],
            source="render_adapter_source.imports",
        ),
        "",
        "",
        f"class {class_name}(JsonAdapter[{base_name}]):",
        f"{_INDENT}def __init__(self, registry: JsonRegistry) -> None:",
        f"{_INDENT * 2}self._runtime_adapter: JsonAdapter[{base_name}] = (",
        f"{_INDENT * 3}PolymorphicJsonAdapterFactory.of("
        f"{base_name}, {_string_literal(base.label_key)})",
    ]
    # Registration follows merge order; alternates follow their primary.
    for variant in hierarchy.variants:
        check_deadline()
        ref = imports.reference(_TypeRef(variant.module, variant.qualname))
        for label in variant.labels:
            check_deadline()
            lines.append(
                f"{_INDENT * 3}.with_subtype({ref}, {_string_literal(label.value)})"
            )
    default = _default_expression(hierarchy, imports)
    if default is not None:
        lines.append(f"{_INDENT * 3}.with_default_value({default})")
    lines.append(f"{_INDENT * 3}.create(")
    lines.append(f"{_INDENT * 4}{base_name},")
    lines.extend(_registry_expression(hierarchy, imports, 4))
    lines.append(f"{_INDENT * 3})")
    lines.append(f"{_INDENT * 2})")
    lines.extend(
        [
            "",
            f"{_INDENT}def from_json_value(self, value: Any) -> {base_name} | None:",
            f"{_INDENT * 2}return self._runtime_adapter.from_json_value(value)",
            "",
            f"{_INDENT}def to_json_value(self, value: {base_name} | None) -> Any:",
            f"{_INDENT * 2}return self._runtime_adapter.to_json_value(value)",
        ]
    )
    return "\n".join(lines) + "\n"


def render_adapter_module(hierarchy: ValidatedHierarchy) -> GeneratedArtifact:
    return GeneratedArtifact(
        relative_path=adapter_module_path(hierarchy.base),
        text=render_adapter_source(hierarchy),
        kind=ADAPTER_KIND,
    )
