from __future__ import annotations

from sealedgen.synthesis.model import BaseTypeDecl, ValidatedHierarchy, make_variant
from sealedgen.synthesis.retention import render_retention_rules

BASE = BaseTypeDecl(module="test.messages", qualname="BaseType")
HIERARCHY = ValidatedHierarchy(
    base=BASE,
    variants=(make_variant("test.messages", "TypeA", base=BASE.identity, label="a"),),
)


def test_retention_rules_keep_base_name_and_adapter_constructor() -> None:
    artifact = render_retention_rules(HIERARCHY)
    assert artifact.relative_path == "retention/sealedgen-test.messages.BaseType.pro"
    assert artifact.kind == "retention"
    assert artifact.text == (
        "-if class test.messages.BaseType\n"
        "-keepnames class test.messages.BaseType\n"
        "-if class test.messages.BaseType\n"
        "-keep class test.messages_base_type_json_adapter.BaseTypeJsonAdapter {\n"
        "    public <init>(sealedgen.adapters.JsonRegistry);\n"
        "}\n"
    )


def test_registry_type_is_configurable() -> None:
    artifact = render_retention_rules(HIERARCHY, registry_type="app.Registry")
    assert "    public <init>(app.Registry);\n" in artifact.text


def test_declaration_override_wins_over_process_default() -> None:
    assert BASE.retention_enabled(True)
    assert not BASE.retention_enabled(False)
    opted_out = BaseTypeDecl(
        module="test.messages", qualname="BaseType", generate_retention_rules=False
    )
    assert not opted_out.retention_enabled(True)
    opted_in = BaseTypeDecl(
        module="test.messages", qualname="BaseType", generate_retention_rules=True
    )
    assert opted_in.retention_enabled(False)
