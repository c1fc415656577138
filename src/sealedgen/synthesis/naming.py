from __future__ import annotations

import re
from typing import Iterable

from sealedgen.synthesis.model import BaseTypeDecl
from sealedgen.timeout_context import check_deadline

ADAPTER_SUFFIX = "JsonAdapter"


def _snake(value: str) -> str:
    value = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1_\2", value)
    value = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", value)
    return re.sub(r"[^a-zA-Z0-9]+", "_", value).strip("_").lower()


def _normalize_identifier(value: str, fallback: str) -> str:
    cleaned = re.sub(r"[^a-zA-Z0-9_]", "_", value)
    if not cleaned:
        return fallback
    if cleaned[0].isdigit():
        return f"{fallback}{cleaned}"
    return cleaned


def adapter_class_name(base: BaseTypeDecl) -> str:
    """`Outer.Message` -> `OuterMessageJsonAdapter`."""
    parts = [part for part in base.qualname.split(".") if part]
    return "".join(parts) + ADAPTER_SUFFIX


def adapter_module_name(base: BaseTypeDecl) -> str:
    """`pkg.orders.Event` -> `orders_event_json_adapter`.

    The defining module's last component is kept so same-named bases in
    sibling modules get distinct adapters. A base declared in a package
    `__init__` drops it, since the adapter already lives in that package.
    """
    parts = [] if base.module_is_package else [_snake(base.module.rpartition(".")[2])]
    parts.extend(_snake(part) for part in base.qualname.split(".") if part)
    return "_".join(part for part in parts if part) + "_json_adapter"


def adapter_package(base: BaseTypeDecl) -> str:
    if base.module_is_package:
        return base.module
    return base.module.rpartition(".")[0]


def adapter_module_path(base: BaseTypeDecl) -> str:
    package = adapter_package(base)
    module = adapter_module_name(base)
    if not package:
        return f"{module}.py"
    return "/".join([*package.split("."), f"{module}.py"])


def adapter_identity(base: BaseTypeDecl) -> str:
    """Fully qualified name of the generated adapter class."""
    package = adapter_package(base)
    module = adapter_module_name(base)
    dotted = f"{package}.{module}" if package else module
    return f"{dotted}.{adapter_class_name(base)}"


def import_alias(module: str, name: str) -> str:
    return _normalize_identifier(f"{module.replace('.', '_')}_{name}", "m")


def assign_import_names(
    imports: Iterable[tuple[str, str]], reserved: Iterable[str] = ()
) -> dict[tuple[str, str], str]:
    """Choose a local name for each `(module, top-level class)` pair.

    A simple name used by exactly one module keeps its name; clashing names
    (or names that collide with `reserved`) get a module-prefixed alias.
    """
    check_deadline()
    pairs = sorted(set(imports))
    owners: dict[str, set[str]] = {}
    for module, name in pairs:
        check_deadline()
        owners.setdefault(name, set()).add(module)
    taken = set(reserved)
    names: dict[tuple[str, str], str] = {}
    for module, name in pairs:
        check_deadline()
        if len(owners[name]) == 1 and name not in taken:
            names[(module, name)] = name
        else:
            names[(module, name)] = import_alias(module, name)
    return names
