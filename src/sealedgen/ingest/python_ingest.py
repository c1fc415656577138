from __future__ import annotations

import ast
import os
from pathlib import Path
from typing import Iterable, Sequence

from sealedgen.exceptions import SourceParseError
from sealedgen.ingest.adapter_contract import ClassScan, ModuleScan
from sealedgen.order_contract import sort_once
from sealedgen.timeout_context import check_deadline

_TYPEVAR_FACTORIES = {"TypeVar", "ParamSpec", "TypeVarTuple"}


def iter_python_paths(
    paths: Iterable[str | Path],
    *,
    exclude: Iterable[str] = (),
) -> list[Path]:
    """Expand input paths to python files, pruning excluded directories early."""
    check_deadline()
    excluded = set(exclude)
    out: list[Path] = []
    for p in paths:
        check_deadline()
        path = Path(p)
        if path.is_dir():
            for root, dirnames, filenames in os.walk(path, topdown=True):
                check_deadline()
                dirnames[:] = sort_once(
                    [d for d in dirnames if d not in excluded and d != "__pycache__"],
                    source="iter_python_paths.dirnames",
                )
                for filename in sort_once(filenames, source="iter_python_paths.filenames"):
                    check_deadline()
                    if filename.endswith(".py"):
                        out.append(Path(root) / filename)
        elif path.suffix == ".py":
            out.append(path)
    return sort_once(set(out), source="iter_python_paths.out")


def module_name_for(path: Path, source_roots: Sequence[Path]) -> tuple[str, bool]:
    """Dotted module name of `path` under the first containing source root."""
    resolved = path.resolve()
    is_package = resolved.name == "__init__.py"
    for root in source_roots:
        check_deadline()
        try:
            relative = resolved.relative_to(root.resolve())
        except ValueError:
            continue
        parts = list(relative.with_suffix("").parts)
        if is_package:
            parts = parts[:-1]
        if parts:
            return ".".join(parts), is_package
    if is_package:
        return resolved.parent.name, True
    return resolved.stem, False


def module_file_for(module: str, source_roots: Sequence[Path]) -> Path | None:
    parts = module.split(".")
    for root in source_roots:
        check_deadline()
        candidate = root.joinpath(*parts)
        module_file = candidate.with_suffix(".py")
        if module_file.is_file():
            return module_file
        package_file = candidate / "__init__.py"
        if package_file.is_file():
            return package_file
    return None


def parse_module(path: Path) -> ast.Module:
    try:
        source = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise SourceParseError(str(path), str(exc), stage="read") from exc
    try:
        return ast.parse(source, filename=str(path))
    except SyntaxError as exc:
        raise SourceParseError(
            str(path), str(exc.msg), line=exc.lineno or 1, col=exc.offset or 1
        ) from exc


def dotted_name(node: ast.expr) -> str | None:
    """`a.b.C` for Name/Attribute chains; subscripts resolve to their value."""
    if isinstance(node, ast.Subscript):
        return dotted_name(node.value)
    if isinstance(node, ast.Call):
        return dotted_name(node.func)
    parts: list[str] = []
    current: ast.expr = node
    while isinstance(current, ast.Attribute):
        parts.append(current.attr)
        current = current.value
    if not isinstance(current, ast.Name):
        return None
    parts.append(current.id)
    return ".".join(reversed(parts))


def _package_of(module: str, is_package: bool) -> str:
    if is_package:
        return module
    return module.rpartition(".")[0]


def _absolute_import(
    module: str, is_package: bool, target: str | None, level: int
) -> str:
    if level == 0:
        return target or ""
    package = _package_of(module, is_package)
    parts = package.split(".") if package else []
    if level > 1:
        parts = parts[: len(parts) - (level - 1)]
    if target:
        parts.append(target)
    return ".".join(parts)


def _collect_imports(
    tree: ast.Module, module: str, is_package: bool
) -> tuple[dict[str, str], list[str]]:
    imports: dict[str, str] = {}
    modules: list[str] = []
    for node in tree.body:
        check_deadline()
        if isinstance(node, ast.Import):
            for alias in node.names:
                if alias.asname:
                    imports[alias.asname] = alias.name
                else:
                    head = alias.name.split(".", 1)[0]
                    imports[head] = head
                modules.append(alias.name)
        elif isinstance(node, ast.ImportFrom):
            source = _absolute_import(module, is_package, node.module, node.level)
            if not source:
                continue
            modules.append(source)
            for alias in node.names:
                if alias.name == "*":
                    continue
                imports[alias.asname or alias.name] = f"{source}.{alias.name}"
                modules.append(f"{source}.{alias.name}")
    return imports, modules


def _is_typevar_call(value: ast.expr) -> bool:
    if not isinstance(value, ast.Call):
        return False
    name = dotted_name(value.func)
    return name is not None and name.rpartition(".")[2] in _TYPEVAR_FACTORIES


def _assignments(body: Sequence[ast.stmt]) -> Iterable[tuple[str, ast.expr]]:
    for node in body:
        if isinstance(node, ast.Assign) and len(node.targets) == 1:
            target = node.targets[0]
            if isinstance(target, ast.Name):
                yield target.id, node.value
        elif isinstance(node, ast.AnnAssign) and node.value is not None:
            if isinstance(node.target, ast.Name):
                yield node.target.id, node.value


def _type_param_count(node: ast.ClassDef) -> int:
    return len(getattr(node, "type_params", None) or ())


class _ClassCollector:
    def __init__(self) -> None:
        self.classes: list[ClassScan] = []
        self.constants: dict[str, str] = {}
        self.constant_aliases: dict[str, ast.expr] = {}

    def collect(self, body: Sequence[ast.stmt], prefix: str = "") -> None:
        for name, value in _assignments(body):
            check_deadline()
            key = f"{prefix}{name}"
            if isinstance(value, ast.Constant) and isinstance(value.value, str):
                self.constants[key] = value.value
            elif isinstance(value, (ast.Name, ast.Attribute)):
                self.constant_aliases[key] = value
        for node in body:
            check_deadline()
            if not isinstance(node, ast.ClassDef):
                continue
            qualname = f"{prefix}{node.name}"
            self.classes.append(
                ClassScan(
                    qualname=qualname,
                    bases=tuple(node.bases),
                    decorators=tuple(node.decorator_list),
                    type_params=_type_param_count(node),
                    line=node.lineno,
                    col=node.col_offset + 1,
                )
            )
            self.collect(node.body, prefix=f"{qualname}.")


def scan_module(
    tree: ast.Module, *, module: str, path: Path, is_package: bool
) -> ModuleScan:
    check_deadline()
    imports, imported_modules = _collect_imports(tree, module, is_package)
    collector = _ClassCollector()
    collector.collect(tree.body)
    typevars = frozenset(
        name for name, value in _assignments(tree.body) if _is_typevar_call(value)
    )
    return ModuleScan(
        module=module,
        path=path,
        is_package=is_package,
        imports=imports,
        imported_modules=tuple(dict.fromkeys(imported_modules)),
        constants=collector.constants,
        constant_aliases=collector.constant_aliases,
        typevars=typevars,
        classes=tuple(collector.classes),
    )
