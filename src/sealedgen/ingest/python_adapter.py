from __future__ import annotations

import ast
from pathlib import Path
from typing import Iterable, Iterator, Sequence

from sealedgen.diagnostics import SourceLocation
from sealedgen.exceptions import SourceParseError
from sealedgen.ingest.adapter_contract import (
    ClassScan,
    DeclarationHost,
    ModuleScan,
    ParseFailureWitness,
)
from sealedgen.ingest.python_ingest import (
    dotted_name,
    iter_python_paths,
    module_file_for,
    module_name_for,
    parse_module,
    scan_module,
)
from sealedgen.order_contract import sort_once
from sealedgen.synthesis.model import (
    DEFAULT_LABEL_KEY,
    BaseTypeDecl,
    Declaration,
    RoundReport,
    ShapeKind,
    make_variant,
)
from sealedgen.timeout_context import check_deadline

ANNOTATIONS_MODULE = "sealedgen.annotations"
SEALED_GENERATOR = "sealed"
DEFAULT_MAX_ROUNDS = 64

_MAX_ALIAS_DEPTH = 32
_GENERIC_MARKERS = {"Generic", "Protocol"}


def _marker(name: str) -> str:
    return f"{ANNOTATIONS_MODULE}.{name}"


JSON_CLASS = _marker("json_class")
TYPE_LABEL = _marker("type_label")
SINGLETON = _marker("singleton")
DEFAULT_OBJECT = _marker("default_object")
DEFAULT_NULL = _marker("default_null")


def _call_argument(
    call: ast.Call, name: str, position: int
) -> ast.expr | None:
    for keyword in call.keywords:
        if keyword.arg == name:
            return keyword.value
    if position < len(call.args):
        return call.args[position]
    return None


def _literal_flag(node: ast.expr | None, default: bool | None) -> bool | None:
    if isinstance(node, ast.Constant) and (
        node.value is None or isinstance(node.value, bool)
    ):
        return node.value
    return default


class PythonDeclarationHost(DeclarationHost):
    """Scans python sources round by round for sealed hierarchies.

    Round one scans the given paths. Every later round scans the modules
    imported by already scanned modules that resolve to files under the
    source roots. Declarations are reported once, as soon as everything they
    reference (supertype, label constants) resolves.
    """

    def __init__(
        self,
        paths: Iterable[str | Path],
        source_roots: Sequence[str | Path] = (),
        *,
        exclude: Iterable[str] = (),
        max_rounds: int = DEFAULT_MAX_ROUNDS,
    ) -> None:
        self._roots = [Path(root) for root in source_roots] or [Path(".")]
        self._initial = iter_python_paths(paths, exclude=exclude)
        self._max_rounds = max(1, int(max_rounds))
        self._scans: dict[str, ModuleScan] = {}
        self._scanned_paths: set[Path] = set()
        self._probed: set[str] = set()
        self._failures: list[ParseFailureWitness] = []
        self._warnings: list[str] = []
        self._known_bases: set[str] = set()
        self._reported: set[str] = set()

    @property
    def parse_failures(self) -> tuple[ParseFailureWitness, ...]:
        return tuple(self._failures)

    @property
    def warnings(self) -> tuple[str, ...]:
        return tuple(self._warnings)

    @property
    def modules(self) -> tuple[str, ...]:
        return tuple(sort_once(self._scans, source="PythonDeclarationHost.modules"))

    def rounds(self) -> Iterator[RoundReport]:
        queue: list[tuple[Path, str | None]] = [(path, None) for path in self._initial]
        round_number = 0
        while True:
            check_deadline(site="PythonDeclarationHost.rounds")
            round_number += 1
            for path, module in queue:
                check_deadline()
                self._scan_path(path, module)
            pending = self._frontier()
            final = not pending or round_number >= self._max_rounds
            declarations, deferred = self._resolve(final=final)
            yield RoundReport(
                declarations=tuple(declarations),
                deferred=deferred,
                frontier=len(pending),
                final=final,
            )
            if final:
                return
            queue = pending

    def _scan_path(self, path: Path, module: str | None) -> None:
        resolved = path.resolve()
        if resolved in self._scanned_paths:
            return
        self._scanned_paths.add(resolved)
        if module is None:
            module, is_package = module_name_for(path, self._roots)
        else:
            is_package = path.name == "__init__.py"
        if module in self._scans:
            self._warnings.append(
                f"{path}: module {module} already scanned from {self._scans[module].path}"
            )
            return
        try:
            tree = parse_module(path)
        except SourceParseError as exc:
            self._failures.append(
                ParseFailureWitness(
                    path=path,
                    stage=exc.stage,
                    error=exc.detail,
                    line=exc.line,
                    col=exc.col,
                )
            )
            return
        self._scans[module] = scan_module(
            tree, module=module, path=path, is_package=is_package
        )

    def _frontier(self) -> list[tuple[Path, str | None]]:
        pending: dict[Path, str] = {}
        for module in sort_once(self._scans, source="PythonDeclarationHost._frontier"):
            check_deadline()
            for imported in self._scans[module].imported_modules:
                check_deadline()
                if imported in self._scans or imported in self._probed:
                    continue
                self._probed.add(imported)
                path = module_file_for(imported, self._roots)
                if path is None or path.resolve() in self._scanned_paths:
                    continue
                pending.setdefault(path, imported)
        return [
            (path, pending[path])
            for path in sort_once(pending, source="PythonDeclarationHost._frontier.paths")
        ]

    # Name resolution over scanned modules.

    def _qualify(self, scan: ModuleScan, dotted: str, scope: str = "") -> str | None:
        head, _, rest = dotted.partition(".")
        suffix = f".{rest}" if rest else ""
        scopes = scope.split(".") if scope else []
        while scopes:
            check_deadline()
            candidate = ".".join([*scopes, head])
            if scan.class_named(candidate) is not None:
                return f"{scan.module}.{candidate}{suffix}"
            scopes.pop()
        if scan.class_named(head) is not None or head in scan.constants:
            return f"{scan.module}.{dotted}"
        if head in scan.constant_aliases:
            return f"{scan.module}.{dotted}"
        if head in scan.imports:
            return f"{scan.imports[head]}{suffix}"
        return None

    def _split_module(self, dotted: str) -> tuple[ModuleScan, str] | None:
        parts = dotted.split(".")
        for end in range(len(parts), 0, -1):
            check_deadline()
            scan = self._scans.get(".".join(parts[:end]))
            if scan is not None:
                return scan, ".".join(parts[end:])
        return None

    def _canonical(self, dotted: str) -> str:
        """Follow re-exports until `dotted` names a definition site."""
        for _ in range(_MAX_ALIAS_DEPTH):
            check_deadline()
            split = self._split_module(dotted)
            if split is None:
                return dotted
            scan, rest = split
            if not rest:
                return dotted
            if scan.class_named(rest) is not None or rest in scan.constants:
                return dotted
            head, _, tail = rest.partition(".")
            if scan.class_named(head) is not None:
                return dotted
            if head not in scan.imports:
                return dotted
            dotted = scan.imports[head] + (f".{tail}" if tail else "")
        return dotted

    def _resolve_name(
        self, scan: ModuleScan, node: ast.expr, scope: str = ""
    ) -> str | None:
        dotted = dotted_name(node)
        if dotted is None:
            return None
        qualified = self._qualify(scan, dotted, scope)
        if qualified is None:
            return None
        return self._canonical(qualified)

    def _constant(self, scan: ModuleScan, node: ast.expr, depth: int = 0) -> str | None:
        if isinstance(node, ast.Constant):
            return node.value if isinstance(node.value, str) else None
        if depth >= _MAX_ALIAS_DEPTH:
            return None
        dotted = dotted_name(node)
        if dotted is None:
            return None
        if dotted in scan.constants:
            return scan.constants[dotted]
        if dotted in scan.constant_aliases:
            return self._constant(scan, scan.constant_aliases[dotted], depth + 1)
        qualified = self._qualify(scan, dotted)
        if qualified is None:
            return None
        split = self._split_module(self._canonical(qualified))
        if split is None:
            return None
        target, rest = split
        if rest in target.constants:
            return target.constants[rest]
        if rest in target.constant_aliases:
            return self._constant(target, target.constant_aliases[rest], depth + 1)
        return None

    def _decorators(self, scan: ModuleScan, cls: ClassScan) -> dict[str, ast.expr]:
        scope = cls.qualname.rpartition(".")[0]
        found: dict[str, ast.expr] = {}
        for decorator in cls.decorators:
            check_deadline()
            target = self._resolve_name(scan, decorator, scope)
            if target is not None and target.startswith(f"{ANNOTATIONS_MODULE}."):
                found.setdefault(target, decorator)
        return found

    # Declaration extraction.

    def _resolve(self, *, final: bool) -> tuple[list[Declaration], dict[str, int]]:
        declarations: list[Declaration] = []
        deferred: dict[str, int] = {}
        ordered = sort_once(self._scans, source="PythonDeclarationHost._resolve")
        for module in ordered:
            check_deadline()
            scan = self._scans[module]
            for cls in scan.classes:
                check_deadline()
                base = self._base_decl(scan, cls, final=final)
                if base is not None:
                    declarations.append(base)
        for module in ordered:
            check_deadline()
            scan = self._scans[module]
            for cls in scan.classes:
                check_deadline()
                self._variant_decl(scan, cls, final, declarations, deferred)
        return declarations, deferred

    def _location(self, scan: ModuleScan, cls: ClassScan) -> SourceLocation:
        return SourceLocation(path=str(scan.path), line=cls.line, col=cls.col)

    def _base_decl(
        self, scan: ModuleScan, cls: ClassScan, *, final: bool
    ) -> BaseTypeDecl | None:
        identity = f"{scan.module}.{cls.qualname}"
        if identity in self._reported:
            return None
        decorators = self._decorators(scan, cls)
        marker = decorators.get(JSON_CLASS)
        if not isinstance(marker, ast.Call):
            return None
        generator_node = _call_argument(marker, "generator", 1)
        generator = (
            self._constant(scan, generator_node) if generator_node is not None else ""
        )
        if generator is None:
            if final:
                self._reported.add(identity)
                self._warnings.append(
                    f"{self._location(scan, cls).render()}: generator of {identity} "
                    "does not resolve to a string constant"
                )
            return None
        name, _, key = generator.partition(":")
        if name.strip() != SEALED_GENERATOR:
            self._reported.add(identity)
            return None
        self._reported.add(identity)
        self._known_bases.add(identity)
        return BaseTypeDecl(
            module=scan.module,
            qualname=cls.qualname,
            label_key=key.strip() or DEFAULT_LABEL_KEY,
            generate_adapter=bool(
                _literal_flag(_call_argument(marker, "generate_adapter", 0), True)
            ),
            generate_retention_rules=_literal_flag(
                _call_argument(marker, "generate_retention_rules", 2), None
            ),
            default_null=DEFAULT_NULL in decorators,
            module_is_package=scan.is_package,
            location=self._location(scan, cls),
        )

    def _match_base(self, scan: ModuleScan, cls: ClassScan) -> str | None:
        scope = cls.qualname.rpartition(".")[0]
        for node in cls.bases:
            check_deadline()
            target = self._resolve_name(scan, node, scope)
            if target is not None and target in self._known_bases:
                return target
        return None

    def _type_parameters(self, scan: ModuleScan, cls: ClassScan) -> int:
        typevars: set[str] = set()
        generic_arity = 0
        for node in cls.bases:
            check_deadline()
            if not isinstance(node, ast.Subscript):
                continue
            args = (
                node.slice.elts if isinstance(node.slice, ast.Tuple) else [node.slice]
            )
            marker = dotted_name(node.value)
            if marker is not None and marker.rpartition(".")[2] in _GENERIC_MARKERS:
                generic_arity = max(generic_arity, len(args))
            for arg in args:
                for name in ast.walk(arg):
                    check_deadline()
                    if isinstance(name, ast.Name) and self._is_typevar(scan, name.id):
                        typevars.add(name.id)
        return cls.type_params + max(len(typevars), generic_arity)

    def _is_typevar(self, scan: ModuleScan, name: str) -> bool:
        if name in scan.typevars:
            return True
        if name not in scan.imports:
            return False
        split = self._split_module(self._canonical(scan.imports[name]))
        if split is None:
            return False
        target, rest = split
        return rest in target.typevars

    def _variant_decl(
        self,
        scan: ModuleScan,
        cls: ClassScan,
        final: bool,
        declarations: list[Declaration],
        deferred: dict[str, int],
    ) -> None:
        identity = f"{scan.module}.{cls.qualname}"
        if identity in self._reported:
            return
        decorators = self._decorators(scan, cls)
        marker = decorators.get(TYPE_LABEL)
        if not isinstance(marker, ast.Call):
            return
        label_node = _call_argument(marker, "label", 0)
        alternates_node = _call_argument(marker, "alternate_labels", 1)
        alternate_nodes: list[ast.expr] = []
        if isinstance(alternates_node, (ast.List, ast.Tuple, ast.Set)):
            alternate_nodes = list(alternates_node.elts)
        label_nodes = ([label_node] if label_node is not None else []) + alternate_nodes
        values = [self._constant(scan, node) for node in label_nodes]
        resolved = label_node is not None and all(v is not None for v in values)
        base = self._match_base(scan, cls)
        if base is None and not final:
            return
        if base is not None and not resolved:
            deferred[base] = deferred.get(base, 0) + 1
            return
        if base is None:
            # Supertype never resolved to a sealed base: reported as an orphan.
            first = cls.bases[0] if cls.bases else None
            base = (
                (self._resolve_name(scan, first) or dotted_name(first) or "<unknown>")
                if first is not None
                else "<unknown>"
            )
            values = [
                value if value is not None else ast.unparse(node)
                for value, node in zip(values, label_nodes)
            ] or ["<unknown>"]
        self._reported.add(identity)
        declarations.append(
            make_variant(
                scan.module,
                cls.qualname,
                base=base,
                label=str(values[0]),
                alternate_labels=tuple(str(value) for value in values[1:]),
                shape=(
                    ShapeKind.SINGLETON if SINGLETON in decorators
                    else ShapeKind.CONSTRUCTIBLE
                ),
                type_parameters=self._type_parameters(scan, cls),
                is_default=DEFAULT_OBJECT in decorators,
                location=self._location(scan, cls),
            )
        )
