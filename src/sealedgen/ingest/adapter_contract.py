from __future__ import annotations

import ast
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, Mapping, Protocol, runtime_checkable

from sealedgen.synthesis.model import RoundReport


@dataclass(frozen=True)
class ParseFailureWitness:
    path: Path
    stage: str
    error: str
    line: int = 1
    col: int = 1


@dataclass(frozen=True)
class ClassScan:
    qualname: str
    bases: tuple[ast.expr, ...]
    decorators: tuple[ast.expr, ...]
    type_params: int
    line: int
    col: int


@dataclass(frozen=True)
class ModuleScan:
    """Declarations visible in one parsed module, without importing it."""

    module: str
    path: Path
    is_package: bool
    imports: Mapping[str, str] = field(default_factory=dict)
    imported_modules: tuple[str, ...] = ()
    constants: Mapping[str, str] = field(default_factory=dict)
    constant_aliases: Mapping[str, ast.expr] = field(default_factory=dict)
    typevars: frozenset[str] = frozenset()
    classes: tuple[ClassScan, ...] = ()

    def class_named(self, qualname: str) -> ClassScan | None:
        for scan in self.classes:
            if scan.qualname == qualname:
                return scan
        return None


@runtime_checkable
class DeclarationHost(Protocol):
    """Source of discovery rounds for the resolution driver."""

    def rounds(self) -> Iterator[RoundReport]: ...

    @property
    def parse_failures(self) -> tuple[ParseFailureWitness, ...]: ...

    @property
    def warnings(self) -> tuple[str, ...]: ...

    @property
    def modules(self) -> tuple[str, ...]: ...
