from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping

from sealedgen.diagnostics import UNKNOWN_LOCATION, SourceLocation

DEFAULT_LABEL_KEY = "type"


class LabelKind(str, Enum):
    PRIMARY = "primary"
    ALTERNATE = "alternate"


class ShapeKind(str, Enum):
    CONSTRUCTIBLE = "constructible"
    SINGLETON = "singleton"


class Closure(str, Enum):
    PENDING = "pending"
    CLOSED = "closed"


@dataclass(frozen=True)
class Label:
    value: str
    kind: LabelKind
    owner: str


@dataclass(frozen=True)
class BaseTypeDecl:
    module: str
    qualname: str
    label_key: str = DEFAULT_LABEL_KEY
    generate_adapter: bool = True
    generate_retention_rules: bool | None = None
    default_null: bool = False
    module_is_package: bool = False
    location: SourceLocation = UNKNOWN_LOCATION

    @property
    def identity(self) -> str:
        return f"{self.module}.{self.qualname}"

    @property
    def simple_name(self) -> str:
        return self.qualname.rpartition(".")[2]

    def retention_enabled(self, process_default: bool) -> bool:
        if self.generate_retention_rules is None:
            return process_default
        return self.generate_retention_rules


@dataclass(frozen=True)
class VariantDecl:
    module: str
    qualname: str
    base: str
    label: Label
    alternate_labels: tuple[Label, ...] = ()
    shape: ShapeKind = ShapeKind.CONSTRUCTIBLE
    type_parameters: int = 0
    is_default: bool = False
    location: SourceLocation = UNKNOWN_LOCATION

    @property
    def identity(self) -> str:
        return f"{self.module}.{self.qualname}"

    @property
    def labels(self) -> tuple[Label, ...]:
        return (self.label, *self.alternate_labels)


Declaration = BaseTypeDecl | VariantDecl


def make_variant(
    module: str,
    qualname: str,
    *,
    base: str,
    label: str,
    alternate_labels: tuple[str, ...] | list[str] = (),
    shape: ShapeKind = ShapeKind.CONSTRUCTIBLE,
    type_parameters: int = 0,
    is_default: bool = False,
    location: SourceLocation = UNKNOWN_LOCATION,
) -> VariantDecl:
    """Build a VariantDecl from plain label strings."""
    identity = f"{module}.{qualname}"
    return VariantDecl(
        module=module,
        qualname=qualname,
        base=base,
        label=Label(value=label, kind=LabelKind.PRIMARY, owner=identity),
        alternate_labels=tuple(
            Label(value=value, kind=LabelKind.ALTERNATE, owner=identity)
            for value in alternate_labels
        ),
        shape=shape,
        type_parameters=type_parameters,
        is_default=is_default,
        location=location,
    )


@dataclass(frozen=True)
class HierarchySnapshot:
    base: BaseTypeDecl | None
    variants: tuple[VariantDecl, ...] = ()


@dataclass(frozen=True)
class ValidatedHierarchy:
    base: BaseTypeDecl
    variants: tuple[VariantDecl, ...]

    @property
    def identity(self) -> str:
        return self.base.identity

    @property
    def has_singletons(self) -> bool:
        return any(v.shape is ShapeKind.SINGLETON for v in self.variants)

    @property
    def default_variant(self) -> VariantDecl | None:
        for variant in self.variants:
            if variant.is_default:
                return variant
        return None


@dataclass(frozen=True)
class RoundReport:
    """One discovery round as reported by the host declaration index.

    `deferred` counts variant candidates the host held back per base
    identity; `frontier` counts sources still queued for later rounds.
    """

    declarations: tuple[Declaration, ...] = ()
    deferred: Mapping[str, int] = field(default_factory=dict)
    frontier: int = 0
    final: bool = False


@dataclass(frozen=True)
class GeneratedArtifact:
    relative_path: str
    text: str
    kind: str
