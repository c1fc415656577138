from __future__ import annotations

from dataclasses import dataclass, field

from sealedgen.diagnostics import (
    DEFAULT_OBJECT_SHAPE_MESSAGE,
    Diagnostic,
    DiagnosticKind,
)
from sealedgen.invariants import never
from sealedgen.order_contract import sort_once
from sealedgen.synthesis.model import (
    HierarchySnapshot,
    Label,
    LabelKind,
    ShapeKind,
    ValidatedHierarchy,
    VariantDecl,
)
from sealedgen.timeout_context import check_deadline


@dataclass(frozen=True)
class ValidationResult:
    hierarchy: ValidatedHierarchy | None
    diagnostics: tuple[Diagnostic, ...] = field(default_factory=tuple)

    @property
    def ok(self) -> bool:
        return self.hierarchy is not None


def validate_hierarchy(snapshot: HierarchySnapshot) -> ValidationResult:
    """Check one closed hierarchy.

    A hierarchy-level failure (no variants) suppresses variant checks.
    Variant checks never stop at the first error. They walk variants in
    identity order so the diagnostics do not depend on discovery order; the
    validated hierarchy keeps merge order for emission.
    """
    check_deadline()
    base = snapshot.base
    if base is None:
        never("validating a hierarchy without a base declaration")
    identity = base.identity
    if not snapshot.variants:
        return ValidationResult(
            hierarchy=None,
            diagnostics=(
                Diagnostic.of(
                    DiagnosticKind.EMPTY_HIERARCHY,
                    base.location,
                    hierarchy=identity,
                    subject=identity,
                ),
            ),
        )

    ordered = sort_once(
        snapshot.variants,
        source="validate_hierarchy.variants",
        key=lambda variant: variant.identity,
    )
    diagnostics: list[Diagnostic] = []
    diagnostics.extend(_label_collisions(identity, ordered))
    diagnostics.extend(_generic_variants(identity, ordered))
    diagnostics.extend(_default_values(snapshot, ordered))
    if diagnostics:
        return ValidationResult(hierarchy=None, diagnostics=tuple(diagnostics))
    return ValidationResult(
        hierarchy=ValidatedHierarchy(base=base, variants=snapshot.variants)
    )


def _label_collisions(
    hierarchy: str, variants: list[VariantDecl]
) -> list[Diagnostic]:
    seen: dict[str, Label] = {}
    diagnostics: list[Diagnostic] = []
    for variant in variants:
        check_deadline()
        for label in variant.labels:
            check_deadline()
            previous = seen.get(label.value)
            if previous is None:
                seen[label.value] = label
                continue
            kind = (
                DiagnosticKind.DUPLICATE_LABEL
                if label.kind is LabelKind.PRIMARY
                else DiagnosticKind.DUPLICATE_ALTERNATE_LABEL
            )
            diagnostics.append(
                Diagnostic.of(
                    kind,
                    variant.location,
                    hierarchy=hierarchy,
                    subject=variant.identity,
                    detail=(
                        f"'{label.value}' already used as {previous.kind.value} "
                        f"label of {previous.owner}"
                    ),
                )
            )
    return diagnostics


def _generic_variants(
    hierarchy: str, variants: list[VariantDecl]
) -> list[Diagnostic]:
    return [
        Diagnostic.of(
            DiagnosticKind.GENERIC_VARIANT,
            variant.location,
            hierarchy=hierarchy,
            subject=variant.identity,
            detail=f"{variant.identity} declares {variant.type_parameters} type parameter(s)",
        )
        for variant in variants
        if variant.type_parameters > 0
    ]


def _default_values(
    snapshot: HierarchySnapshot, variants: list[VariantDecl]
) -> list[Diagnostic]:
    base = snapshot.base
    if base is None:
        never("default value check without a base declaration")
    diagnostics: list[Diagnostic] = []
    defaults = [variant for variant in variants if variant.is_default]
    for variant in defaults:
        if variant.shape is not ShapeKind.SINGLETON:
            diagnostics.append(
                Diagnostic.of(
                    DiagnosticKind.DEFAULT_VALUE,
                    variant.location,
                    hierarchy=base.identity,
                    subject=variant.identity,
                    message=DEFAULT_OBJECT_SHAPE_MESSAGE,
                )
            )
    if len(defaults) + int(base.default_null) > 1:
        diagnostics.append(
            Diagnostic.of(
                DiagnosticKind.DEFAULT_VALUE,
                base.location,
                hierarchy=base.identity,
                subject=base.identity,
                detail=", ".join(
                    (["default_null"] if base.default_null else [])
                    + [variant.identity for variant in defaults]
                ),
            )
        )
    return diagnostics
