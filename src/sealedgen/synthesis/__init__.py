"""Hierarchy resolution, validation and artifact rendering."""

from sealedgen.synthesis.emission import render_adapter_module, render_adapter_source
from sealedgen.synthesis.index import HierarchyIndex
from sealedgen.synthesis.model import (
    BaseTypeDecl,
    GeneratedArtifact,
    HierarchySnapshot,
    Label,
    LabelKind,
    RoundReport,
    ShapeKind,
    ValidatedHierarchy,
    VariantDecl,
    make_variant,
)
from sealedgen.synthesis.resolution import (
    ResolutionDriver,
    ResolutionOutcome,
    resolve_rounds,
)
from sealedgen.synthesis.retention import render_retention_rules
from sealedgen.synthesis.validation import ValidationResult, validate_hierarchy

__all__ = [
    "BaseTypeDecl",
    "GeneratedArtifact",
    "HierarchyIndex",
    "HierarchySnapshot",
    "Label",
    "LabelKind",
    "ResolutionDriver",
    "ResolutionOutcome",
    "RoundReport",
    "ShapeKind",
    "ValidatedHierarchy",
    "ValidationResult",
    "VariantDecl",
    "make_variant",
    "render_adapter_module",
    "render_adapter_source",
    "render_retention_rules",
    "resolve_rounds",
    "validate_hierarchy",
]
