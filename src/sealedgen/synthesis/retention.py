from __future__ import annotations

from sealedgen.synthesis.model import GeneratedArtifact, ValidatedHierarchy
from sealedgen.synthesis.naming import adapter_identity

RETENTION_DIR = "retention"
RETENTION_KIND = "retention"
DEFAULT_REGISTRY_TYPE = "sealedgen.adapters.JsonRegistry"


def retention_path(hierarchy: ValidatedHierarchy) -> str:
    return f"{RETENTION_DIR}/sealedgen-{hierarchy.identity}.pro"


def render_retention_rules(
    hierarchy: ValidatedHierarchy,
    registry_type: str = DEFAULT_REGISTRY_TYPE,
) -> GeneratedArtifact:
    """Keep the base name and the generated adapter's registry constructor.

    Both rules are conditional on the base type surviving shrinking.
    """
    base = hierarchy.identity
    adapter = adapter_identity(hierarchy.base)
    lines = [
        f"-if class {base}",
        f"-keepnames class {base}",
        f"-if class {base}",
        f"-keep class {adapter} {{",
        f"    public <init>({registry_type});",
        "}",
    ]
    return GeneratedArtifact(
        relative_path=retention_path(hierarchy),
        text="\n".join(lines) + "\n",
        kind=RETENTION_KIND,
    )
