from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence

from pydantic import ValidationError

from sealedgen import __version__
from sealedgen.runtime.json_io import load_json_object_path, write_json_pretty
from sealedgen.runtime.stable_encode import stable_fingerprint
from sealedgen.schema import ArtifactCacheDTO, CacheEntryDTO
from sealedgen.synthesis.model import GeneratedArtifact

CACHE_FILE_NAME = ".sealedgen-cache.json"
CACHE_FORMAT_VERSION = 1


def artifacts_fingerprint(artifacts: Sequence[GeneratedArtifact]) -> str:
    return stable_fingerprint(
        [
            {"path": artifact.relative_path, "kind": artifact.kind, "text": artifact.text}
            for artifact in artifacts
        ]
    )


@dataclass
class ArtifactCache:
    """Per-hierarchy fingerprints of the artifacts written by the last run.

    A cache written by another generator version or format is ignored.
    """

    path: Path
    entries: dict[str, CacheEntryDTO] = field(default_factory=dict)

    @classmethod
    def load(cls, output_dir: Path) -> "ArtifactCache":
        path = output_dir / CACHE_FILE_NAME
        payload = load_json_object_path(path)
        try:
            dto = ArtifactCacheDTO.model_validate(payload)
        except ValidationError:
            return cls(path=path)
        if (
            dto.format_version != CACHE_FORMAT_VERSION
            or dto.generator_version != __version__
        ):
            return cls(path=path)
        return cls(path=path, entries=dict(dto.entries))

    def is_current(
        self, identity: str, artifacts: Sequence[GeneratedArtifact], output_dir: Path
    ) -> bool:
        entry = self.entries.get(identity)
        if entry is None:
            return False
        if entry.fingerprint != artifacts_fingerprint(artifacts):
            return False
        return all((output_dir / relative).is_file() for relative in entry.paths)

    def record(self, identity: str, artifacts: Sequence[GeneratedArtifact]) -> None:
        self.entries[identity] = CacheEntryDTO(
            fingerprint=artifacts_fingerprint(artifacts),
            paths=[artifact.relative_path for artifact in artifacts],
        )

    def forget(self, identity: str) -> None:
        self.entries.pop(identity, None)

    def save(self) -> None:
        dto = ArtifactCacheDTO(
            format_version=CACHE_FORMAT_VERSION,
            generator_version=__version__,
            entries=self.entries,
        )
        write_json_pretty(self.path, dto.model_dump())
