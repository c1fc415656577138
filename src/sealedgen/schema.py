from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel


class DiagnosticDTO(BaseModel):
    path: str
    line: int
    col: int
    code: str
    message: str
    detail: str = ""
    hierarchy: str = ""
    subject: str = ""
    severity: str = "error"


class ArtifactDTO(BaseModel):
    path: str
    kind: str
    status: str


class HierarchyOutcomeDTO(BaseModel):
    identity: str
    status: str
    variants: List[str] = []
    labels: Dict[str, List[str]] = {}
    artifacts: List[ArtifactDTO] = []
    diagnostics: List[DiagnosticDTO] = []


class GenerationReportDTO(BaseModel):
    version: str
    rounds: int
    modules: List[str] = []
    hierarchies: List[HierarchyOutcomeDTO] = []
    diagnostics: List[DiagnosticDTO] = []
    warnings: List[str] = []
    dry_run: bool = False
    exit_code: int = 0


class CacheEntryDTO(BaseModel):
    fingerprint: str
    paths: List[str] = []


class ArtifactCacheDTO(BaseModel):
    format_version: int = 1
    generator_version: Optional[str] = None
    entries: Dict[str, CacheEntryDTO] = {}
