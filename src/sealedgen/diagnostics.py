"""Diagnostic kinds and the run-wide diagnostics reporter.

Diagnostics render as lint lines (``path:line:col: CODE message``) so they
can be consumed by the same tooling as compiler output, and can also be
written as JSONL or SARIF.
"""

from __future__ import annotations

import json
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable

from sealedgen.order_contract import sort_once
from sealedgen.timeout_context import check_deadline


class DiagnosticKind(str, Enum):
    DUPLICATE_LABEL = "DuplicateLabelError"
    DUPLICATE_ALTERNATE_LABEL = "DuplicateAlternateLabelError"
    GENERIC_VARIANT = "GenericVariantError"
    UNRESOLVED_HIERARCHY = "UnresolvedHierarchyError"
    EMPTY_HIERARCHY = "EmptyHierarchyError"
    DEFAULT_VALUE = "DefaultValueError"
    PARSE_ERROR = "ParseError"
    ARTIFACT_CONFLICT = "ArtifactConflictError"


MESSAGES: dict[DiagnosticKind, str] = {
    DiagnosticKind.DUPLICATE_LABEL: "Duplicate label",
    DiagnosticKind.DUPLICATE_ALTERNATE_LABEL: "Duplicate alternate label",
    DiagnosticKind.GENERIC_VARIANT: "Moshi-sealed subtypes cannot be generic.",
    DiagnosticKind.UNRESOLVED_HIERARCHY: (
        "Sealed type never closed: unresolved subtype reference."
    ),
    DiagnosticKind.EMPTY_HIERARCHY: "Sealed type has no subtypes.",
    DiagnosticKind.DEFAULT_VALUE: "Only one default value may be declared.",
    DiagnosticKind.PARSE_ERROR: "Unable to parse source file.",
    DiagnosticKind.ARTIFACT_CONFLICT: (
        "Generated artifact path is claimed by more than one hierarchy."
    ),
}

DEFAULT_OBJECT_SHAPE_MESSAGE = "Default objects must be singletons."


@dataclass(frozen=True)
class SourceLocation:
    path: str
    line: int = 1
    col: int = 1

    def render(self) -> str:
        return f"{self.path}:{self.line}:{self.col}"


UNKNOWN_LOCATION = SourceLocation(path="<unknown>")


@dataclass(frozen=True)
class Diagnostic:
    kind: DiagnosticKind
    message: str
    location: SourceLocation
    hierarchy: str = ""
    subject: str = ""
    detail: str = ""

    @classmethod
    def of(
        cls,
        kind: DiagnosticKind,
        location: SourceLocation,
        *,
        hierarchy: str = "",
        subject: str = "",
        detail: str = "",
        message: str | None = None,
    ) -> "Diagnostic":
        return cls(
            kind=kind,
            message=message if message is not None else MESSAGES[kind],
            location=location,
            hierarchy=hierarchy,
            subject=subject,
            detail=detail,
        )

    def render(self) -> str:
        text = f"{self.location.render()}: {self.kind.value} {self.message}"
        if self.detail:
            text = f"{text} ({self.detail})"
        return text

    def as_payload(self) -> dict[str, object]:
        return {
            "path": self.location.path,
            "line": self.location.line,
            "col": self.location.col,
            "code": self.kind.value,
            "message": self.message,
            "detail": self.detail,
            "hierarchy": self.hierarchy,
            "subject": self.subject,
            "severity": "error",
        }


@dataclass
class DiagnosticsReporter:
    """Aggregates diagnostics for every hierarchy processed in a run."""

    _diagnostics: list[Diagnostic] = field(default_factory=list)
    _warnings: list[str] = field(default_factory=list)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def report(self, diagnostic: Diagnostic) -> None:
        with self._lock:
            self._diagnostics.append(diagnostic)

    def extend(self, diagnostics: Iterable[Diagnostic]) -> None:
        for diagnostic in diagnostics:
            check_deadline()
            self.report(diagnostic)

    def warn(self, message: str) -> None:
        with self._lock:
            self._warnings.append(message)

    @property
    def failed(self) -> bool:
        return bool(self._diagnostics)

    @property
    def warnings(self) -> list[str]:
        return list(self._warnings)

    def diagnostics(self) -> list[Diagnostic]:
        # Report order: by location, then kind, so reruns print identically.
        return sort_once(
            self._diagnostics,
            source="DiagnosticsReporter.diagnostics",
            key=lambda d: (
                d.location.path,
                d.location.line,
                d.location.col,
                d.kind.value,
                d.subject,
                d.detail,
            ),
        )

    def for_hierarchy(self, identity: str) -> list[Diagnostic]:
        return [d for d in self.diagnostics() if d.hierarchy == identity]

    def lint_lines(self) -> list[str]:
        return [diagnostic.render() for diagnostic in self.diagnostics()]


def render_jsonl(diagnostics: Iterable[Diagnostic]) -> str:
    lines = [json.dumps(d.as_payload(), sort_keys=True) for d in diagnostics]
    return "\n".join(lines) + ("\n" if lines else "")


def render_sarif(diagnostics: Iterable[Diagnostic]) -> str:
    check_deadline()
    rules: dict[str, dict[str, object]] = {}
    results: list[dict[str, object]] = []
    for diagnostic in diagnostics:
        check_deadline()
        code = diagnostic.kind.value
        rules[code] = {
            "id": code,
            "name": code,
            "shortDescription": {"text": MESSAGES[diagnostic.kind]},
        }
        results.append(
            {
                "ruleId": code,
                "level": "error",
                "message": {"text": diagnostic.message},
                "locations": [
                    {
                        "physicalLocation": {
                            "artifactLocation": {"uri": diagnostic.location.path},
                            "region": {
                                "startLine": diagnostic.location.line,
                                "startColumn": diagnostic.location.col,
                            },
                        }
                    }
                ],
            }
        )
    sarif = {
        "$schema": "https://json.schemastore.org/sarif-2.1.0.json",
        "version": "2.1.0",
        "runs": [
            {
                "tool": {
                    "driver": {
                        "name": "sealedgen",
                        "rules": [rules[code] for code in sort_once(rules, source="render_sarif.rules")],
                    }
                },
                "results": results,
            }
        ],
    }
    return json.dumps(sarif, indent=2, sort_keys=True) + "\n"
