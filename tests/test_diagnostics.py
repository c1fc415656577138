from __future__ import annotations

import json

from sealedgen.diagnostics import (
    DEFAULT_OBJECT_SHAPE_MESSAGE,
    Diagnostic,
    DiagnosticKind,
    DiagnosticsReporter,
    SourceLocation,
    render_jsonl,
    render_sarif,
)


def _diag(kind: DiagnosticKind, line: int, **kwargs) -> Diagnostic:
    return Diagnostic.of(kind, SourceLocation(path="pkg/model.py", line=line, col=1), **kwargs)


def test_render_lint_line() -> None:
    diagnostic = _diag(
        DiagnosticKind.DUPLICATE_LABEL,
        12,
        subject="pkg.model.B",
        detail="'a' already used as primary label of pkg.model.A",
    )
    assert diagnostic.render() == (
        "pkg/model.py:12:1: DuplicateLabelError Duplicate label "
        "('a' already used as primary label of pkg.model.A)"
    )
    override = _diag(DiagnosticKind.DEFAULT_VALUE, 3, message=DEFAULT_OBJECT_SHAPE_MESSAGE)
    assert override.render() == (
        "pkg/model.py:3:1: DefaultValueError Default objects must be singletons."
    )


def test_reporter_orders_by_location() -> None:
    reporter = DiagnosticsReporter()
    assert not reporter.failed
    reporter.report(_diag(DiagnosticKind.GENERIC_VARIANT, 20, hierarchy="pkg.model.Base"))
    reporter.extend(
        [
            _diag(DiagnosticKind.DUPLICATE_LABEL, 8, hierarchy="pkg.model.Base"),
            _diag(DiagnosticKind.EMPTY_HIERARCHY, 2, hierarchy="pkg.model.Other"),
        ]
    )
    reporter.warn("pkg/model.py:1:1: something odd")
    assert reporter.failed
    assert [d.location.line for d in reporter.diagnostics()] == [2, 8, 20]
    assert [d.location.line for d in reporter.for_hierarchy("pkg.model.Base")] == [8, 20]
    assert reporter.lint_lines()[0].startswith("pkg/model.py:2:1: EmptyHierarchyError")
    assert reporter.warnings == ["pkg/model.py:1:1: something odd"]


def test_render_jsonl_and_sarif() -> None:
    diagnostics = [
        _diag(DiagnosticKind.DUPLICATE_LABEL, 4, subject="pkg.model.B"),
        _diag(DiagnosticKind.GENERIC_VARIANT, 9, subject="pkg.model.C"),
    ]
    lines = render_jsonl(diagnostics).splitlines()
    assert [json.loads(line)["code"] for line in lines] == [
        "DuplicateLabelError",
        "GenericVariantError",
    ]
    assert json.loads(lines[0])["severity"] == "error"
    assert render_jsonl([]) == ""

    sarif = json.loads(render_sarif(diagnostics))
    [run] = sarif["runs"]
    assert [rule["id"] for rule in run["tool"]["driver"]["rules"]] == [
        "DuplicateLabelError",
        "GenericVariantError",
    ]
    region = run["results"][1]["locations"][0]["physicalLocation"]["region"]
    assert region == {"startLine": 9, "startColumn": 1}
