"""Run orchestration: discovery rounds, closure, validation and emission.

The processor drives a declaration host round by round through the
resolution driver. Each hierarchy is validated and rendered as soon as the
driver closes it; files are written once every round has been consumed, so
a timeout never leaves a partially generated tree behind.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence

from sealedgen import __version__
from sealedgen.config import SealedConfig
from sealedgen.diagnostics import (
    Diagnostic,
    DiagnosticKind,
    DiagnosticsReporter,
    SourceLocation,
)
from sealedgen.ingest.adapter_contract import DeclarationHost, ParseFailureWitness
from sealedgen.ingest.python_adapter import PythonDeclarationHost
from sealedgen.order_contract import sort_once
from sealedgen.runtime.artifact_cache import ArtifactCache
from sealedgen.schema import (
    ArtifactDTO,
    DiagnosticDTO,
    GenerationReportDTO,
    HierarchyOutcomeDTO,
)
from sealedgen.synthesis.emission import render_adapter_module
from sealedgen.synthesis.model import (
    GeneratedArtifact,
    HierarchySnapshot,
    RoundReport,
    ValidatedHierarchy,
)
from sealedgen.synthesis.resolution import ResolutionDriver
from sealedgen.synthesis.retention import render_retention_rules
from sealedgen.synthesis.validation import validate_hierarchy
from sealedgen.timeout_context import check_deadline

EXIT_OK = 0
EXIT_DIAGNOSTICS = 1
EXIT_TIMEOUT = 2

STATUS_GENERATED = "generated"
STATUS_UNCHANGED = "unchanged"
STATUS_PLANNED = "planned"
STATUS_REJECTED = "rejected"
STATUS_SKIPPED = "skipped"
STATUS_UNRESOLVED = "unresolved"


@dataclass(frozen=True)
class GenerateRequest:
    paths: tuple[Path, ...]
    config: SealedConfig
    dry_run: bool = False
    use_cache: bool = True


@dataclass
class HierarchyOutcome:
    identity: str
    status: str
    snapshot: HierarchySnapshot
    hierarchy: ValidatedHierarchy | None = None
    artifacts: tuple[GeneratedArtifact, ...] = ()
    artifact_status: dict[str, str] = field(default_factory=dict)


@dataclass
class GenerationResult:
    reporter: DiagnosticsReporter
    outcomes: list[HierarchyOutcome]
    rounds: int
    modules: tuple[str, ...] = ()
    dry_run: bool = False
    written: list[Path] = field(default_factory=list)

    @property
    def failed(self) -> bool:
        return self.reporter.failed

    @property
    def exit_code(self) -> int:
        return EXIT_DIAGNOSTICS if self.failed else EXIT_OK

    def outcome(self, identity: str) -> HierarchyOutcome | None:
        for outcome in self.outcomes:
            if outcome.identity == identity:
                return outcome
        return None

    def to_report(self) -> GenerationReportDTO:
        hierarchies: list[HierarchyOutcomeDTO] = []
        for outcome in sort_once(
            self.outcomes,
            source="GenerationResult.to_report.outcomes",
            key=lambda item: item.identity,
        ):
            check_deadline()
            hierarchies.append(
                HierarchyOutcomeDTO(
                    identity=outcome.identity,
                    status=outcome.status,
                    variants=[variant.identity for variant in outcome.snapshot.variants],
                    labels={
                        variant.identity: [label.value for label in variant.labels]
                        for variant in outcome.snapshot.variants
                    },
                    artifacts=[
                        ArtifactDTO(
                            path=artifact.relative_path,
                            kind=artifact.kind,
                            status=outcome.artifact_status.get(
                                artifact.relative_path, outcome.status
                            ),
                        )
                        for artifact in outcome.artifacts
                    ],
                    diagnostics=[
                        DiagnosticDTO(**diagnostic.as_payload())
                        for diagnostic in self.reporter.for_hierarchy(outcome.identity)
                    ],
                )
            )
        return GenerationReportDTO(
            version=__version__,
            rounds=self.rounds,
            modules=list(self.modules),
            hierarchies=hierarchies,
            diagnostics=[
                DiagnosticDTO(**diagnostic.as_payload())
                for diagnostic in self.reporter.diagnostics()
            ],
            warnings=self.reporter.warnings,
            dry_run=self.dry_run,
            exit_code=self.exit_code,
        )


def render_artifacts(
    hierarchy: ValidatedHierarchy, *, generate_retention_rules: bool
) -> tuple[GeneratedArtifact, ...]:
    artifacts = [render_adapter_module(hierarchy)]
    if hierarchy.base.retention_enabled(generate_retention_rules):
        artifacts.append(render_retention_rules(hierarchy))
    return tuple(artifacts)


def _close_hierarchy(
    snapshot: HierarchySnapshot,
    *,
    config: SealedConfig,
    reporter: DiagnosticsReporter,
) -> HierarchyOutcome:
    check_deadline()
    base = snapshot.base
    identity = base.identity if base is not None else ""
    result = validate_hierarchy(snapshot)
    if result.hierarchy is None:
        reporter.extend(result.diagnostics)
        return HierarchyOutcome(identity=identity, status=STATUS_REJECTED, snapshot=snapshot)
    if not result.hierarchy.base.generate_adapter:
        return HierarchyOutcome(
            identity=identity,
            status=STATUS_SKIPPED,
            snapshot=snapshot,
            hierarchy=result.hierarchy,
        )
    return HierarchyOutcome(
        identity=identity,
        status=STATUS_GENERATED,
        snapshot=snapshot,
        hierarchy=result.hierarchy,
        artifacts=render_artifacts(
            result.hierarchy,
            generate_retention_rules=config.generate_retention_rules,
        ),
    )


def parse_failure_diagnostic(failure: ParseFailureWitness) -> Diagnostic:
    return Diagnostic.of(
        DiagnosticKind.PARSE_ERROR,
        SourceLocation(path=str(failure.path), line=failure.line, col=failure.col),
        subject=str(failure.path),
        detail=f"{failure.stage}: {failure.error}",
    )


def resolve_host(
    host: DeclarationHost,
    *,
    config: SealedConfig,
    reporter: DiagnosticsReporter,
) -> tuple[list[HierarchyOutcome], int]:
    """Consume every round of `host`; return closed outcomes and round count."""
    driver = ResolutionDriver()
    outcomes: list[HierarchyOutcome] = []

    def _on_closed(closed: Sequence[str]) -> None:
        for identity in closed:
            check_deadline()
            outcomes.append(
                _close_hierarchy(
                    driver.hierarchy(identity), config=config, reporter=reporter
                )
            )

    for report in host.rounds():
        check_deadline(site="processor.resolve_host")
        _on_closed(driver.complete_round(report))
        if driver.finished:
            break
    if not driver.finished:
        _on_closed(driver.complete_round(RoundReport(final=True)))
    resolution = driver.finish()
    reporter.extend(resolution.unresolved)
    for diagnostic in resolution.unresolved:
        outcomes.append(
            HierarchyOutcome(
                identity=diagnostic.hierarchy,
                status=STATUS_UNRESOLVED,
                snapshot=driver.hierarchy(diagnostic.hierarchy),
            )
        )
    for orphan in resolution.orphans:
        check_deadline()
        reporter.warn(
            f"{orphan.location.render()}: {orphan.identity} is labelled but its "
            f"supertype {orphan.base} is not a sealed base; ignored"
        )
    for failure in host.parse_failures:
        reporter.report(parse_failure_diagnostic(failure))
    for warning in host.warnings:
        reporter.warn(warning)
    return outcomes, resolution.rounds


def reject_conflicting_artifacts(
    outcomes: list[HierarchyOutcome], *, reporter: DiagnosticsReporter
) -> None:
    """Reject every hierarchy whose artifact path another hierarchy also claims.

    All claimants are rejected, so the result does not depend on the order
    hierarchies closed in.
    """
    claims: dict[str, list[HierarchyOutcome]] = {}
    for outcome in outcomes:
        check_deadline()
        for artifact in outcome.artifacts:
            claims.setdefault(artifact.relative_path, []).append(outcome)
    conflicted: dict[str, HierarchyOutcome] = {}
    for path in sort_once(claims, source="reject_conflicting_artifacts.paths"):
        check_deadline()
        owners = claims[path]
        if len(owners) < 2:
            continue
        identities = sort_once(
            [owner.identity for owner in owners],
            source="reject_conflicting_artifacts.owners",
        )
        for owner in owners:
            base = owner.snapshot.base
            others = [identity for identity in identities if identity != owner.identity]
            reporter.report(
                Diagnostic.of(
                    DiagnosticKind.ARTIFACT_CONFLICT,
                    base.location if base is not None else SourceLocation(path=path),
                    hierarchy=owner.identity,
                    subject=owner.identity,
                    detail=f"{path} also generated for {', '.join(others)}",
                )
            )
            conflicted[owner.identity] = owner
    for outcome in conflicted.values():
        outcome.status = STATUS_REJECTED
        outcome.artifacts = ()


def _remove_files(output_dir: Path, relative_paths: Sequence[str]) -> None:
    for relative in relative_paths:
        check_deadline()
        target = output_dir / relative
        if target.is_file():
            target.unlink()


def _write_outcomes(
    outcomes: list[HierarchyOutcome],
    *,
    request: GenerateRequest,
) -> list[Path]:
    output_dir = request.config.output_dir
    cache = ArtifactCache.load(output_dir) if request.use_cache else None
    written: list[Path] = []
    for outcome in outcomes:
        check_deadline()
        previous = cache.entries.get(outcome.identity) if cache is not None else None
        if outcome.status in {STATUS_REJECTED, STATUS_SKIPPED, STATUS_UNRESOLVED}:
            if cache is not None and previous is not None and not request.dry_run:
                _remove_files(output_dir, previous.paths)
                cache.forget(outcome.identity)
            continue
        if request.dry_run:
            outcome.status = STATUS_PLANNED
            outcome.artifact_status = {
                artifact.relative_path: STATUS_PLANNED for artifact in outcome.artifacts
            }
            continue
        if cache is not None and cache.is_current(
            outcome.identity, outcome.artifacts, output_dir
        ):
            outcome.status = STATUS_UNCHANGED
            outcome.artifact_status = {
                artifact.relative_path: STATUS_UNCHANGED for artifact in outcome.artifacts
            }
            continue
        current = {artifact.relative_path for artifact in outcome.artifacts}
        if previous is not None:
            _remove_files(
                output_dir, [path for path in previous.paths if path not in current]
            )
        for artifact in outcome.artifacts:
            check_deadline()
            target = output_dir / artifact.relative_path
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(artifact.text, encoding="utf-8")
            written.append(target)
            outcome.artifact_status[artifact.relative_path] = STATUS_GENERATED
        if cache is not None:
            cache.record(outcome.identity, outcome.artifacts)
    if cache is not None and not request.dry_run:
        cache.save()
    return written


def run_generation(
    request: GenerateRequest,
    *,
    host: DeclarationHost | None = None,
) -> GenerationResult:
    """Generate every hierarchy reachable from `request.paths`.

    Requires an ambient deadline scope and deadline clock.
    """
    check_deadline(site="processor.run_generation")
    config = request.config
    if host is None:
        host = PythonDeclarationHost(
            request.paths,
            config.source_roots,
            exclude=config.exclude,
            max_rounds=config.max_rounds,
        )
    reporter = DiagnosticsReporter()
    outcomes, rounds = resolve_host(host, config=config, reporter=reporter)
    reject_conflicting_artifacts(outcomes, reporter=reporter)
    written = _write_outcomes(outcomes, request=request)
    return GenerationResult(
        reporter=reporter,
        outcomes=outcomes,
        rounds=rounds,
        modules=host.modules,
        dry_run=request.dry_run,
        written=written,
    )
