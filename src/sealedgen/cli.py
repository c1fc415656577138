from __future__ import annotations

from contextlib import ExitStack, contextmanager
from pathlib import Path
from typing import List, Optional
import sys

import typer

from sealedgen import __version__
from sealedgen.config import resolve_config
from sealedgen.deadline_clock import GasMeter
from sealedgen.diagnostics import render_jsonl, render_sarif
from sealedgen.processor import (
    EXIT_TIMEOUT,
    GenerateRequest,
    GenerationResult,
    run_generation,
)
from sealedgen.runtime.json_io import dump_json_pretty
from sealedgen.timeout_context import (
    Deadline,
    TimeoutExceeded,
    check_deadline,
    deadline_clock_scope,
    deadline_scope,
)

app = typer.Typer(add_completion=False)

_DEFAULT_TIMEOUT_MS = 120_000
_DEFAULT_GAS_LIMIT = 50_000_000
_STDOUT_ALIAS = "-"


@contextmanager
def _cli_deadline_scope(timeout_ms: int, gas_limit: int = _DEFAULT_GAS_LIMIT):
    with ExitStack() as stack:
        stack.enter_context(deadline_scope(Deadline.from_timeout_ms(timeout_ms)))
        stack.enter_context(deadline_clock_scope(GasMeter(limit=int(gas_limit))))
        yield


def _write_text_to_target(target: Path, payload: str) -> None:
    if str(target) == _STDOUT_ALIAS:
        sys.stdout.write(payload)
        sys.stdout.flush()
        return
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(payload, encoding="utf-8")


def _emit_outputs(
    result: GenerationResult,
    *,
    lint: bool,
    lint_jsonl: Optional[Path],
    lint_sarif: Optional[Path],
    report: Optional[Path],
) -> None:
    check_deadline()
    diagnostics = result.reporter.diagnostics()
    if lint:
        for line in result.reporter.lint_lines():
            check_deadline()
            typer.echo(line)
    for warning in result.reporter.warnings:
        typer.echo(f"warning: {warning}", err=True)
    if lint_jsonl is not None:
        _write_text_to_target(lint_jsonl, render_jsonl(diagnostics))
    if lint_sarif is not None:
        _write_text_to_target(lint_sarif, render_sarif(diagnostics))
    if report is not None:
        _write_text_to_target(
            report, dump_json_pretty(result.to_report().model_dump())
        )


def _summary_line(result: GenerationResult) -> str:
    counts: dict[str, int] = {}
    for outcome in result.outcomes:
        counts[outcome.status] = counts.get(outcome.status, 0) + 1
    parts = [f"{status}={counts[status]}" for status in sorted(counts)]
    summary = ", ".join(parts) if parts else "no sealed hierarchies"
    return (
        f"sealedgen: {len(result.outcomes)} hierarchies in {result.rounds} round(s) "
        f"({summary})"
    )


@app.command()
def generate(
    paths: List[Path] = typer.Argument(None),
    root: Path = typer.Option(Path("."), "--root"),
    config: Optional[Path] = typer.Option(None, "--config"),
    output_dir: Optional[Path] = typer.Option(
        None, "--output-dir", help="Artifact root (default from sealedgen.toml)."
    ),
    source_root: List[Path] = typer.Option(
        [], "--source-root", help="Where imported modules are looked up."
    ),
    retention_rules: Optional[bool] = typer.Option(
        None,
        "--retention-rules/--no-retention-rules",
        help="Process default for retention rule files.",
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Validate and render without writing files."
    ),
    no_cache: bool = typer.Option(
        False, "--no-cache", help="Rewrite every artifact regardless of the cache."
    ),
    report: Optional[Path] = typer.Option(
        None, "--report", help="Write the JSON run report ('-' for stdout)."
    ),
    lint: bool = typer.Option(True, "--lint/--no-lint"),
    lint_jsonl: Optional[Path] = typer.Option(None, "--lint-jsonl"),
    lint_sarif: Optional[Path] = typer.Option(None, "--lint-sarif"),
    max_rounds: Optional[int] = typer.Option(None, "--max-rounds", min=1),
    timeout_ms: int = typer.Option(_DEFAULT_TIMEOUT_MS, "--timeout-ms", min=1),
) -> None:
    """Generate adapters for every sealed hierarchy under PATHS."""
    overrides: dict[str, object] = {
        "generate_retention_rules": retention_rules,
        "output_dir": str(output_dir) if output_dir is not None else None,
        "source_roots": [str(entry) for entry in source_root] or None,
        "max_rounds": max_rounds,
    }
    settings = resolve_config(root=root, config_path=config, overrides=overrides)
    targets = tuple(paths or [root])
    request = GenerateRequest(
        paths=targets,
        config=settings,
        dry_run=dry_run,
        use_cache=not no_cache,
    )
    with _cli_deadline_scope(timeout_ms):
        try:
            result = run_generation(request)
            _emit_outputs(
                result,
                lint=lint,
                lint_jsonl=lint_jsonl,
                lint_sarif=lint_sarif,
                report=report,
            )
        except TimeoutExceeded as exc:
            typer.echo(f"{exc} ({exc.context.reason})", err=True)
            raise typer.Exit(code=EXIT_TIMEOUT)
    typer.echo(_summary_line(result))
    if result.exit_code:
        typer.echo(
            f"Non-zero exit ({result.exit_code}): "
            f"{len(result.reporter.diagnostics())} diagnostic(s) reported",
            err=True,
        )
    raise typer.Exit(code=result.exit_code)


@app.command()
def version() -> None:
    """Print the sealedgen version."""
    typer.echo(__version__)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
