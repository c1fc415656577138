from __future__ import annotations

import json
import textwrap
from pathlib import Path

from typer.testing import CliRunner

from sealedgen import __version__
from sealedgen import cli
from sealedgen.cli import app
from sealedgen.timeout_context import TimeoutContext, TimeoutExceeded

runner = CliRunner()


def _write(root: Path, relative: str, source: str) -> None:
    target = root / relative
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(textwrap.dedent(source).lstrip(), encoding="utf-8")


def _project(tmp_path: Path, *, duplicate: bool = False) -> Path:
    src = tmp_path / "src"
    _write(
        src,
        "notes/model.py",
        f"""
        from sealedgen.annotations import json_class, type_label


        @json_class(generator="sealed:kind")
        class Note:
            pass


        @type_label("text")
        class Text(Note):
            pass


        @type_label("{'text' if duplicate else 'image'}")
        class Image(Note):
            pass
        """,
    )
    _write(src, "notes/__init__.py", "")
    return src


def test_generate_writes_artifacts_and_report(tmp_path: Path) -> None:
    src = _project(tmp_path)
    report_path = tmp_path / "report.json"
    result = runner.invoke(
        app,
        [
            "generate",
            str(src),
            "--root",
            str(tmp_path),
            "--output-dir",
            "out",
            "--source-root",
            "src",
            "--report",
            str(report_path),
        ],
    )
    assert result.exit_code == 0, result.output
    assert "sealedgen: 1 hierarchies in 1 round(s) (generated=1)" in result.output
    assert (tmp_path / "out" / "notes" / "model_note_json_adapter.py").is_file()
    assert (tmp_path / "out" / "retention" / "sealedgen-notes.model.Note.pro").is_file()
    report = json.loads(report_path.read_text())
    assert report["exit_code"] == 0
    assert report["modules"] == ["notes", "notes.model"]
    [hierarchy] = report["hierarchies"]
    assert hierarchy["identity"] == "notes.model.Note"
    assert hierarchy["variants"] == ["notes.model.Text", "notes.model.Image"]


def test_generate_honours_config_file_and_flag_override(tmp_path: Path) -> None:
    src = _project(tmp_path)
    (tmp_path / "sealedgen.toml").write_text(
        '[sealed]\noutput_dir = "gen"\nsource_roots = ["src"]\n'
        "generate_retention_rules = false\n",
        encoding="utf-8",
    )
    result = runner.invoke(app, ["generate", str(src), "--root", str(tmp_path)])
    assert result.exit_code == 0, result.output
    assert (tmp_path / "gen" / "notes" / "model_note_json_adapter.py").is_file()
    assert not (tmp_path / "gen" / "retention").exists()

    result = runner.invoke(
        app,
        ["generate", str(src), "--root", str(tmp_path), "--retention-rules"],
    )
    assert result.exit_code == 0, result.output
    assert (tmp_path / "gen" / "retention" / "sealedgen-notes.model.Note.pro").is_file()


def test_generate_reports_lint_lines_and_fails(tmp_path: Path) -> None:
    src = _project(tmp_path, duplicate=True)
    sarif_path = tmp_path / "lint.sarif"
    jsonl_path = tmp_path / "lint.jsonl"
    result = runner.invoke(
        app,
        [
            "generate",
            str(src),
            "--root",
            str(tmp_path),
            "--output-dir",
            "out",
            "--source-root",
            "src",
            "--lint-sarif",
            str(sarif_path),
            "--lint-jsonl",
            str(jsonl_path),
        ],
    )
    assert result.exit_code == 1
    assert "DuplicateLabelError Duplicate label" in result.output
    assert "rejected=1" in result.output
    assert not (tmp_path / "out" / "notes" / "model_note_json_adapter.py").exists()
    sarif = json.loads(sarif_path.read_text())
    [run] = sarif["runs"]
    assert [entry["ruleId"] for entry in run["results"]] == ["DuplicateLabelError"]
    [line] = jsonl_path.read_text().splitlines()
    assert json.loads(line)["subject"] == "notes.model.Image"


def test_generate_dry_run_leaves_output_untouched(tmp_path: Path) -> None:
    src = _project(tmp_path)
    result = runner.invoke(
        app,
        [
            "generate",
            str(src),
            "--root",
            str(tmp_path),
            "--output-dir",
            "out",
            "--source-root",
            "src",
            "--dry-run",
        ],
    )
    assert result.exit_code == 0, result.output
    assert "planned=1" in result.output
    assert not (tmp_path / "out").exists()


def test_generate_timeout_exits_with_timeout_code(tmp_path: Path, monkeypatch) -> None:
    src = _project(tmp_path)

    def _exhausted(request):
        raise TimeoutExceeded(TimeoutContext(reason="Gas exhausted: 5/5", site="test"))

    monkeypatch.setattr(cli, "run_generation", _exhausted)
    result = runner.invoke(app, ["generate", str(src), "--root", str(tmp_path)])
    assert result.exit_code == 2
    assert "Generation timed out. (Gas exhausted: 5/5)" in result.output


def test_version_command() -> None:
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert result.output.strip() == __version__
