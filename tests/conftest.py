from __future__ import annotations

import importlib
import importlib.util
import sys
import textwrap
from pathlib import Path
from types import ModuleType
from typing import Callable, Mapping

ROOT = Path(__file__).resolve().parents[1]
for entry in (ROOT, ROOT / "src"):
    if str(entry) not in sys.path:
        sys.path.insert(0, str(entry))


import pytest

from sealedgen.deadline_clock import GasMeter
from sealedgen.timeout_context import Deadline, deadline_clock_scope, deadline_scope


@pytest.fixture(autouse=True)
def _deadline_scope_fixture():
    with deadline_scope(Deadline.from_timeout_ms(120_000)):
        with deadline_clock_scope(GasMeter(limit=100_000_000)):
            yield


@pytest.fixture
def write_sources(tmp_path: Path) -> Callable[[Mapping[str, str]], Path]:
    """Write `{relative path: source}` under tmp_path/src and return that root."""

    def _write(files: Mapping[str, str]) -> Path:
        root = tmp_path / "src"
        for relative, source in files.items():
            target = root / relative
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(textwrap.dedent(source).lstrip(), encoding="utf-8")
        return root

    return _write


@pytest.fixture
def load_generated(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """Import a generated module with tmp_path/src importable.

    Modules loaded from tmp_path are dropped afterwards so packages with the
    same name in other tests are imported fresh.
    """
    monkeypatch.syspath_prepend(str(tmp_path / "src"))
    importlib.invalidate_caches()

    def _load(path: Path, name: str = "generated_adapter") -> ModuleType:
        spec = importlib.util.spec_from_file_location(name, path)
        assert spec is not None and spec.loader is not None
        module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(module)
        return module

    yield _load
    prefix = str(tmp_path)
    for name, module in list(sys.modules.items()):
        location = getattr(module, "__file__", None) or ""
        if location.startswith(prefix):
            sys.modules.pop(name, None)
