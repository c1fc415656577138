from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from pathlib import Path
from typing import TypeAlias
import tomllib

DEFAULT_CONFIG_NAME = "sealedgen.toml"
DEFAULT_OUTPUT_DIR = "build/generated/sealedgen"
DEFAULT_MAX_ROUNDS = 64

TomlScalar: TypeAlias = str | int | float | bool | None | date | datetime | time
TomlValue: TypeAlias = TomlScalar | list["TomlValue"] | dict[str, "TomlValue"]
TomlTable: TypeAlias = dict[str, TomlValue]


def _load_toml(path: Path) -> TomlTable:
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError:
        return {}
    try:
        data = tomllib.loads(raw)
    except tomllib.TOMLDecodeError:
        return {}
    return data if isinstance(data, dict) else {}


def load_config(root: Path | None = None, config_path: Path | None = None) -> TomlTable:
    if config_path is None:
        base = root if root is not None else Path.cwd()
        config_path = base / DEFAULT_CONFIG_NAME
    return _load_toml(config_path)


def sealed_defaults(
    root: Path | None = None, config_path: Path | None = None
) -> TomlTable:
    data = load_config(root=root, config_path=config_path)
    section = data.get("sealed", {})
    return section if isinstance(section, dict) else {}


def _normalize_name_list(value: TomlValue) -> list[str]:
    items: list[str] = []
    if value is None:
        return items
    if isinstance(value, str):
        items = [part.strip() for part in value.split(",") if part.strip()]
    elif isinstance(value, (list, tuple, set)):
        for item in value:
            if isinstance(item, str):
                items.extend([part.strip() for part in item.split(",") if part.strip()])
    return [item for item in items if item]


def _as_bool(value: TomlValue, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return default


def _as_positive_int(value: TomlValue, default: int) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, int) and value > 0:
        return value
    if isinstance(value, str) and value.strip().isdigit() and int(value) > 0:
        return int(value)
    return default


def merge_payload(payload: TomlTable, defaults: TomlTable) -> TomlTable:
    merged = dict(defaults)
    for key, value in payload.items():
        if value is None:
            continue
        merged[key] = value
    return merged


@dataclass(frozen=True)
class SealedConfig:
    root: Path
    generate_retention_rules: bool = True
    output_dir: Path = Path(DEFAULT_OUTPUT_DIR)
    source_roots: tuple[Path, ...] = (Path("."),)
    max_rounds: int = DEFAULT_MAX_ROUNDS
    exclude: tuple[str, ...] = ()

    @classmethod
    def from_section(cls, section: TomlTable, *, root: Path) -> "SealedConfig":
        """Relative paths in the section are anchored at `root`."""
        output_dir = section.get("output_dir")
        source_roots = _normalize_name_list(section.get("source_roots")) or ["."]
        return cls(
            root=root,
            generate_retention_rules=_as_bool(
                section.get("generate_retention_rules"), True
            ),
            output_dir=root / (
                output_dir if isinstance(output_dir, str) and output_dir else DEFAULT_OUTPUT_DIR
            ),
            source_roots=tuple(root / entry for entry in source_roots),
            max_rounds=_as_positive_int(section.get("max_rounds"), DEFAULT_MAX_ROUNDS),
            exclude=tuple(_normalize_name_list(section.get("exclude"))),
        )


def resolve_config(
    root: Path | None = None,
    config_path: Path | None = None,
    overrides: TomlTable | None = None,
) -> SealedConfig:
    """File defaults from `[sealed]`, overridden by non-None `overrides`."""
    base = root if root is not None else Path.cwd()
    section = merge_payload(
        overrides or {}, sealed_defaults(root=base, config_path=config_path)
    )
    return SealedConfig.from_section(section, root=base)
