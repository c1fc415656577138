from __future__ import annotations

import hashlib
import json
from typing import Mapping

from sealedgen.order_contract import sort_once


def stable_compact_text(
    value: object,
    *,
    ensure_ascii: bool = True,
) -> str:
    """Deterministic text encoder for fingerprint surfaces.

    Mapping keys are sorted lexically once per mapping; sequence order is
    preserved and tuples become lists.
    """
    normalized = stable_json_value(
        value,
        source="stable_encode.stable_compact_text",
    )
    return json.dumps(
        normalized,
        separators=(",", ":"),
        sort_keys=False,
        ensure_ascii=ensure_ascii,
    )


def stable_fingerprint(value: object) -> str:
    text = stable_compact_text(value)
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def stable_json_value(
    value: object,
    *,
    source: str,
) -> object:
    return _normalize(value, source=source)


def _normalize(value: object, *, source: str) -> object:
    if isinstance(value, Mapping):
        keys = sort_once(
            (str(key) for key in value),
            source=f"{source}.mapping_keys",
        )
        normalized_values = {str(key): item for key, item in value.items()}
        return {
            key: _normalize(normalized_values[key], source=f"{source}.{key}")
            for key in keys
        }
    if isinstance(value, (tuple, list)):
        return [_normalize(item, source=f"{source}.item") for item in value]
    if isinstance(value, (set, frozenset)):
        normalized_items = [
            _normalize(item, source=f"{source}.set_item") for item in value
        ]
        return sort_once(
            normalized_items,
            source=f"{source}.set_items",
            key=lambda item: (type(item).__name__, stable_compact_text(item)),
        )
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    raise TypeError(
        "stable_json_value does not support value type "
        f"{type(value).__name__} at {source}"
    )
