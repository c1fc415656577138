"""JSON-like value types used by the adapter runtime and report artifacts.

Generated adapters exchange decoded JSON values, never raw text, so the value
space is spelled out here instead of falling back to `object`.
"""

from __future__ import annotations

from typing import TypeAlias


JSONScalar: TypeAlias = str | int | float | bool | None
JSONValue: TypeAlias = JSONScalar | list["JSONValue"] | dict[str, "JSONValue"]
JSONObject: TypeAlias = dict[str, JSONValue]
JSONArray: TypeAlias = list[JSONValue]
