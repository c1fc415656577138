from __future__ import annotations

from typing import Any, Callable, Iterable, TypeVar

from sealedgen.invariants import never


T = TypeVar("T")


def sort_once(
    values: Iterable[T],
    *,
    source: str,
    key: Callable[[T], Any] | None = None,
    reverse: bool = False,
) -> list[T]:
    """Sort exactly once at a named site.

    Every ordering that reaches an artifact, a report or a diagnostic goes
    through here, so `source` names the site when values turn out not to be
    mutually comparable.
    """
    items = list(values)
    try:
        return sorted(items, key=key, reverse=reverse)
    except TypeError as exc:
        never("unorderable values", source=source, error=str(exc))
