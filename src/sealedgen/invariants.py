"""Invariant markers for sealedgen."""

from __future__ import annotations

from typing import NoReturn

from sealedgen.exceptions import NeverThrown


def never(reason: str = "", **env: object) -> NoReturn:
    """Mark a code path as intentionally unreachable.

    The env payload is attached to the raised exception for debugging; it is
    never interpreted.
    """
    raise NeverThrown(reason or "never() marker reached", env=env)
