"""Exception markers shared across sealedgen."""

from __future__ import annotations

from typing import Mapping


class NeverRaise(RuntimeError):
    """Sentinel exception for code paths that must be unreachable.

    Raising this exception means an internal contract between sealedgen
    components (or between sealedgen and its host) was broken. It is never
    a user-facing diagnostic.
    """

    def __init__(self, message: str, *, env: Mapping[str, object] | None = None):
        super().__init__(message)
        self.reason = message
        self.env = dict(env or {})

    @property
    def payload(self) -> dict[str, object]:
        return {
            "reason": self.reason,
            "env": {key: repr(value) for key, value in sorted(self.env.items())},
        }


class NeverThrown(NeverRaise):
    """Alias for NeverRaise used by the explicit never() marker."""


class SourceParseError(ValueError):
    """A source file could not be read or parsed by the ingest layer."""

    def __init__(
        self, path: str, detail: str, *, stage: str = "parse", line: int = 1, col: int = 1
    ) -> None:
        super().__init__(f"{path}:{line}:{col}: {detail}")
        self.path = path
        self.stage = stage
        self.line = line
        self.col = col
        self.detail = detail
