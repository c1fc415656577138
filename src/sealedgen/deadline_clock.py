from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from sealedgen.invariants import never


class DeadlineClock(Protocol):
    def consume(self, ticks: int = 1) -> None:
        """Consume logical progress units."""

    def get_mark(self) -> int:
        """Return the current monotonic mark."""


class DeadlineClockExhausted(RuntimeError):
    """Raised when a logical clock runs out of ticks."""


@dataclass
class GasMeter:
    """Logical clock counting `check_deadline()` calls against a fixed limit.

    The CLI installs one per run so a host that never signals a final
    round still stops.
    """

    limit: int
    current: int = 0

    def __post_init__(self) -> None:
        if int(self.limit) <= 0:
            never("invalid gas meter limit", limit=self.limit)
        self.limit = int(self.limit)

    def consume(self, ticks: int = 1) -> None:
        if int(ticks) <= 0:
            never("invalid gas meter ticks", ticks=ticks)
        self.current += int(ticks)
        if self.current >= self.limit:
            raise DeadlineClockExhausted(
                f"Gas exhausted: {self.current}/{self.limit}"
            )

    def get_mark(self) -> int:
        return self.current
