from __future__ import annotations

from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from typing import TypeVar
import time

from sealedgen.deadline_clock import (
    DeadlineClock,
    DeadlineClockExhausted,
)
from sealedgen.invariants import never

_LoopItem = TypeVar("_LoopItem")


@dataclass(frozen=True)
class TimeoutContext:
    reason: str
    site: str = ""
    mark: int = 0

    def as_payload(self) -> dict[str, object]:
        payload: dict[str, object] = {"reason": self.reason, "mark": self.mark}
        if self.site:
            payload["site"] = self.site
        return payload


class TimeoutExceeded(TimeoutError):
    def __init__(self, context: TimeoutContext) -> None:
        super().__init__("Generation timed out.")
        self.context = context


@dataclass(frozen=True)
class Deadline:
    deadline_ns: int

    @classmethod
    def from_timeout_ticks(cls, ticks: int, tick_ns: int) -> "Deadline":
        ticks_value = int(ticks)
        tick_ns_value = int(tick_ns)
        if ticks_value < 0:
            never("invalid timeout ticks", ticks=ticks)
        if tick_ns_value <= 0:
            never("invalid timeout tick_ns", tick_ns=tick_ns)
        return cls(deadline_ns=time.monotonic_ns() + ticks_value * tick_ns_value)

    @classmethod
    def from_timeout_ms(cls, milliseconds: int) -> "Deadline":
        return cls.from_timeout_ticks(milliseconds, 1_000_000)

    def expired(self) -> bool:
        return time.monotonic_ns() >= self.deadline_ns


_deadline_var: ContextVar[Deadline | None] = ContextVar(
    "sealedgen_deadline", default=None
)
_deadline_clock_var: ContextVar[DeadlineClock | None] = ContextVar(
    "sealedgen_deadline_clock", default=None
)


def get_deadline() -> Deadline:
    deadline = _deadline_var.get()
    if deadline is None:
        never("deadline carrier missing")
    return deadline


def get_deadline_clock() -> DeadlineClock:
    clock = _deadline_clock_var.get()
    if clock is None:
        never("deadline clock missing")
    return clock


@contextmanager
def deadline_scope(deadline: Deadline):
    if deadline is None:
        never("deadline carrier missing")
    token = _deadline_var.set(deadline)
    try:
        yield
    finally:
        _deadline_var.reset(token)


@contextmanager
def deadline_clock_scope(clock: DeadlineClock):
    if clock is None:
        never("deadline clock missing")
    token = _deadline_clock_var.set(clock)
    try:
        yield
    finally:
        _deadline_clock_var.reset(token)


def consume_deadline_ticks(ticks: int = 1, *, site: str = "") -> None:
    clock = get_deadline_clock()
    try:
        clock.consume(ticks)
    except DeadlineClockExhausted as exc:
        raise TimeoutExceeded(
            TimeoutContext(reason=str(exc), site=site, mark=clock.get_mark())
        ) from exc


def check_deadline(deadline: Deadline | None = None, *, site: str = "") -> None:
    if deadline is None:
        deadline = get_deadline()
    consume_deadline_ticks(site=site)
    if deadline.expired():
        raise TimeoutExceeded(
            TimeoutContext(
                reason="deadline expired",
                site=site,
                mark=get_deadline_clock().get_mark(),
            )
        )


def deadline_loop_iter(values: Iterable[_LoopItem]) -> Iterator[_LoopItem]:
    for value in values:
        check_deadline()
        yield value
