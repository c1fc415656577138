from __future__ import annotations

from dataclasses import dataclass

from sealedgen.diagnostics import Diagnostic, DiagnosticKind
from sealedgen.invariants import never
from sealedgen.order_contract import sort_once
from sealedgen.synthesis.index import HierarchyIndex
from sealedgen.synthesis.model import (
    BaseTypeDecl,
    Closure,
    HierarchySnapshot,
    RoundReport,
    VariantDecl,
)
from sealedgen.timeout_context import check_deadline


@dataclass(frozen=True)
class ResolutionOutcome:
    closed: tuple[str, ...]
    unresolved: tuple[Diagnostic, ...]
    orphans: tuple[VariantDecl, ...]
    rounds: int


class ResolutionDriver:
    """Merges discovery rounds into the index and decides closure.

    A hierarchy closes after a round that registered nothing new for it,
    while the host reports neither deferred candidates for it nor a pending
    discovery frontier. The final round closes every hierarchy without
    deferred candidates; the rest are unresolved.
    """

    def __init__(self, index: HierarchyIndex | None = None) -> None:
        self.index = index if index is not None else HierarchyIndex()
        self._states: dict[str, Closure] = {}
        self._closed_order: list[str] = []
        self._deferred: dict[str, int] = {}
        self._rounds = 0
        self._finished = False

    @property
    def rounds(self) -> int:
        return self._rounds

    @property
    def finished(self) -> bool:
        return self._finished

    def state(self, identity: str) -> Closure | None:
        return self._states.get(identity)

    def complete_round(self, report: RoundReport) -> tuple[str, ...]:
        """Register one round and return the identities it closed."""
        if self._finished:
            never("round reported after the final round", rounds=self._rounds)
        check_deadline(site="ResolutionDriver.complete_round")
        self._rounds += 1
        touched: set[str] = set()
        for decl in report.declarations:
            check_deadline()
            target = _hierarchy_of(decl)
            if not self.index.register(decl):
                continue
            if self._states.get(target) is Closure.CLOSED:
                never(
                    "declaration registered after hierarchy closed",
                    hierarchy=target,
                    declaration=decl.identity,
                )
            touched.add(target)
        self._deferred = {
            identity: int(count)
            for identity, count in report.deferred.items()
            if int(count) > 0
        }
        snapshot = self.index.snapshot()
        closed_now: list[str] = []
        for identity in sort_once(snapshot, source="ResolutionDriver.complete_round.snapshot"):
            check_deadline()
            if snapshot[identity].base is None:
                continue
            state = self._states.setdefault(identity, Closure.PENDING)
            if state is Closure.CLOSED:
                continue
            if identity in self._deferred:
                continue
            if report.final or (identity not in touched and report.frontier == 0):
                self._states[identity] = Closure.CLOSED
                self._closed_order.append(identity)
                closed_now.append(identity)
        if report.final:
            self._finished = True
        return tuple(closed_now)

    def hierarchy(self, identity: str) -> HierarchySnapshot:
        snapshot = self.index.snapshot()
        if identity not in snapshot:
            never("unknown hierarchy", hierarchy=identity)
        return snapshot[identity]

    def finish(self) -> ResolutionOutcome:
        if not self._finished:
            never("finish() before the final round", rounds=self._rounds)
        snapshot = self.index.snapshot()
        unresolved: list[Diagnostic] = []
        orphans: list[VariantDecl] = []
        for identity in sort_once(snapshot, source="ResolutionDriver.finish.snapshot"):
            check_deadline()
            entry = snapshot[identity]
            if entry.base is None:
                orphans.extend(entry.variants)
                continue
            if self._states.get(identity) is Closure.CLOSED:
                continue
            pending = self._deferred.get(identity, 0)
            unresolved.append(
                Diagnostic.of(
                    DiagnosticKind.UNRESOLVED_HIERARCHY,
                    entry.base.location,
                    hierarchy=identity,
                    subject=identity,
                    detail=f"{pending} deferred subtype reference(s)",
                )
            )
        return ResolutionOutcome(
            closed=tuple(self._closed_order),
            unresolved=tuple(unresolved),
            orphans=tuple(orphans),
            rounds=self._rounds,
        )


def _hierarchy_of(decl: BaseTypeDecl | VariantDecl) -> str:
    if isinstance(decl, BaseTypeDecl):
        return decl.identity
    return decl.base


def resolve_rounds(
    reports: list[RoundReport] | tuple[RoundReport, ...],
    *,
    index: HierarchyIndex | None = None,
) -> tuple[ResolutionDriver, ResolutionOutcome]:
    """Run a fixed sequence of rounds; the last one is treated as final."""
    driver = ResolutionDriver(index)
    for position, report in enumerate(reports):
        if position == len(reports) - 1 and not report.final:
            report = RoundReport(
                declarations=report.declarations,
                deferred=report.deferred,
                frontier=0,
                final=True,
            )
        driver.complete_round(report)
        if driver.finished:
            break
    if not driver.finished:
        driver.complete_round(RoundReport(final=True))
    return driver, driver.finish()
