from __future__ import annotations

import contextvars

import pytest

from sealedgen.deadline_clock import GasMeter
from sealedgen.exceptions import NeverThrown
from sealedgen.timeout_context import (
    Deadline,
    TimeoutExceeded,
    check_deadline,
    deadline_clock_scope,
    deadline_loop_iter,
    deadline_scope,
)


def test_gas_meter_exhaustion_raises_timeout() -> None:
    meter = GasMeter(limit=3)
    with deadline_clock_scope(meter):
        check_deadline()
        check_deadline()
        with pytest.raises(TimeoutExceeded) as excinfo:
            check_deadline(site="test.gas")
    assert excinfo.value.context.site == "test.gas"
    assert excinfo.value.context.reason == "Gas exhausted: 3/3"
    assert meter.get_mark() == 3


def test_expired_deadline_raises_timeout() -> None:
    with deadline_scope(Deadline(deadline_ns=0)):
        with pytest.raises(TimeoutExceeded) as excinfo:
            check_deadline()
    assert excinfo.value.context.reason == "deadline expired"


def test_missing_scopes_are_contract_violations() -> None:
    with pytest.raises(NeverThrown):
        contextvars.Context().run(check_deadline)
    with pytest.raises(NeverThrown):
        with deadline_scope(None):
            pass
    with pytest.raises(NeverThrown):
        GasMeter(limit=0)


def test_deadline_loop_iter_consumes_ticks() -> None:
    meter = GasMeter(limit=100)
    with deadline_clock_scope(meter):
        assert list(deadline_loop_iter("abc")) == ["a", "b", "c"]
    assert meter.current == 3
