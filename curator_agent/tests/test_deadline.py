import pytest

from curator_agent.errors import SourceTimeout
from curator_agent.utils.deadline import Deadline
from curator_agent.utils.ratelimit import RateGate, gate_for


def _clock(start=0.0):
    now = [start]
    return now, (lambda: now[0])


def test_deadline_counts_down_and_expires():
    now, clock = _clock()
    dl = Deadline(10, source="met", clock=clock)
    now[0] = 4
    assert dl.remaining() == pytest.approx(6)
    assert dl.timeout_for(15) == pytest.approx(6)
    assert dl.timeout_for(2) == pytest.approx(2)
    now[0] = 11
    assert dl.expired()
    with pytest.raises(SourceTimeout) as exc:
        dl.check()
    assert exc.value.source == "met"


def test_cancel_spends_the_budget():
    dl = Deadline(30, source="va")
    dl.cancel()
    assert dl.cancelled and dl.remaining() == 0.0
    with pytest.raises(SourceTimeout):
        dl.sleep(5)


def test_gate_refuses_slot_past_the_deadline():
    gate = RateGate("slow", 5.0)
    dl = Deadline(1.0, source="slow")
    gate.wait(dl)  # first slot is immediate
    with pytest.raises(SourceTimeout):
        gate.wait(dl)


def test_gate_registry_is_process_wide():
    assert gate_for("met") is gate_for("met")
    assert gate_for("met") is not gate_for("va")


def test_abandoned_slot_is_handed_back():
    """
    Giving up on a slot must not push back later requests to the same upstream.
    """
    gate = RateGate("slow", 5.0)
    gate.wait(Deadline(10.0, source="slow"))
    next_free = gate._next_slot

    with pytest.raises(SourceTimeout):
        gate.wait(Deadline(1.0, source="slow"))
    assert gate._next_slot == next_free

    cancelled = Deadline(30.0, source="slow")
    cancelled.cancel()
    with pytest.raises(SourceTimeout):
        gate.wait(cancelled)
    assert gate._next_slot == next_free
