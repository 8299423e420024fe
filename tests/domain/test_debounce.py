"""Duplicate-scan suppression driven by DeterministicClock."""

import pytest

from inventory_kernel.domain.clock import DeterministicClock
from inventory_kernel.domain.debounce import ScanDebouncer


@pytest.fixture
def clock():
    return DeterministicClock()


@pytest.fixture
def debouncer(clock):
    return ScanDebouncer(clock, cooldown_seconds=2.0)


class TestScanDebouncer:
    def test_repeat_inside_window_ignored(self, debouncer, clock):
        assert debouncer.should_accept("CAM-001")
        clock.advance(1.5)
        assert not debouncer.should_accept("CAM-001")

    def test_repeat_after_window_accepted(self, debouncer, clock):
        assert debouncer.should_accept("CAM-001")
        clock.advance(2.0)
        assert debouncer.should_accept("CAM-001")

    def test_ignored_scans_do_not_extend_window(self, debouncer, clock):
        debouncer.should_accept("CAM-001")
        clock.advance(1.0)
        assert not debouncer.should_accept("CAM-001")
        clock.advance(1.0)
        assert debouncer.should_accept("CAM-001")

    def test_different_barcodes_are_independent(self, debouncer):
        assert debouncer.should_accept("CAM-001")
        assert debouncer.should_accept("PRJ-001")

    def test_scopes_are_independent(self, debouncer):
        assert debouncer.should_accept("CAM-001", scope="session-a")
        assert debouncer.should_accept("CAM-001", scope="session-b")
        assert not debouncer.should_accept("CAM-001", scope="session-a")

    def test_forget_and_reset(self, debouncer):
        debouncer.should_accept("CAM-001")
        debouncer.forget("CAM-001")
        assert debouncer.should_accept("CAM-001")
        debouncer.reset()
        assert debouncer.should_accept("CAM-001")

    def test_zero_cooldown_accepts_everything(self, clock):
        debouncer = ScanDebouncer(clock, cooldown_seconds=0)
        assert debouncer.should_accept("CAM-001")
        assert debouncer.should_accept("CAM-001")

    def test_closed_windows_are_dropped(self, debouncer, clock):
        for n in range(50):
            debouncer.should_accept(f"SKU-{n}", scope="intake")
        assert len(debouncer) == 50
        clock.advance(2.0)
        assert debouncer.should_accept("CAM-001", scope="intake")
        assert len(debouncer) == 1

    def test_open_windows_survive_pruning(self, debouncer, clock):
        debouncer.should_accept("CAM-001")
        clock.advance(1.0)
        debouncer.should_accept("PRJ-001")
        clock.advance(1.5)
        assert debouncer.should_accept("CBL-001")
        assert len(debouncer) == 2
        assert not debouncer.should_accept("PRJ-001")

    def test_negative_cooldown_rejected(self, clock):
        with pytest.raises(ValueError):
            ScanDebouncer(clock, cooldown_seconds=-1)


class TestDeterministicClock:
    def test_advance_moves_wall_and_monotonic_time(self, clock):
        start = clock.now()
        clock.advance(5)
        assert (clock.now() - start).total_seconds() == 5
        assert clock.monotonic() == 5

    def test_cannot_move_backwards(self, clock):
        with pytest.raises(ValueError):
            clock.advance(-1)
