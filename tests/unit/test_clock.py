"""Tests for injected clocks (ledger_kernel/domain/clock.py)."""

from datetime import UTC, date, datetime, timedelta

import pytest

from ledger_kernel.domain.clock import DeterministicClock, SequentialClock, SystemClock


class TestDeterministicClock:
    def test_fixed_until_advanced(self):
        t = datetime(2024, 5, 1, 8, 0, tzinfo=UTC)
        clock = DeterministicClock(t)
        assert clock.now() == t
        assert clock.now() == t

        clock.advance(60)
        assert clock.now() == t + timedelta(minutes=1)

        clock.advance_days(2)
        assert clock.today() == date(2024, 5, 3)

    def test_set_time_resets_advance(self):
        clock = DeterministicClock()
        clock.advance(10)
        t = datetime(2030, 1, 1, tzinfo=UTC)
        clock.set_time(t)
        assert clock.now() == t


class TestSequentialClock:
    def test_repeats_last(self):
        t1 = datetime(2024, 1, 1, tzinfo=UTC)
        t2 = datetime(2024, 1, 2, tzinfo=UTC)
        clock = SequentialClock([t1, t2])
        assert [clock.now(), clock.now(), clock.now()] == [t1, t2, t2]

    def test_requires_times(self):
        with pytest.raises(ValueError):
            SequentialClock([])


def test_system_clock_is_aware():
    assert SystemClock().now().tzinfo is not None
