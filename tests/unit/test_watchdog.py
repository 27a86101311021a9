"""
Tests for OrderTracker and StaleOrderWatchdog.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from cex_account_data.sync.watchdog import OrderTracker, StaleOrderWatchdog, TrackState


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_tracker(clock) -> OrderTracker:
    return OrderTracker(clock=clock)


# =============================================================================
# Tracker Tests
# =============================================================================


class TestOrderTracker:
    """Test order tracking."""

    def test_track_and_confirm(self, fake_tracker):
        """Test a tracked order leaves the tracker once confirmed."""
        fake_tracker.track(1)
        assert 1 in fake_tracker
        assert fake_tracker.confirm(1) is True
        assert 1 not in fake_tracker
        assert fake_tracker.confirm(1) is False

    def test_oldest_first(self, fake_tracker, clock):
        """Test oldest returns the earliest submitted order."""
        fake_tracker.track(10)
        clock.advance(1)
        fake_tracker.track(5)

        assert fake_tracker.oldest().order_id == 10
        fake_tracker.confirm(10)
        assert fake_tracker.oldest().order_id == 5

    def test_retrack_keeps_submission_time(self, fake_tracker, clock):
        """Test tracking the same order again does not reset its age."""
        first = fake_tracker.track(1)
        clock.advance(5)
        again = fake_tracker.track(1)

        assert again.submitted_at == first.submitted_at
        assert len(fake_tracker) == 1

    def test_empty(self, fake_tracker):
        """Test an empty tracker has no oldest entry."""
        assert fake_tracker.oldest() is None
        fake_tracker.track(1)
        fake_tracker.clear()
        assert fake_tracker.oldest() is None


# =============================================================================
# Watchdog Tests
# =============================================================================


class TestStaleOrderWatchdog:
    """Test staleness detection and escalation."""

    @pytest.mark.asyncio
    async def test_fresh_order_not_escalated(self, fake_tracker, clock):
        """Test an order younger than the threshold is only watched."""
        on_stale = MagicMock()
        watchdog = StaleOrderWatchdog(fake_tracker, threshold=10, on_stale=on_stale)

        entry = fake_tracker.track(1)
        clock.advance(5)

        assert await watchdog.check() is None
        assert entry.state == TrackState.WATCHED
        on_stale.assert_not_called()

    @pytest.mark.asyncio
    async def test_escalates_once_per_episode(self, fake_tracker, clock):
        """Test a stale order triggers exactly one escalation."""
        on_stale = AsyncMock()
        watchdog = StaleOrderWatchdog(fake_tracker, threshold=10, on_stale=on_stale)

        fake_tracker.track(1)
        clock.advance(11)

        escalated = await watchdog.check()
        assert escalated.order_id == 1
        assert escalated.state == TrackState.ESCALATED

        for _ in range(5):
            clock.advance(5)
            assert await watchdog.check() is None

        on_stale.assert_awaited_once()
        assert watchdog.escalations == 1
        assert watchdog.in_episode is True

    @pytest.mark.asyncio
    async def test_reset_starts_new_episode(self, fake_tracker, clock):
        """Test after a reset a new stale order escalates again."""
        on_stale = MagicMock()
        watchdog = StaleOrderWatchdog(fake_tracker, threshold=10, on_stale=on_stale)

        fake_tracker.track(1)
        clock.advance(11)
        await watchdog.check()

        # Reconnect: tracker cleared and episode reset
        fake_tracker.clear()
        watchdog.reset()
        assert watchdog.in_episode is False

        fake_tracker.track(2)
        clock.advance(11)
        await watchdog.check()

        assert on_stale.call_count == 2
        assert watchdog.escalations == 2

    @pytest.mark.asyncio
    async def test_confirmation_ends_episode(self, fake_tracker, clock):
        """Test confirming the escalated order ends the episode."""
        on_stale = MagicMock()
        watchdog = StaleOrderWatchdog(fake_tracker, threshold=10, on_stale=on_stale)

        fake_tracker.track(1)
        clock.advance(11)
        await watchdog.check()

        fake_tracker.confirm(1)
        assert await watchdog.check() is None
        assert watchdog.in_episode is False

    @pytest.mark.asyncio
    async def test_periodic_loop(self, tracker):
        """Test the background loop escalates a stale order once."""
        stale = asyncio.Event()
        calls = []

        def on_stale(entry):
            calls.append(entry.order_id)
            stale.set()

        watchdog = StaleOrderWatchdog(tracker, threshold=0.02, on_stale=on_stale, interval=0.01)
        tracker.track(7)
        watchdog.start()
        assert watchdog.is_running is True

        await asyncio.wait_for(stale.wait(), timeout=1.0)
        await asyncio.sleep(0.05)
        await watchdog.stop()

        assert calls == [7]
        assert watchdog.is_running is False

    @pytest.mark.asyncio
    async def test_loop_survives_callback_error(self, tracker):
        """Test a failing callback does not stop the loop."""
        on_stale = MagicMock(side_effect=RuntimeError("boom"))
        watchdog = StaleOrderWatchdog(tracker, threshold=0.01, on_stale=on_stale, interval=0.01)
        tracker.track(1)

        watchdog.start()
        await asyncio.sleep(0.1)
        assert watchdog.is_running is True
        await watchdog.stop()

        on_stale.assert_called_once()
