"""
Tests for the heartbeat manager.
"""
import asyncio

import pytest

from conftest import UNREACHABLE
from core.api_client import ApiResponse
from managers.heartbeat_manager import HEARTBEAT_TIMER, HeartbeatManager


@pytest.fixture
def heartbeat(stub_client, fake_scheduler):
    return HeartbeatManager(stub_client, fake_scheduler, interval=60)


@pytest.mark.unit
class TestHeartbeatManager:
    """Tests for HeartbeatManager"""

    def test_start_arms_interval(self, heartbeat, fake_scheduler):
        heartbeat.start()

        assert fake_scheduler.delay_of(HEARTBEAT_TIMER) == 60

    def test_timer_sends_and_rearms(self, heartbeat, stub_client, fake_scheduler):
        heartbeat.start()

        assert fake_scheduler.run(fake_scheduler.fire(HEARTBEAT_TIMER)) is True

        assert stub_client.heartbeat_calls == 1
        assert heartbeat.sent == 1
        assert heartbeat.last_sent_at is not None
        assert fake_scheduler.is_scheduled(HEARTBEAT_TIMER)

    def test_failures_are_swallowed(self, heartbeat, stub_client):
        """Unreachable or rejected heartbeats never raise."""
        stub_client.queue_heartbeat(UNREACHABLE, ApiResponse(status=500), RuntimeError("boom"))

        results = [asyncio.run(heartbeat.beat()) for _ in range(3)]

        assert results == [False, False, False]
        assert heartbeat.failed == 3
        assert heartbeat.get_status()["last_sent_at"] is None

    def test_heartbeat_independent_of_display_errors(self, heartbeat, stub_client):
        stub_client.queue_display(ApiResponse(status=404))

        assert asyncio.run(heartbeat.beat()) is True

    def test_stop(self, heartbeat, fake_scheduler):
        heartbeat.start()
        heartbeat.stop()

        assert fake_scheduler.pending() == []
