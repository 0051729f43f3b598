"""
Shared fixtures for the signage player tests.

FakeScheduler replaces the asyncio timer registry so timer-driven behavior
can be stepped deterministically; StubApiClient replaces HTTP with queued
responses.
"""
import asyncio
from collections import defaultdict, deque

import pytest

from config import PlayerSettings
from core.api_client import ApiResponse, ApiSession, ApiUnreachableError, SignageApiClient


class FakeScheduler:
    """Records timers instead of arming them; tests fire them by name"""

    def __init__(self):
        self.timers = {}
        self.arm_counts = defaultdict(int)
        self.spawned = []
        self.closed = False

    def call_later(self, name, delay, callback, *args):
        if self.closed:
            return
        self.timers[name] = (delay, callback, args)
        self.arm_counts[name] += 1

    def every(self, name, interval, callback):
        def tick():
            self.call_later(name, interval, tick)
            return callback()

        self.call_later(name, interval, tick)

    def spawn(self, coro):
        if self.closed:
            coro.close()
            return None
        self.spawned.append(coro)
        return coro

    def cancel(self, name):
        return self.timers.pop(name, None) is not None

    def is_scheduled(self, name):
        return name in self.timers

    def delay_of(self, name):
        entry = self.timers.get(name)
        return entry[0] if entry else None

    def pending(self):
        return sorted(self.timers)

    def cancel_all(self):
        self.timers.clear()

    async def shutdown(self):
        self.closed = True
        self.cancel_all()
        self.close_spawned()

    def fire(self, name):
        """Fire a pending timer; returns the callback result (maybe a coroutine)"""
        delay, callback, args = self.timers.pop(name)
        return callback(*args)

    def run(self, result):
        """Drive a coroutine returned by fire() to completion"""
        if asyncio.iscoroutine(result):
            return asyncio.run(result)
        return result

    def run_spawned(self):
        while self.spawned:
            asyncio.run(self.spawned.pop(0))

    def close_spawned(self):
        while self.spawned:
            self.spawned.pop(0).close()


class StubApiClient(SignageApiClient):
    """SignageApiClient with queued responses instead of HTTP"""

    def __init__(self, device_key="abc123", api_url="http://api.test"):
        super().__init__(ApiSession(api_url=api_url, device_key=device_key))
        self.display_responses = deque()
        self.heartbeat_responses = deque()
        self.display_calls = 0
        self.heartbeat_calls = 0
        self.closed = False
        self.gate = None  # asyncio.Event holding get_display until set

    def queue_display(self, *responses):
        self.display_responses.extend(responses)

    def queue_heartbeat(self, *responses):
        self.heartbeat_responses.extend(responses)

    async def get_display(self):
        self.display_calls += 1
        if self.gate is not None:
            await self.gate.wait()
        return self._next(self.display_responses, ApiResponse(status=200, payload=display_payload()))

    async def send_heartbeat(self):
        self.heartbeat_calls += 1
        return self._next(self.heartbeat_responses, ApiResponse(status=200))

    async def close(self):
        self.closed = True

    @staticmethod
    def _next(queue, default):
        response = queue.popleft() if queue else default
        if isinstance(response, Exception):
            raise response
        return response


UNREACHABLE = ApiUnreachableError("connection refused")


def content_payload(content_id="c1", kind="IMAGE", url="/uploads/c1.png", name="Content"):
    return {"id": content_id, "name": name, "url": url, "type": kind}


def item_payload(item_id="i1", duration=10, order=0, **content):
    return {
        "id": item_id,
        "duration": duration,
        "transition": "fade",
        "order": order,
        "content": content_payload(**content),
    }


def display_payload(items=None, playlist=True, name="Lobby Screen"):
    if items is None:
        items = [item_payload("i1", order=0), item_payload("i2", order=1, content_id="c2")]
    return {
        "display": {
            "id": "d1",
            "name": name,
            "orientation": "landscape",
            "width": 1920,
            "height": 1080,
            "playlist": {"id": "p1", "name": "Main", "items": items} if playlist else None,
        }
    }


def ok(payload=None):
    return ApiResponse(status=200, payload=payload if payload is not None else display_payload())


@pytest.fixture
def fake_scheduler():
    scheduler = FakeScheduler()
    yield scheduler
    scheduler.close_spawned()


@pytest.fixture
def stub_client():
    return StubApiClient()


@pytest.fixture
def settings():
    return PlayerSettings(device_key="abc123", api_url="http://api.test")
