from __future__ import annotations

import asyncio
from typing import Callable

import pytest

from traybroker.exceptions import BusError


def argb_pixels(count: int, a: int, r: int, g: int, b: int) -> bytes:
    return bytes([a, r, g, b]) * count


class FakeSubscription:
    """In-memory PeerSubscription driven by the test."""

    def __init__(self, service: str, title: str = "App", pixmaps=None,
                 fail_title: Exception | None = None, gone: bool = False,
                 title_gate: asyncio.Event | None = None):
        self.service = service
        self.title = title
        self.pixmaps = pixmaps if pixmaps is not None else [(1, 1, argb_pixels(1, 255, 1, 2, 3))]
        self.fail_title = fail_title
        self.title_gate = title_gate
        self.owner_events: asyncio.Queue = asyncio.Queue()
        self.signals: asyncio.Queue = asyncio.Queue()
        self.drained = 0
        self.closed = False
        if gone:
            self.owner_events.put_nowait("")

    def depart(self):
        self.owner_events.put_nowait("")

    async def fetch_title(self) -> str:
        if self.title_gate is not None:
            await self.title_gate.wait()
        if self.fail_title is not None:
            raise self.fail_title
        return self.title

    async def fetch_icon_pixmap(self):
        return self.pixmaps

    async def watch_owner_change(self):
        while True:
            owner = await self.owner_events.get()
            if isinstance(owner, Exception):
                raise owner
            yield owner

    async def watch_all_signals(self):
        while True:
            message = await self.signals.get()
            if isinstance(message, Exception):
                raise message
            self.drained += 1
            yield message

    async def close(self):
        self.closed = True


class FakeBus:
    """Hands out FakeSubscriptions, one per subscribe() call."""

    def __init__(self):
        self.configure: dict[str, dict] = {}
        self.opened: dict[str, list[FakeSubscription]] = {}
        self.refuse: set[str] = set()

    def latest(self, service: str) -> FakeSubscription:
        return self.opened[service][-1]

    async def subscribe(self, service: str) -> FakeSubscription:
        if service in self.refuse:
            raise BusError(f"{service} is not reachable")
        subscription = FakeSubscription(service, **self.configure.get(service, {}))
        self.opened.setdefault(service, []).append(subscription)
        return subscription


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0):
    async def poll():
        while not predicate():
            await asyncio.sleep(0.01)

    await asyncio.wait_for(poll(), timeout)


@pytest.fixture
def fake_bus() -> FakeBus:
    return FakeBus()


@pytest.fixture
def frames() -> list:
    return []
