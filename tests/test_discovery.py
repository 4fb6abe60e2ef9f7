from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest
from PIL import Image

from traybroker.host import Aggregator, DiscoveryLoop, session_factory
from traybroker.icons import IconCache
from traybroker.watcher import Registry, RegistryEventType

from .conftest import FakeBus, argb_pixels, wait_until


class Harness:
    def __init__(self, fake_bus: FakeBus, icon_dir: Path):
        self.registry = Registry()
        self.frames: list[str] = []
        self.unregistered: list[str] = []
        self.registry.on_change(self._record)

        updates: asyncio.Queue = asyncio.Queue()
        departures: asyncio.Queue = asyncio.Queue()
        self.aggregator = Aggregator(updates, sink=self.frames.append)
        self.discovery = DiscoveryLoop(
            self.registry,
            session_factory(fake_bus.subscribe, IconCache(icon_dir), updates, departures),
            departures,
        )

    def _record(self, event) -> None:
        if event.type == RegistryEventType.ITEM_UNREGISTERED:
            self.unregistered.append(event.service)

    def last_frame(self) -> list:
        return json.loads(self.frames[-1]) if self.frames else []

    def start(self) -> None:
        self.aggregator.start()
        self.discovery.start()

    async def stop(self) -> None:
        await self.discovery.stop()
        await self.aggregator.stop()


@pytest.mark.asyncio
async def test_item_lifecycle_end_to_end(fake_bus: FakeBus, tmp_path: Path) -> None:
    fake_bus.configure["org.example.App1"] = {
        "title": "App1",
        "pixmaps": [(2, 2, argb_pixels(4, 255, 10, 20, 30))],
    }
    harness = Harness(fake_bus, tmp_path)
    harness.start()

    harness.registry.register("org.example.App1")
    await wait_until(lambda: len(harness.frames) == 1)

    [item] = harness.last_frame()
    assert item["title"] == "App1"
    assert (item["icon"]["width"], item["icon"]["height"]) == (2, 2)
    icon_path = Path(item["icon"]["path"])
    assert icon_path.parent == tmp_path
    assert icon_path.suffix == ".png"
    with Image.open(icon_path) as image:
        assert list(image.getdata()) == [(10, 20, 30, 255)] * 4

    fake_bus.latest("org.example.App1").depart()
    await wait_until(lambda: len(harness.frames) == 2 and harness.unregistered)

    assert harness.frames[-1] == "[]"
    assert harness.unregistered == ["org.example.App1"]
    assert harness.registry.snapshot() == []

    await harness.stop()


@pytest.mark.asyncio
async def test_last_frame_holds_every_item(fake_bus: FakeBus, tmp_path: Path) -> None:
    services = [f"org.example.App{i}" for i in range(4)]
    for i, service in enumerate(services):
        fake_bus.configure[service] = {
            "title": service,
            "pixmaps": [(1, 1, argb_pixels(1, 255, i, i, i))],
        }
    harness = Harness(fake_bus, tmp_path)
    harness.start()

    for service in reversed(services):
        harness.registry.register(service)
    await wait_until(lambda: len(harness.frames) == 4)

    assert sorted(i["title"] for i in harness.last_frame()) == services
    assert harness.discovery.session_count == 4

    await harness.stop()


@pytest.mark.asyncio
async def test_failing_peer_does_not_disturb_others(fake_bus: FakeBus, tmp_path: Path) -> None:
    fake_bus.configure["org.example.Good"] = {"title": "Good"}
    fake_bus.configure["org.example.Bad"] = {"pixmaps": [(4, 4, b"\x00")]}
    fake_bus.refuse.add("org.example.Gone")
    harness = Harness(fake_bus, tmp_path)
    harness.start()

    harness.registry.register("org.example.Bad")
    harness.registry.register("org.example.Gone")
    harness.registry.register("org.example.Good")
    await wait_until(lambda: len(harness.frames) == 1)
    await wait_until(lambda: harness.discovery.session_count == 1)

    assert [i["title"] for i in harness.last_frame()] == ["Good"]
    assert harness.discovery.is_running

    await harness.stop()


@pytest.mark.asyncio
async def test_duplicate_registration_spawns_another_session(fake_bus: FakeBus, tmp_path: Path) -> None:
    harness = Harness(fake_bus, tmp_path)
    harness.start()

    harness.registry.register("org.example.App1")
    harness.registry.register("org.example.App1")
    await wait_until(lambda: len(fake_bus.opened.get("org.example.App1", [])) == 2)

    assert harness.registry.snapshot() == ["org.example.App1"]

    await harness.stop()


@pytest.mark.asyncio
async def test_stop_cancels_live_sessions(fake_bus: FakeBus, tmp_path: Path) -> None:
    harness = Harness(fake_bus, tmp_path)
    harness.start()

    harness.registry.register("org.example.App1")
    await wait_until(lambda: len(harness.frames) == 1)

    await harness.stop()

    assert harness.discovery.session_count == 0
    assert not harness.discovery.is_running
    assert fake_bus.latest("org.example.App1").closed
    assert harness.unregistered == []
