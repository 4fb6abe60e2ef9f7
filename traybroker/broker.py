"""
Tray Broker - Main Controller

Wires the components together:
- Watcher: registry of items, exported on the bus
- Host: second bus identity registered with the watcher
- Discovery loop: one peer session per registered item
- Aggregator: full JSON frame on every change

Data flow:
```
  item --Register--> Registry --registered--> DiscoveryLoop --spawn--> PeerSession
                        ^                          |                    |      |
                        +------- unregister -------+<--- departures ----+      |
                                                                               v
                                          stdout <-- Aggregator <-- updates ---+
```
"""

import asyncio
import logging
import signal
from typing import Optional

from dbus_fast.aio import MessageBus

from .bus import (
    DBusPeerSubscription, HOST_PATH, WATCHER_INTERFACE, WATCHER_PATH,
    call, claim_name, connect,
)
from .config import Config
from .host import Aggregator, DiscoveryLoop, FrameSink, StatusNotifierHost, session_factory, stdout_sink
from .icons import IconCache
from .watcher import Registry, StatusNotifierWatcher

logger = logging.getLogger(__name__)


class TrayBroker:
    """
    Watcher and host in one process.

    Usage:
        broker = TrayBroker(config)
        await broker.start()
        ...
        await broker.stop()
    """

    def __init__(self, config: Config = None, sink: FrameSink = stdout_sink):
        self.config = config or Config()

        self.registry = Registry()
        self.watcher = StatusNotifierWatcher(self.registry)
        self.host = StatusNotifierHost()
        self.icon_cache = IconCache(self.config.icon_dir)

        # Channels
        self.updates: asyncio.Queue = asyncio.Queue()
        self.departures: asyncio.Queue = asyncio.Queue()

        self.aggregator = Aggregator(self.updates, sink)
        self.discovery = DiscoveryLoop(
            self.registry,
            session_factory(self._subscribe, self.icon_cache, self.updates, self.departures),
            self.departures,
        )

        self._watcher_bus: Optional[MessageBus] = None
        self._host_bus: Optional[MessageBus] = None
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    async def _subscribe(self, service: str) -> DBusPeerSubscription:
        return await DBusPeerSubscription.open(service, self.config.bus_address)

    async def start(self):
        """
        Start the broker.

        1. Export the watcher and claim its name
        2. Start the aggregator and the discovery loop
        3. Publish the host identity and register it with the watcher
        """
        if self._running:
            return

        logger.info("Starting tray broker...")

        try:
            self._watcher_bus = await connect(self.config.bus_address)
            self._watcher_bus.export(WATCHER_PATH, self.watcher)
            await claim_name(self._watcher_bus, self.config.watcher_name)

            self.aggregator.start()
            self.discovery.start()
            self._running = True

            self._host_bus = await connect(self.config.bus_address)
            self._host_bus.export(HOST_PATH, self.host)
            await claim_name(self._host_bus, self.config.host_name)

            await call(self._host_bus, self.config.watcher_name, WATCHER_PATH,
                       WATCHER_INTERFACE, 'RegisterStatusNotifierHost', 's',
                       [self.config.host_name])
        except Exception:
            await self.stop()
            raise

        logger.info("Tray broker started")
        logger.info(f"  Watcher: {self.config.watcher_name}")
        logger.info(f"  Host: {self.config.host_name}")
        logger.info(f"  Icon dir: {self.icon_cache.directory}")

    async def stop(self):
        """Stop the broker and close both bus connections."""
        logger.info("Stopping tray broker...")

        self._running = False

        await self.discovery.stop()
        await self.aggregator.stop()

        for bus in (self._host_bus, self._watcher_bus):
            if bus is not None and bus.connected:
                bus.disconnect()
        self._host_bus = None
        self._watcher_bus = None

        logger.info("Tray broker stopped")


async def run_broker(config: Config = None, sink: FrameSink = stdout_sink):
    """
    Run a broker until SIGINT or SIGTERM.
    """
    broker = TrayBroker(config, sink)
    stop_event = asyncio.Event()

    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(signum, stop_event.set)

    try:
        await broker.start()
        await stop_event.wait()
        logger.info("Shutdown requested")
    finally:
        for signum in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(signum)
        await broker.stop()
