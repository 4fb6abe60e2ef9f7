"""
Discovery Loop

Spawns one PeerSession for every item registration and feeds departures
back to the registry.

Sessions are fire-and-forget: the loop keeps no per-item state besides the
task handles it needs to cancel them on shutdown. A service registered
twice gets two sessions, matching the watcher's contract that every
registration is announced.
"""

import asyncio
import logging
from typing import Callable, Optional, Set

from ..watcher import Registry, RegistryEvent, RegistryEventType
from .session import PeerSession

logger = logging.getLogger(__name__)


class DiscoveryLoop:
    """
    Watches the registry for new items and follows each one.

    Args:
        registry: The watcher registry to subscribe to
        make_session: Builds a PeerSession for a service
        departures: Queue of services whose sessions saw them leave
    """

    def __init__(self, registry: Registry, make_session: Callable[[str], PeerSession],
                 departures: asyncio.Queue):
        self.registry = registry
        self._make_session = make_session
        self._departures = departures

        self._registered: asyncio.Queue = asyncio.Queue()
        self._sessions: Set[asyncio.Task] = set()
        self._loop_task: Optional[asyncio.Task] = None
        self._feedback_task: Optional[asyncio.Task] = None
        self._subscribed = False

    @property
    def is_running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    @property
    def session_count(self) -> int:
        return len(self._sessions)

    def start(self):
        """Subscribe to registrations and start the loop and feedback tasks."""
        if self.is_running:
            return

        if not self._subscribed:
            self.registry.on_change(self._on_registry_event)
            self._subscribed = True

        self._loop_task = asyncio.ensure_future(self._run())
        self._feedback_task = asyncio.ensure_future(self._feedback())
        logger.info("Discovery loop started")

    async def stop(self):
        """Cancel the loop, the feedback edge and every live session."""
        tasks = [t for t in (self._loop_task, self._feedback_task) if t is not None]
        tasks.extend(self._sessions)

        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

        self._sessions.clear()
        self._loop_task = None
        self._feedback_task = None
        logger.info("Discovery loop stopped")

    def _on_registry_event(self, event: RegistryEvent):
        if event.type == RegistryEventType.ITEM_REGISTERED:
            self._registered.put_nowait(event.service)

    async def _run(self):
        while True:
            service = await self._registered.get()
            self._spawn(service)

    def _spawn(self, service: str):
        session = self._make_session(service)
        task = asyncio.ensure_future(session.run())
        self._sessions.add(task)
        task.add_done_callback(self._sessions.discard)
        logger.debug(f"Session started for {service} ({len(self._sessions)} live)")

    async def _feedback(self):
        while True:
            service = await self._departures.get()
            try:
                self.registry.unregister(service)
            except Exception as e:
                logger.error(f"Failed to unregister {service}: {e}")
