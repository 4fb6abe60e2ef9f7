"""
Peer Session

Follows one registered item from registration until it leaves the bus.

Two sub-tasks run side by side:
- snapshot: read Title and IconPixmap, cache the icon, publish the item,
  then drain the peer's other signals
- liveness: wait until the peer's bus name loses its owner

When the peer leaves, the snapshot task is cancelled before the removal is
published, so an update for a departed peer can never follow its removal.

Any failure ends only this session. The broker keeps running with one
fewer item.
"""

import asyncio
import logging
from typing import Awaitable, Callable

from ..bus.item import PeerSubscription
from ..icons import IconCache, decode_pixmap
from ..models import Icon, Item

logger = logging.getLogger(__name__)

SubscriptionFactory = Callable[[str], Awaitable[PeerSubscription]]


class PeerSession:
    """
    Session for one item.

    Args:
        service: The item's bus name as given at registration
        subscribe: Opens a PeerSubscription for a service
        icon_cache: Where decoded icons are stored
        updates: Queue of (service, Optional[Item]) for the aggregator
        departures: Queue of services to unregister
    """

    def __init__(self, service: str, subscribe: SubscriptionFactory,
                 icon_cache: IconCache, updates: asyncio.Queue,
                 departures: asyncio.Queue):
        self.service = service
        self._subscribe = subscribe
        self._icon_cache = icon_cache
        self._updates = updates
        self._departures = departures
        self._published = False

    async def run(self) -> bool:
        """
        Run the session to completion.

        A session that fails after publishing its item withdraws the item,
        since nothing follows the peer any more.

        Returns:
            True if the peer was followed until it left, False on failure
        """
        try:
            await self._run()
        except asyncio.CancelledError:
            logger.debug(f"Session cancelled: {self.service}")
            raise
        except Exception as e:
            logger.warning(f"Session for {self.service} aborted: {type(e).__name__}: {e}")
            if self._published:
                await self._updates.put((self.service, None))
            return False
        return True

    async def _run(self):
        subscription = await self._subscribe(self.service)
        try:
            await self._follow(subscription)
        finally:
            await subscription.close()

        logger.info(f"Item left the bus: {self.service}")
        await self._departures.put(self.service)
        await self._updates.put((self.service, None))

    async def _follow(self, subscription: PeerSubscription):
        snapshot = asyncio.ensure_future(self._publish_snapshot(subscription))
        liveness = asyncio.ensure_future(self._wait_for_departure(subscription))
        tasks = {snapshot, liveness}

        try:
            waiting = set(tasks)
            while not liveness.done():
                done, waiting = await asyncio.wait(waiting, return_when=asyncio.FIRST_COMPLETED)
                if snapshot in done and not liveness.done():
                    snapshot.result()
            liveness.result()
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

    async def _publish_snapshot(self, subscription: PeerSubscription):
        title = await subscription.fetch_title()
        pixmaps = await subscription.fetch_icon_pixmap()
        width, height, rgba = decode_pixmap(pixmaps)
        path = await self._icon_cache.store(width, height, rgba)

        item = Item(title=title, icon=Icon(width=width, height=height, path=path))
        logger.debug(f"Snapshot of {self.service}: {title!r} {width}x{height}")
        await self._updates.put((self.service, item))
        self._published = True

        # Change signals (NewTitle, NewIcon, ...) are read but not acted on.
        async for _message in subscription.watch_all_signals():
            pass

    async def _wait_for_departure(self, subscription: PeerSubscription):
        async for owner in subscription.watch_owner_change():
            if not owner:
                return
        raise ConnectionError(f"Owner stream for {self.service} ended")


def session_factory(subscribe: SubscriptionFactory, icon_cache: IconCache,
                    updates: asyncio.Queue, departures: asyncio.Queue
                    ) -> Callable[[str], PeerSession]:
    """Bind the shared collaborators so sessions can be made from a service name."""
    def make(service: str) -> PeerSession:
        return PeerSession(service, subscribe, icon_cache, updates, departures)
    return make
