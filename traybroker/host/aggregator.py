"""
Aggregator

Single owner of the service -> Item map. Every processed update produces a
complete frame (a JSON array of every current item), never a delta, so
consumers can replace their state wholesale.
"""

import asyncio
import json
import logging
import sys
from typing import Callable, Dict, List, Optional, Tuple

from ..models import Item

logger = logging.getLogger(__name__)

Update = Tuple[str, Optional[Item]]
FrameSink = Callable[[str], None]


def stdout_sink(frame: str):
    """Write one frame per line to standard output."""
    sys.stdout.write(frame + "\n")
    sys.stdout.flush()


class Aggregator:
    """
    Consumes (service, Optional[Item]) updates and emits full frames.

    Args:
        updates: Queue of updates; events from one session arrive in order
        sink: Receives each serialized frame
    """

    def __init__(self, updates: asyncio.Queue, sink: FrameSink = stdout_sink):
        self._updates = updates
        self._sink = sink
        self._items: Dict[str, Item] = {}
        self._task: Optional[asyncio.Task] = None

    @property
    def items(self) -> Dict[str, Item]:
        return dict(self._items)

    def apply(self, service: str, item: Optional[Item]):
        """Insert, overwrite or remove one item."""
        if item is not None:
            self._items[service] = item
        else:
            self._items.pop(service, None)

    def frame(self) -> List[dict]:
        return [item.to_dict() for item in self._items.values()]

    def serialize(self) -> str:
        return json.dumps(self.frame())

    def start(self):
        if self._task is None or self._task.done():
            self._task = asyncio.ensure_future(self.run())

    async def stop(self):
        if self._task is not None:
            self._task.cancel()
            await asyncio.gather(self._task, return_exceptions=True)
            self._task = None

    async def run(self):
        """Process updates until cancelled."""
        while True:
            service, item = await self._updates.get()
            self.apply(service, item)
            logger.debug(f"{'Updated' if item else 'Removed'} {service}, {len(self._items)} items")
            self._emit()

    def _emit(self):
        try:
            self._sink(self.serialize())
        except OSError as e:
            logger.error(f"Cannot write frame: {e}")
