"""
Watcher Registry

The authoritative set of registered tray items plus the single
"a host is present" flag.

Notification contract:
- register/unregister always notify, even when the set did not change
- every change notification is preceded by an "items changed" (or
  "host changed") notification, the in-process form of PropertiesChanged
- there is exactly one host slot and no way to unregister it
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Set

from ..bus.constants import PROTOCOL_VERSION

logger = logging.getLogger(__name__)


class RegistryEventType(Enum):
    """Kinds of registry notifications."""
    ITEMS_CHANGED = "ITEMS_CHANGED"
    ITEM_REGISTERED = "ITEM_REGISTERED"
    ITEM_UNREGISTERED = "ITEM_UNREGISTERED"
    HOST_CHANGED = "HOST_CHANGED"
    HOST_REGISTERED = "HOST_REGISTERED"


@dataclass(frozen=True)
class RegistryEvent:
    type: RegistryEventType
    service: str


RegistryCallback = Callable[[RegistryEvent], None]


class Registry:
    """
    Registered items and host presence.

    Observers registered with on_change() are called synchronously, in
    registration order, for every event.
    """

    def __init__(self):
        self._items: Set[str] = set()
        self._host_registered = False
        self._callbacks: List[RegistryCallback] = []

    @property
    def protocol_version(self) -> int:
        return PROTOCOL_VERSION

    @property
    def consumer_present(self) -> bool:
        return self._host_registered

    def snapshot(self) -> List[str]:
        """Copy of the registered items, sorted."""
        return sorted(self._items)

    def on_change(self, callback: RegistryCallback):
        """Register a callback for registry events."""
        self._callbacks.append(callback)

    def register(self, service: str):
        """Add an item. Registering a known item still notifies."""
        if service in self._items:
            logger.debug(f"Item re-registered: {service}")
        else:
            logger.info(f"Item registered: {service}")
        self._items.add(service)
        self._notify(service, RegistryEventType.ITEMS_CHANGED,
                     RegistryEventType.ITEM_REGISTERED)

    def unregister(self, service: str):
        """Remove an item. Unregistering an unknown item still notifies."""
        if service in self._items:
            logger.info(f"Item unregistered: {service}")
        self._items.discard(service)
        self._notify(service, RegistryEventType.ITEMS_CHANGED,
                     RegistryEventType.ITEM_UNREGISTERED)

    def register_consumer(self, service: str):
        """Mark the host slot as taken."""
        logger.info(f"Host registered: {service}")
        self._host_registered = True
        self._notify(service, RegistryEventType.HOST_CHANGED,
                     RegistryEventType.HOST_REGISTERED)

    def _notify(self, service: str, *event_types: RegistryEventType):
        # Every observer sees every event of the operation; the first
        # failure is re-raised once all of them have been delivered.
        error: Optional[Exception] = None
        for event_type in event_types:
            event = RegistryEvent(event_type, service)
            for callback in self._callbacks:
                try:
                    callback(event)
                except Exception as e:
                    logger.error(f"Registry callback error on {event_type.value}: {e}")
                    if error is None:
                        error = e
        if error is not None:
            raise error
