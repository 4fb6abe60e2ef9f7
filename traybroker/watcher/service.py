"""
StatusNotifierWatcher bus object

Thin adapter exposing a Registry as org.kde.StatusNotifierWatcher.
Registry events are translated back into the protocol's signals and
PropertiesChanged notifications.
"""

import logging

from dbus_fast.constants import PropertyAccess
from dbus_fast.service import ServiceInterface, dbus_property, method, signal

from ..bus.constants import WATCHER_INTERFACE
from .registry import Registry, RegistryEvent, RegistryEventType

logger = logging.getLogger(__name__)


class StatusNotifierWatcher(ServiceInterface):
    """The watcher interface, backed by a Registry."""

    def __init__(self, registry: Registry):
        super().__init__(WATCHER_INTERFACE)
        self.registry = registry
        registry.on_change(self._on_registry_event)

    # === Methods ===

    @method()
    def RegisterStatusNotifierItem(self, service: 's'):
        self.registry.register(service)

    @method()
    def UnregisterStatusNotifierItem(self, service: 's'):
        self.registry.unregister(service)

    @method()
    def RegisterStatusNotifierHost(self, service: 's'):
        self.registry.register_consumer(service)

    # === Properties ===

    @dbus_property(access=PropertyAccess.READ)
    def ProtocolVersion(self) -> 't':
        return self.registry.protocol_version

    @dbus_property(access=PropertyAccess.READ)
    def IsStatusNotifierHostRegistered(self) -> 'b':
        return self.registry.consumer_present

    @dbus_property(access=PropertyAccess.READ)
    def RegisteredStatusNotifierItems(self) -> 'as':
        return self.registry.snapshot()

    # === Signals ===

    @signal()
    def StatusNotifierItemRegistered(self, service) -> 's':
        return service

    @signal()
    def StatusNotifierItemUnregistered(self, service) -> 's':
        return service

    @signal()
    def StatusNotifierHostRegistered(self, service) -> 's':
        return service

    def _on_registry_event(self, event: RegistryEvent):
        if event.type == RegistryEventType.ITEMS_CHANGED:
            self.emit_properties_changed(
                {'RegisteredStatusNotifierItems': self.registry.snapshot()})
        elif event.type == RegistryEventType.HOST_CHANGED:
            self.emit_properties_changed(
                {'IsStatusNotifierHostRegistered': self.registry.consumer_present})
        elif event.type == RegistryEventType.ITEM_REGISTERED:
            self.StatusNotifierItemRegistered(event.service)
        elif event.type == RegistryEventType.ITEM_UNREGISTERED:
            self.StatusNotifierItemUnregistered(event.service)
        elif event.type == RegistryEventType.HOST_REGISTERED:
            self.StatusNotifierHostRegistered(event.service)
