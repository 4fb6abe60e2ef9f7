"""
Peer Subscription

Everything the host needs from one registered tray item, behind a small
capability interface so sessions can be driven by an in-memory fake in tests.

The concrete implementation opens a private connection per peer and builds
its proxy from a static description of org.kde.StatusNotifierItem rather
than introspecting the peer: plenty of tray applications answer
Introspect poorly, but all of them serve the properties.
"""

import logging
from typing import AsyncIterator, List, Optional, Protocol, Tuple

from dbus_fast import Message
from dbus_fast.aio import MessageBus
from dbus_fast.errors import DBusError
from dbus_fast.introspection import Node

from ..exceptions import BusError, ProtocolViolation
from .connection import SignalStream, call, connect
from .constants import DBUS_INTERFACE, DBUS_NAME, DBUS_PATH, ITEM_INTERFACE, ITEM_PATH

logger = logging.getLogger(__name__)

# (width, height, ARGB32 bytes in network byte order)
Pixmap = Tuple[int, int, bytes]

ITEM_INTROSPECTION = """
<node>
  <interface name="org.kde.StatusNotifierItem">
    <property name="Category" type="s" access="read"/>
    <property name="Id" type="s" access="read"/>
    <property name="Title" type="s" access="read"/>
    <property name="Status" type="s" access="read"/>
    <property name="WindowId" type="u" access="read"/>
    <property name="IconName" type="s" access="read"/>
    <property name="IconPixmap" type="a(iiay)" access="read"/>
    <property name="OverlayIconName" type="s" access="read"/>
    <property name="OverlayIconPixmap" type="a(iiay)" access="read"/>
    <property name="AttentionIconName" type="s" access="read"/>
    <property name="AttentionIconPixmap" type="a(iiay)" access="read"/>
    <property name="AttentionMovieName" type="s" access="read"/>
    <property name="ToolTip" type="(sa(iiay)ss)" access="read"/>
    <property name="ItemIsMenu" type="b" access="read"/>
    <property name="Menu" type="o" access="read"/>
    <method name="ContextMenu">
      <arg name="x" type="i" direction="in"/>
      <arg name="y" type="i" direction="in"/>
    </method>
    <method name="Activate">
      <arg name="x" type="i" direction="in"/>
      <arg name="y" type="i" direction="in"/>
    </method>
    <method name="SecondaryActivate">
      <arg name="x" type="i" direction="in"/>
      <arg name="y" type="i" direction="in"/>
    </method>
    <method name="Scroll">
      <arg name="delta" type="i" direction="in"/>
      <arg name="orientation" type="s" direction="in"/>
    </method>
    <signal name="NewTitle"/>
    <signal name="NewIcon"/>
    <signal name="NewAttentionIcon"/>
    <signal name="NewOverlayIcon"/>
    <signal name="NewToolTip"/>
    <signal name="NewStatus">
      <arg name="status" type="s"/>
    </signal>
  </interface>
</node>
"""

# Error replies that mean "the peer does not serve this", not "the bus broke"
_MISSING_PROPERTY_ERRORS = {
    'org.freedesktop.DBus.Error.UnknownProperty',
    'org.freedesktop.DBus.Error.UnknownInterface',
    'org.freedesktop.DBus.Error.InvalidArgs',
}


class PeerSubscription(Protocol):
    """What a peer session needs from the peer it follows."""

    service: str

    async def fetch_title(self) -> str:
        ...

    async def fetch_icon_pixmap(self) -> List[Pixmap]:
        ...

    def watch_owner_change(self) -> AsyncIterator[str]:
        """Yield the peer's new owner on every change; an empty string means gone."""
        ...

    def watch_all_signals(self) -> AsyncIterator[Message]:
        ...

    async def close(self):
        ...


class DBusPeerSubscription:
    """PeerSubscription over a dedicated dbus-fast connection."""

    def __init__(self, service: str, bus: MessageBus):
        self.service = service
        self._bus = bus
        proxy = bus.get_proxy_object(service, ITEM_PATH, Node.parse(ITEM_INTROSPECTION))
        self._item = proxy.get_interface(ITEM_INTERFACE)

    @classmethod
    async def open(cls, service: str, address: Optional[str] = None) -> 'DBusPeerSubscription':
        """Connect a fresh bus connection addressed to `service`."""
        bus = await connect(address)
        try:
            return cls(service, bus)
        except Exception:
            bus.disconnect()
            raise

    async def fetch_title(self) -> str:
        return await self._get('Title', self._item.get_title)

    async def fetch_icon_pixmap(self) -> List[Pixmap]:
        pixmaps = await self._get('IconPixmap', self._item.get_icon_pixmap)
        return [(int(w), int(h), bytes(data)) for w, h, data in pixmaps]

    async def _get(self, name: str, getter):
        try:
            return await getter()
        except DBusError as e:
            if e.type in _MISSING_PROPERTY_ERRORS:
                raise ProtocolViolation(f"{self.service} does not provide {name}: {e.text}") from e
            raise BusError(f"Reading {name} from {self.service} failed: {e.text}",
                           error_name=e.type) from e

    async def watch_owner_change(self) -> AsyncIterator[str]:
        rule = (
            f"type='signal',sender='{DBUS_NAME}',interface='{DBUS_INTERFACE}',"
            f"member='NameOwnerChanged',arg0='{self.service}'"
        )

        def is_ours(message: Message) -> bool:
            return (message.member == 'NameOwnerChanged'
                    and bool(message.body) and message.body[0] == self.service)

        async with SignalStream(self._bus, rule, is_ours) as stream:
            # The peer may have left before the match rule was in place.
            [has_owner] = await call(self._bus, DBUS_NAME, DBUS_PATH, DBUS_INTERFACE,
                                     'NameHasOwner', 's', [self.service])
            if not has_owner:
                yield ''
                return

            async for message in stream:
                _name, _old_owner, new_owner = message.body
                yield new_owner

    async def watch_all_signals(self) -> AsyncIterator[Message]:
        rule = f"type='signal',sender='{self.service}'"

        def from_peer(message: Message) -> bool:
            return message.sender != DBUS_NAME

        async with SignalStream(self._bus, rule, from_peer) as stream:
            async for message in stream:
                yield message

    async def close(self):
        if self._bus.connected:
            self._bus.disconnect()
