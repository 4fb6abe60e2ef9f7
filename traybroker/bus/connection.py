"""
Bus Connection Helpers

Design Decision: Transport Library
==================================

Options Considered:
1. dbus-python (libdbus bindings)
   - Needs a GLib main loop, C extension, no asyncio
2. jeepney
   - Pure Python, but low-level; no service-side dispatch
3. dbus-fast
   - asyncio native, marshalling and ServiceInterface dispatch included
   - Proxy objects from static introspection XML

Decision: dbus-fast
- Every bus call is an awaitable, which is exactly the set of suspension
  points the broker wants
- Exporting the watcher is a decorated class instead of hand-written dispatch

This module holds the few low-level operations used by more than one
component: connecting, claiming a name, calling a method and streaming
signals that match a rule.
"""

import asyncio
import logging
from typing import Any, Callable, List, Optional

from dbus_fast import BusType, Message, MessageType, NameFlag, RequestNameReply
from dbus_fast.aio import MessageBus
from dbus_fast.errors import DBusError

from ..exceptions import BusError, NameTakenError
from .constants import DBUS_INTERFACE, DBUS_NAME, DBUS_PATH

logger = logging.getLogger(__name__)

MessagePredicate = Callable[[Message], bool]


async def connect(address: Optional[str] = None) -> MessageBus:
    """
    Open a new connection to the bus.

    Args:
        address: Bus address, or None for the session bus

    Returns:
        Connected MessageBus
    """
    try:
        if address:
            bus = MessageBus(bus_address=address)
        else:
            bus = MessageBus(bus_type=BusType.SESSION)
        return await bus.connect()
    except (DBusError, OSError, ValueError) as e:
        raise BusError(f"Cannot connect to bus: {e}") from e


async def claim_name(bus: MessageBus, name: str):
    """Request a well-known name, failing if another connection owns it."""
    try:
        reply = await bus.request_name(name, NameFlag.DO_NOT_QUEUE)
    except DBusError as e:
        raise BusError(f"RequestName({name}) failed: {e}", error_name=e.type) from e

    if reply not in (RequestNameReply.PRIMARY_OWNER, RequestNameReply.ALREADY_OWNER):
        raise NameTakenError(f"Bus name {name} is already owned")

    logger.debug(f"Acquired bus name {name}")


async def call(bus: MessageBus, destination: str, path: str, interface: str,
               member: str, signature: str = '', body: Optional[List[Any]] = None) -> List[Any]:
    """
    Invoke a method and return the reply body.

    Raises:
        BusError: on an error reply or a broken connection
    """
    message = Message(
        destination=destination,
        path=path,
        interface=interface,
        member=member,
        signature=signature,
        body=body or [],
    )
    try:
        reply = await bus.call(message)
    except (DBusError, OSError, EOFError) as e:
        raise BusError(f"{interface}.{member} on {destination} failed: {e}") from e

    if reply is None:
        raise BusError(f"{interface}.{member} on {destination} returned no reply")

    if reply.message_type == MessageType.ERROR:
        detail = reply.body[0] if reply.body else ''
        raise BusError(
            f"{interface}.{member} on {destination} failed: {reply.error_name} {detail}",
            error_name=reply.error_name,
        )

    return reply.body


async def add_match(bus: MessageBus, rule: str):
    await call(bus, DBUS_NAME, DBUS_PATH, DBUS_INTERFACE, 'AddMatch', 's', [rule])


async def remove_match(bus: MessageBus, rule: str):
    await call(bus, DBUS_NAME, DBUS_PATH, DBUS_INTERFACE, 'RemoveMatch', 's', [rule])


class SignalStream:
    """
    Async iterator over the signals a connection receives for one match rule.

    Usage:
        async with SignalStream(bus, rule, predicate) as stream:
            async for message in stream:
                ...

    The match rule is installed on enter and removed on exit. Messages are
    buffered in an unbounded queue, so nothing is lost between reads.
    """

    def __init__(self, bus: MessageBus, rule: str,
                 predicate: Optional[MessagePredicate] = None):
        self.bus = bus
        self.rule = rule
        self.predicate = predicate
        self._queue: asyncio.Queue = asyncio.Queue()

    def _on_message(self, message: Message):
        if message.message_type != MessageType.SIGNAL:
            return None
        if self.predicate is None or self.predicate(message):
            self._queue.put_nowait(message)
        return None

    async def __aenter__(self) -> 'SignalStream':
        self.bus.add_message_handler(self._on_message)
        try:
            await add_match(self.bus, self.rule)
        except BusError:
            self.bus.remove_message_handler(self._on_message)
            raise
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.bus.remove_message_handler(self._on_message)
        if self.bus.connected:
            try:
                await remove_match(self.bus, self.rule)
            except BusError as e:
                logger.debug(f"RemoveMatch({self.rule}): {e}")

    def __aiter__(self) -> 'SignalStream':
        return self

    async def __anext__(self) -> Message:
        return await self._queue.get()
