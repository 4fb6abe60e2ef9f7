"""
Bus Module - transport helpers and the peer subscription interface

This module wraps the parts of dbus-fast the broker uses.
"""

from .constants import (
    WATCHER_NAME, WATCHER_PATH, WATCHER_INTERFACE,
    HOST_NAME_PREFIX, HOST_PATH, HOST_INTERFACE,
    ITEM_PATH, ITEM_INTERFACE, PROPERTIES_INTERFACE, PROTOCOL_VERSION,
)
from .connection import connect, claim_name, call, SignalStream
from .item import PeerSubscription, DBusPeerSubscription, Pixmap

__all__ = [
    'WATCHER_NAME',
    'WATCHER_PATH',
    'WATCHER_INTERFACE',
    'HOST_NAME_PREFIX',
    'HOST_PATH',
    'HOST_INTERFACE',
    'ITEM_PATH',
    'ITEM_INTERFACE',
    'PROPERTIES_INTERFACE',
    'PROTOCOL_VERSION',
    'connect',
    'claim_name',
    'call',
    'SignalStream',
    'PeerSubscription',
    'DBusPeerSubscription',
    'Pixmap',
]
