"""
Watcher Module - the item registry and its bus interface
"""

from .registry import Registry, RegistryEvent, RegistryEventType, RegistryCallback
from .service import StatusNotifierWatcher

__all__ = [
    'Registry',
    'RegistryEvent',
    'RegistryEventType',
    'RegistryCallback',
    'StatusNotifierWatcher',
]
