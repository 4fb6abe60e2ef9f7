"""
traybroker - StatusNotifierWatcher and host in one process

Follows every registered tray item over D-Bus and publishes the title and
icon of all of them as a stream of JSON frames.
"""

from .broker import TrayBroker, run_broker
from .config import Config, load_config
from .exceptions import BusError, IconWriteError, NameTakenError, ProtocolViolation, TrayError
from .models import Icon, Item

__version__ = "0.1.0"

__all__ = [
    'TrayBroker',
    'run_broker',
    'Config',
    'load_config',
    'TrayError',
    'BusError',
    'ProtocolViolation',
    'IconWriteError',
    'NameTakenError',
    'Icon',
    'Item',
]
