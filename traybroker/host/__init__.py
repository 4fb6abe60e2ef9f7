"""
Host Module - follows registered items and publishes their state

- DiscoveryLoop: one PeerSession per registration, departures fed back
- PeerSession: snapshot and liveness of a single item
- Aggregator: full-frame JSON output of all current items
"""

from .aggregator import Aggregator, stdout_sink, Update, FrameSink
from .discovery import DiscoveryLoop
from .session import PeerSession, session_factory, SubscriptionFactory
from .service import StatusNotifierHost

__all__ = [
    'Aggregator',
    'stdout_sink',
    'Update',
    'FrameSink',
    'DiscoveryLoop',
    'PeerSession',
    'session_factory',
    'SubscriptionFactory',
    'StatusNotifierHost',
]
