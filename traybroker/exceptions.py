"""Exception hierarchy for traybroker."""

from typing import Optional


class TrayError(Exception):
    """Base exception for all traybroker errors."""


class BusError(TrayError):
    """Transport-level failure (bus unreachable, error reply, malformed reply)."""

    def __init__(self, message: str, *, error_name: Optional[str] = None):
        self.error_name = error_name
        super().__init__(message)


class ProtocolViolation(TrayError):
    """A peer advertised a title or icon that does not follow the protocol."""


class IconWriteError(TrayError):
    """An icon file could not be written to the cache directory."""


class NameTakenError(BusError):
    """A well-known bus name we need is already owned by someone else."""
