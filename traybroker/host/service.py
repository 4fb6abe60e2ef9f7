"""The host's own bus identity."""

from dbus_fast.service import ServiceInterface

from ..bus.constants import HOST_INTERFACE


class StatusNotifierHost(ServiceInterface):
    """
    Empty interface. The host only needs to exist as a named connection
    so it can be passed to RegisterStatusNotifierHost.
    """

    def __init__(self):
        super().__init__(HOST_INTERFACE)
