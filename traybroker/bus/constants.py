"""Well-known names, object paths and interfaces of the tray protocol."""

# Watcher (registry)
WATCHER_NAME = "org.kde.StatusNotifierWatcher"
WATCHER_PATH = "/StatusNotifierWatcher"
WATCHER_INTERFACE = "org.kde.StatusNotifierWatcher"

# Host (consumer identity); the process id is appended to the name
HOST_NAME_PREFIX = "org.kde.StatusNotifierHost"
HOST_PATH = "/StatusNotifierHost"
HOST_INTERFACE = "org.kde.StatusNotifierHost"

# Items (peers)
ITEM_PATH = "/StatusNotifierItem"
ITEM_INTERFACE = "org.kde.StatusNotifierItem"

# Message bus daemon
DBUS_NAME = "org.freedesktop.DBus"
DBUS_PATH = "/org/freedesktop/DBus"
DBUS_INTERFACE = "org.freedesktop.DBus"
PROPERTIES_INTERFACE = "org.freedesktop.DBus.Properties"

PROTOCOL_VERSION = 1
