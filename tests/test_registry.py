from __future__ import annotations

import pytest

from traybroker.exceptions import BusError
from traybroker.watcher import Registry, RegistryEvent, RegistryEventType


def _recorder(registry: Registry) -> list[RegistryEvent]:
    events: list[RegistryEvent] = []
    registry.on_change(events.append)
    return events


def _of_type(events: list[RegistryEvent], event_type: RegistryEventType) -> list[str]:
    return [e.service for e in events if e.type == event_type]


def test_register_twice_keeps_one_entry_but_notifies_twice() -> None:
    registry = Registry()
    events = _recorder(registry)

    registry.register("org.example.App1")
    registry.register("org.example.App1")

    assert registry.snapshot() == ["org.example.App1"]
    assert _of_type(events, RegistryEventType.ITEM_REGISTERED) == ["org.example.App1"] * 2
    assert len(_of_type(events, RegistryEventType.ITEMS_CHANGED)) == 2


def test_unregister_unknown_item_still_notifies() -> None:
    registry = Registry()
    registry.register("org.example.App1")
    events = _recorder(registry)

    registry.unregister("org.example.Missing")

    assert registry.snapshot() == ["org.example.App1"]
    assert _of_type(events, RegistryEventType.ITEM_UNREGISTERED) == ["org.example.Missing"]
    assert len(_of_type(events, RegistryEventType.ITEMS_CHANGED)) == 1


def test_unregister_removes_item() -> None:
    registry = Registry()
    registry.register("a")
    registry.register("b")

    registry.unregister("a")

    assert registry.snapshot() == ["b"]


def test_property_change_precedes_signal() -> None:
    registry = Registry()
    events = _recorder(registry)

    registry.register("a")

    assert [e.type for e in events] == [
        RegistryEventType.ITEMS_CHANGED,
        RegistryEventType.ITEM_REGISTERED,
    ]


def test_register_consumer_sets_flag_once_and_for_all() -> None:
    registry = Registry()
    events = _recorder(registry)
    assert registry.consumer_present is False

    registry.register_consumer("org.kde.StatusNotifierHost-1")

    assert registry.consumer_present is True
    assert [e.type for e in events] == [
        RegistryEventType.HOST_CHANGED,
        RegistryEventType.HOST_REGISTERED,
    ]
    assert not hasattr(registry, "unregister_consumer")


def test_snapshot_is_a_copy() -> None:
    registry = Registry()
    registry.register("a")

    snapshot = registry.snapshot()
    registry.register("b")

    assert snapshot == ["a"]
    assert registry.protocol_version == 1



def test_failing_observer_does_not_hide_events_from_others() -> None:
    registry = Registry()
    calls = []

    def broken(event: RegistryEvent) -> None:
        calls.append(event.type)
        if event.type == RegistryEventType.ITEMS_CHANGED:
            raise BusError("PropertiesChanged could not be sent")

    registry.on_change(broken)
    events = _recorder(registry)

    with pytest.raises(BusError, match="PropertiesChanged"):
        registry.register("org.example.App1")

    # Both events reached both observers before the error surfaced.
    assert registry.snapshot() == ["org.example.App1"]
    assert [e.type for e in events] == [
        RegistryEventType.ITEMS_CHANGED,
        RegistryEventType.ITEM_REGISTERED,
    ]
    assert calls == [RegistryEventType.ITEMS_CHANGED, RegistryEventType.ITEM_REGISTERED]


def test_unregister_signal_survives_failing_observer() -> None:
    registry = Registry()
    registry.register("org.example.App1")

    def broken(event: RegistryEvent) -> None:
        raise BusError("connection closed")

    registry.on_change(broken)
    events = _recorder(registry)

    with pytest.raises(BusError):
        registry.unregister("org.example.App1")

    assert registry.snapshot() == []
    assert _of_type(events, RegistryEventType.ITEM_UNREGISTERED) == ["org.example.App1"]
