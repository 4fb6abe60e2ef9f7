from __future__ import annotations

import pytest

from traybroker.exceptions import ProtocolViolation
from traybroker.icons import argb_to_rgba, decode_pixmap


def test_single_pixel_is_reordered_to_rgba() -> None:
    assert argb_to_rgba(bytes([0xAA, 0x11, 0x22, 0x33])) == bytes([0x11, 0x22, 0x33, 0xAA])


def test_every_pixel_is_reordered() -> None:
    data = bytes([255, 10, 20, 30, 128, 1, 2, 3])

    assert argb_to_rgba(data) == bytes([10, 20, 30, 255, 1, 2, 3, 128])


def test_partial_pixel_is_rejected() -> None:
    with pytest.raises(ProtocolViolation):
        argb_to_rgba(b"\x00\x01\x02")


def test_first_entry_is_used_regardless_of_size() -> None:
    small = (1, 1, bytes([255, 9, 9, 9]))
    large = (2, 1, bytes([255, 1, 1, 1, 255, 2, 2, 2]))

    assert decode_pixmap([small, large]) == (1, 1, bytes([9, 9, 9, 255]))


def test_empty_pixmap_list_is_a_protocol_violation() -> None:
    with pytest.raises(ProtocolViolation, match="empty"):
        decode_pixmap([])


@pytest.mark.parametrize(
    "entry",
    [
        (2, 2, bytes(12)),   # one pixel short
        (0, 2, b""),         # zero width
        (-1, 1, bytes(4)),   # negative width
    ],
)
def test_malformed_entry_is_rejected(entry) -> None:
    with pytest.raises(ProtocolViolation):
        decode_pixmap([entry])
