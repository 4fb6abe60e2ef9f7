"""
Pixmap Decoding

StatusNotifierItem icons travel as a list of (width, height, bytes)
candidates. Each pixel is four bytes in A, R, G, B order; image encoders
want R, G, B, A.
"""

from typing import Sequence, Tuple

from ..exceptions import ProtocolViolation

BYTES_PER_PIXEL = 4


def argb_to_rgba(data: bytes) -> bytes:
    """
    Reorder every 4-byte ARGB pixel to RGBA.

    Raises:
        ProtocolViolation: if the buffer is not a whole number of pixels
    """
    if len(data) % BYTES_PER_PIXEL:
        raise ProtocolViolation(f"Pixel buffer of {len(data)} bytes is not a multiple of 4")

    src = bytes(data)
    out = bytearray(len(src))
    out[0::4] = src[1::4]
    out[1::4] = src[2::4]
    out[2::4] = src[3::4]
    out[3::4] = src[0::4]
    return bytes(out)


def decode_pixmap(pixmaps: Sequence[Tuple[int, int, bytes]]) -> Tuple[int, int, bytes]:
    """
    Pick the icon to display and convert it to RGBA.

    The first entry is used as is; no attempt is made to choose a resolution.

    Returns:
        (width, height, rgba_bytes)
    """
    if not pixmaps:
        raise ProtocolViolation("IconPixmap is empty")

    width, height, data = pixmaps[0]
    if width <= 0 or height <= 0:
        raise ProtocolViolation(f"Invalid icon size {width}x{height}")

    expected = width * height * BYTES_PER_PIXEL
    if len(data) != expected:
        raise ProtocolViolation(
            f"Icon {width}x{height} needs {expected} bytes, got {len(data)}"
        )

    return width, height, argb_to_rgba(data)
