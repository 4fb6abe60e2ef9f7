"""
Icons Module - pixmap decoding and the content-addressed icon cache
"""

from .pixmap import argb_to_rgba, decode_pixmap
from .cache import IconCache, icon_hash, encode_png

__all__ = [
    'argb_to_rgba',
    'decode_pixmap',
    'IconCache',
    'icon_hash',
    'encode_png',
]
