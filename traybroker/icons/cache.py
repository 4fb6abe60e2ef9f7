"""
Icon Cache

Design Decision: Storage Strategy
==================================

Options Considered:
1. Hand the pixels to consumers inline (base64 in the JSON frame)
   - Frames get large, and are re-sent on every change of any item
2. One file per item, overwritten on change
   - Consumers may read a file while it is being replaced
3. Content-addressed files in a shared directory
   - Identical icons share one file, frames carry only a path

Decision: Content-addressed PNG files
- <tmp>/<sha256>.png, hash over the dimensions and the pixel bytes
- Written to a unique temp name and renamed into place, so a reader never
  sees a partial file and two writers of the same icon cannot collide
- No eviction; the directory is an unmanaged cache

Layout:
```
/tmp/
├── 3f1c...e9.png
└── a07b...12.png
```
"""

import asyncio
import hashlib
import io
import logging
import tempfile
import uuid
from pathlib import Path
from typing import Optional

import aiofiles
import aiofiles.os
from PIL import Image

from ..exceptions import IconWriteError, ProtocolViolation

logger = logging.getLogger(__name__)

ICON_EXTENSION = ".png"
WRITE_ATTEMPTS = 2


def icon_hash(width: int, height: int, rgba: bytes) -> str:
    """Stable content hash of an RGBA icon."""
    hasher = hashlib.sha256()
    hasher.update(f"{width}x{height}:".encode('ascii'))
    hasher.update(rgba)
    return hasher.hexdigest()


def encode_png(width: int, height: int, rgba: bytes) -> bytes:
    """Encode an RGBA buffer as a PNG file."""
    try:
        image = Image.frombytes('RGBA', (width, height), rgba)
    except ValueError as e:
        raise ProtocolViolation(f"Cannot build {width}x{height} image: {e}") from e

    buffer = io.BytesIO()
    image.save(buffer, format='PNG')
    return buffer.getvalue()


class IconCache:
    """
    Content-addressed icon files.

    store() is safe to call concurrently with identical content.
    """

    def __init__(self, directory: Optional[Path] = None):
        """
        Args:
            directory: Where icon files live (default: system temp dir)
        """
        self.directory = Path(directory) if directory else Path(tempfile.gettempdir())
        self.directory.mkdir(parents=True, exist_ok=True)

    def path_for(self, width: int, height: int, rgba: bytes) -> Path:
        """Get the file path an icon is stored under."""
        return self.directory / f"{icon_hash(width, height, rgba)}{ICON_EXTENSION}"

    async def store(self, width: int, height: int, rgba: bytes) -> str:
        """
        Store an icon unless an identical one is already cached.

        Args:
            width: Icon width in pixels
            height: Icon height in pixels
            rgba: Pixel data, 4 bytes per pixel in R, G, B, A order

        Returns:
            Path of the PNG file

        Raises:
            ProtocolViolation: if the buffer does not match the size
            IconWriteError: if the file cannot be written after a retry
        """
        path = self.path_for(width, height, rgba)

        if await aiofiles.os.path.exists(path):
            logger.debug(f"Icon cache hit: {path.name}")
            return str(path)

        data = await asyncio.to_thread(encode_png, width, height, rgba)

        for attempt in range(1, WRITE_ATTEMPTS + 1):
            try:
                await self._write_atomic(path, data)
                break
            except OSError as e:
                if attempt == WRITE_ATTEMPTS:
                    raise IconWriteError(f"Cannot write icon {path}: {e}") from e
                logger.debug(f"Icon write failed ({e}), retrying: {path.name}")

        logger.debug(f"Stored icon {width}x{height}: {path.name}")
        return str(path)

    async def _write_atomic(self, path: Path, data: bytes):
        # Write to a unique temp name, then rename onto the final name
        temp_path = path.with_name(f".{path.name}.{uuid.uuid4().hex}.tmp")
        renamed = False

        try:
            async with aiofiles.open(temp_path, 'wb') as f:
                await f.write(data)
            await aiofiles.os.replace(temp_path, path)
            renamed = True
        finally:
            # Also reached on cancellation
            if not renamed and temp_path.exists():
                temp_path.unlink()
