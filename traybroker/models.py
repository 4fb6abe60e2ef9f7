"""
Item Snapshot Models

The externally visible state of one tray item. These are the only values
that end up in the emitted JSON frames.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class Icon:
    """An icon stored in the content-addressed cache."""
    width: int
    height: int
    path: str

    def to_dict(self) -> dict:
        return {
            'width': self.width,
            'height': self.height,
            'path': self.path,
        }


@dataclass(frozen=True)
class Item:
    """Title and icon of one tray item at one instant."""
    title: str
    icon: Icon

    def to_dict(self) -> dict:
        return {
            'title': self.title,
            'icon': self.icon.to_dict(),
        }
