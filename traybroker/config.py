"""
Configuration Management

Handles loading configuration from environment variables and config files.
"""

import json
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .bus.constants import HOST_NAME_PREFIX, WATCHER_NAME


def default_host_name() -> str:
    """Host names must be unique per process."""
    return f"{HOST_NAME_PREFIX}-{os.getpid()}"


@dataclass
class Config:
    """
    Broker Configuration.

    Configuration priority (highest to lowest):
    1. Environment variables (TRAY_*)
    2. Config file (config.json)
    3. Default values
    """
    # Bus
    bus_address: Optional[str] = None  # None = session bus
    watcher_name: str = WATCHER_NAME
    host_name: str = field(default_factory=default_host_name)

    # Storage
    icon_dir: Path = field(default_factory=lambda: Path(tempfile.gettempdir()))

    # Logging
    log_level: str = 'INFO'

    @classmethod
    def from_env(cls) -> 'Config':
        """Load configuration from environment variables."""
        load_dotenv()

        config = cls()

        # Bus
        config.bus_address = os.getenv('TRAY_BUS_ADDRESS') or config.bus_address
        config.watcher_name = os.getenv('TRAY_WATCHER_NAME', config.watcher_name)
        config.host_name = os.getenv('TRAY_HOST_NAME', config.host_name)

        # Storage
        icon_dir = os.getenv('TRAY_ICON_DIR')
        if icon_dir:
            config.icon_dir = Path(icon_dir)

        # Logging
        config.log_level = os.getenv('TRAY_LOG_LEVEL', config.log_level)

        return config

    @classmethod
    def from_file(cls, path: Path) -> 'Config':
        """Load configuration from a JSON file."""
        path = Path(path)
        if not path.exists():
            return cls()

        with open(path) as f:
            data = json.load(f)

        config = cls()

        config.bus_address = data.get('bus_address', config.bus_address)
        config.watcher_name = data.get('watcher_name', config.watcher_name)
        config.host_name = data.get('host_name', config.host_name)

        if 'icon_dir' in data:
            config.icon_dir = Path(data['icon_dir'])

        config.log_level = data.get('log_level', config.log_level)

        return config

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            'bus_address': self.bus_address,
            'watcher_name': self.watcher_name,
            'host_name': self.host_name,
            'icon_dir': str(self.icon_dir),
            'log_level': self.log_level,
        }

    def save(self, path: Path):
        """Save configuration to a JSON file."""
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)


def load_config(config_path: Optional[Path] = None) -> Config:
    """
    Load configuration from file and environment.

    Environment variables override file settings.
    """
    config = Config()

    if config_path and Path(config_path).exists():
        config = Config.from_file(config_path)

    env_config = Config.from_env()
    defaults = Config()

    # Env takes precedence for non-default values
    for key in ['bus_address', 'watcher_name', 'host_name', 'icon_dir', 'log_level']:
        env_val = getattr(env_config, key)
        if env_val != getattr(defaults, key):
            setattr(config, key, env_val)

    return config


EXAMPLE_CONFIG = """
{
  "bus_address": null,
  "watcher_name": "org.kde.StatusNotifierWatcher",
  "host_name": "org.kde.StatusNotifierHost-traybroker",
  "icon_dir": "/tmp",
  "log_level": "INFO"
}
"""
