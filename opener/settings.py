"""
Runtime configuration for the record store.

A single ConfigService is built at startup and handed to the components that
need it; nothing reads configuration from module level state.
"""

import os
import json
import logging
from dataclasses import dataclass
from typing import Optional, Dict, Any

from . import config
from .utils import user_config_dir, user_data_dir

logger = logging.getLogger(__name__)


@dataclass
class OpenerConfig:
    """User configuration persisted in ~/.opener/config.json."""
    storage_location: str = ""
    encryption_mode: str = config.MODE_LOCAL

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the camelCase JSON shape."""
        return {
            'storageLocation': self.storage_location,
            'encryptionMode': self.encryption_mode,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'OpenerConfig':
        """Create from the camelCase JSON shape, rejecting malformed values."""
        if not isinstance(data, dict):
            raise ValueError("configuration root must be an object")
        location = data.get('storageLocation') or ""
        mode = data.get('encryptionMode') or config.MODE_LOCAL
        if not isinstance(location, str) or not isinstance(mode, str):
            raise ValueError("configuration values must be strings")
        if mode.lower() not in config.ENCRYPTION_MODES:
            raise ValueError(f"unknown encryption mode: {mode}")
        return cls(storage_location=location, encryption_mode=mode.lower())


class ConfigService:
    """Loads, caches and saves the user configuration."""

    def __init__(self, config_dir: Optional[str] = None, data_dir: Optional[str] = None):
        """
        Args:
            config_dir: Directory holding config.json (default ~/.opener)
            data_dir: Directory for the default data file (default per-user app data)
        """
        self.config_dir = config_dir or user_config_dir(create=False)
        self.config_path = os.path.join(self.config_dir, config.CONFIG_FILE)
        self.data_dir = data_dir or user_data_dir()
        self._cached: Optional[OpenerConfig] = None

    def get_config(self) -> OpenerConfig:
        """
        Return the configuration, loading it on first use.

        A missing file yields defaults. An unreadable or malformed file also
        yields defaults, but a warning is logged so corruption is visible.
        """
        if self._cached is not None:
            return self._cached

        if not os.path.exists(self.config_path):
            self._cached = OpenerConfig()
            return self._cached

        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                self._cached = OpenerConfig.from_dict(json.load(f))
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable configuration {self.config_path}, using defaults: {e}")
            self._cached = OpenerConfig()
        return self._cached

    def save_config(self, new_config: OpenerConfig) -> None:
        os.makedirs(self.config_dir, exist_ok=True)
        with open(self.config_path, 'w', encoding='utf-8') as f:
            json.dump(new_config.to_dict(), f, indent=2)
        self._cached = new_config
        logger.info(f"Configuration saved to {self.config_path}")

    def get_data_file_path(self) -> str:
        """Resolve the data file path, creating its parent directory."""
        location = self.get_config().storage_location
        if location:
            directory = os.path.dirname(location)
            if directory:
                os.makedirs(directory, exist_ok=True)
            return location

        os.makedirs(self.data_dir, exist_ok=True)
        return os.path.join(self.data_dir, config.DEFAULT_DATA_FILE)

    def is_portable_mode(self) -> bool:
        return self.get_config().encryption_mode.lower() == config.MODE_PORTABLE

    def set_storage_location(self, path: str) -> None:
        """Point the store at a different file. Existing records are not moved."""
        current = self.get_config()
        self.save_config(OpenerConfig(storage_location=path, encryption_mode=current.encryption_mode))

    def set_encryption_mode(self, mode: str) -> None:
        """Record the encryption mode. Does not re-encrypt; see migration."""
        mode = mode.lower()
        if mode not in config.ENCRYPTION_MODES:
            raise ValueError(f"Invalid mode '{mode}'. Use 'local' or 'portable'.")
        current = self.get_config()
        self.save_config(OpenerConfig(storage_location=current.storage_location, encryption_mode=mode))
