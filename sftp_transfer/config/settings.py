"""Client settings management for the SFTP Transfer Client.

Provides ClientSettings dataclass and SettingsManager for persistence.
"""

import json
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Optional, Union

from sftp_transfer.config.credentials import SecretPassword
from sftp_transfer.config.paths import get_settings_path
from sftp_transfer.sftp.connection import HostKeyPolicy, SFTPConnectionConfig


@dataclass
class ClientSettings:
    """Client settings that persist between sessions."""

    # Connection defaults
    last_host: str = ""
    last_port: int = 22
    last_username: str = ""
    timeout: int = 30
    host_key_policy: str = HostKeyPolicy.STRICT.value
    known_hosts_file: str = ""

    # Retrieval defaults
    download_path: str = ""
    remove_remote: bool = False
    retrieve_depth: int = 1

    def to_dict(self) -> dict:
        """Convert settings to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "ClientSettings":
        """Create settings from dictionary, ignoring unknown keys."""
        valid_fields = {f.name for f in cls.__dataclass_fields__.values()}
        filtered = {k: v for k, v in data.items() if k in valid_fields}
        return cls(**filtered)

    def to_connection_config(
        self,
        password: Optional[Union[SecretPassword, str]] = None
    ) -> SFTPConnectionConfig:
        """
        Build a connection config from the saved connection defaults.

        Args:
            password: Password for the saved host/user

        Returns:
            SFTPConnectionConfig

        Raises:
            ValueError: If the saved values are incomplete or invalid
        """
        return SFTPConnectionConfig(
            host=self.last_host,
            port=self.last_port,
            username=self.last_username,
            password=password,
            timeout=self.timeout,
            host_key_policy=HostKeyPolicy(self.host_key_policy),
            known_hosts_file=Path(self.known_hosts_file) if self.known_hosts_file else None,
        )


class SettingsManager:
    """Manages client settings persistence."""

    def __init__(self, config_path: Optional[Path] = None):
        """
        Initialize settings manager.

        Args:
            config_path: Optional custom path, defaults to platform standard
        """
        self._config_path = config_path or get_settings_path()
        self._settings: Optional[ClientSettings] = None

    @property
    def config_path(self) -> Path:
        """Path to settings file."""
        return self._config_path

    def load(self) -> ClientSettings:
        """
        Load settings from disk.

        Returns:
            ClientSettings instance (defaults if file not found)
        """
        if self._config_path.exists():
            try:
                with open(self._config_path, "r", encoding="utf-8") as f:
                    data = json.load(f)
                self._settings = ClientSettings.from_dict(data)
            except (json.JSONDecodeError, IOError):
                # Invalid or unreadable file, use defaults
                self._settings = ClientSettings()
        else:
            self._settings = ClientSettings()

        return self._settings

    def save(self, settings: ClientSettings) -> None:
        """
        Persist settings to disk.

        Args:
            settings: Settings to save
        """
        self._settings = settings

        self._config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(self._config_path, "w", encoding="utf-8") as f:
            json.dump(settings.to_dict(), f, indent=2)

    def reset(self) -> ClientSettings:
        """
        Reset to default settings.

        Returns:
            Default ClientSettings instance
        """
        self._settings = ClientSettings()

        if self._config_path.exists():
            self._config_path.unlink()

        return self._settings

    def update(self, **kwargs) -> ClientSettings:
        """
        Update specific settings fields.

        Args:
            **kwargs: Field names and new values

        Returns:
            Updated ClientSettings instance
        """
        if self._settings is None:
            self.load()

        for key, value in kwargs.items():
            if hasattr(self._settings, key):
                setattr(self._settings, key, value)

        self.save(self._settings)
        return self._settings
