"""Per-user file locations for the SFTP Transfer Client.

Settings and logs live in one application data directory. It follows
the platform convention unless SFTP_TRANSFER_HOME points elsewhere.
"""

import os
import sys
from pathlib import Path


APP_NAME = "SFTPTransferClient"

# Overrides the platform directory (e.g. for a portable install)
HOME_ENV_VAR = "SFTP_TRANSFER_HOME"

SETTINGS_FILE_NAME = "settings.json"
LOG_DIR_NAME = "logs"
LOG_FILE_NAME = "sftp_transfer.log"


def _platform_config_root() -> Path:
    """
    Directory the platform reserves for per-user application data.

    - Windows: %APPDATA%
    - macOS: ~/Library/Application Support
    - Linux and others: $XDG_CONFIG_HOME, else ~/.config
    """
    if sys.platform == "win32":
        return Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming"))
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support"
    return Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))


def _ensure_dir(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_app_data_dir() -> Path:
    """
    Get the application data directory, creating it if needed.

    Returns:
        $SFTP_TRANSFER_HOME if set, otherwise APP_NAME under the
        platform's per-user config root
    """
    override = os.environ.get(HOME_ENV_VAR)
    if override:
        return _ensure_dir(Path(override).expanduser())
    return _ensure_dir(_platform_config_root() / APP_NAME)


def get_settings_path() -> Path:
    """Path of the JSON settings file (the file itself may not exist yet)."""
    return get_app_data_dir() / SETTINGS_FILE_NAME


def get_log_file_path() -> Path:
    """Path of the client log file; its directory is created if missing."""
    return _ensure_dir(get_app_data_dir() / LOG_DIR_NAME) / LOG_FILE_NAME
