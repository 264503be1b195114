"""Pytest configuration and shared fixtures for SFTP Transfer Client tests."""

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Generator, Optional
from unittest.mock import MagicMock, patch

import pytest

from sftp_transfer.sftp.connection import SFTPConnectionConfig, SFTPConnectionManager


# Test constants
TEST_SFTP_HOST = "127.0.0.1"
TEST_SFTP_PORT = 2222
TEST_SFTP_USER = "testuser"
TEST_SFTP_PASS = "testpass"
TEST_SFTP_HOME = "/home/testuser"


@dataclass
class MockSSHStack:
    """Patched paramiko objects behind an SFTPConnectionManager."""
    ssh_class: MagicMock
    ssh: MagicMock
    transport: MagicMock
    channel: MagicMock
    sftp_class: MagicMock
    sftp: MagicMock


@pytest.fixture
def sftp_config() -> SFTPConnectionConfig:
    """Provide a valid connection configuration."""
    return SFTPConnectionConfig(
        host=TEST_SFTP_HOST,
        port=TEST_SFTP_PORT,
        username=TEST_SFTP_USER,
        password=TEST_SFTP_PASS,
    )


@pytest.fixture
def mock_ssh() -> Generator[MockSSHStack, None, None]:
    """
    Patch SSHClient and SFTPClient in the connection module.

    The transport reports active, the channel open, and the SFTP mock
    tracks its working directory through chdir/getcwd.
    """
    with patch("sftp_transfer.sftp.connection.SSHClient") as ssh_class, \
            patch("sftp_transfer.sftp.connection.SFTPClient") as sftp_class:
        ssh = MagicMock()
        ssh_class.return_value = ssh
        transport = ssh.get_transport.return_value
        transport.is_active.return_value = True
        channel = transport.open_session.return_value
        channel.closed = False

        sftp = MagicMock()
        sftp_class.return_value = sftp
        sftp.normalize.return_value = TEST_SFTP_HOME

        cwd: Dict[str, Optional[str]] = {"path": None}

        def chdir(path):
            cwd["path"] = path

        sftp.chdir.side_effect = chdir
        sftp.getcwd.side_effect = lambda: cwd["path"]

        yield MockSSHStack(
            ssh_class=ssh_class,
            ssh=ssh,
            transport=transport,
            channel=channel,
            sftp_class=sftp_class,
            sftp=sftp,
        )


@pytest.fixture
def connected_manager(
    mock_ssh: MockSSHStack,
    sftp_config: SFTPConnectionConfig
) -> SFTPConnectionManager:
    """Provide a connection manager connected through the mock stack."""
    manager = SFTPConnectionManager()
    manager.connect(sftp_config)
    return manager


@pytest.fixture
def temp_settings_file(tmp_path: Path) -> Generator[Path, None, None]:
    """Provide a temporary settings file path for testing."""
    settings_file = tmp_path / "settings.json"
    yield settings_file


@pytest.fixture
def sample_local_file(tmp_path: Path) -> Path:
    """Create a small local file for upload tests."""
    local_file = tmp_path / "upload.txt"
    local_file.write_bytes(b"hello sftp\n" * 8)
    return local_file
