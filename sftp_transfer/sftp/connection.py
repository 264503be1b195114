"""SFTP connection management for the SFTP Transfer Client.

Provides ConnectionState and HostKeyPolicy enums, the SFTPConnectionConfig
dataclass, and SFTPConnectionManager, which owns the SSH session, the
session channel running the sftp subsystem, and the SFTPClient over it.
"""

import socket
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional, Tuple, Union

from paramiko import (
    AuthenticationException,
    AutoAddPolicy,
    BadHostKeyException,
    Channel,
    RejectPolicy,
    SFTPClient,
    SSHClient,
    SSHException,
    WarningPolicy,
)

from sftp_transfer.config.credentials import SecretPassword
from sftp_transfer.sftp.exceptions import (
    SFTPAuthenticationError,
    SFTPConnectionError,
    SFTPHostKeyError,
    SFTPNotConnectedError,
    SFTPTimeoutError,
)
from sftp_transfer.utils.logging import get_logger
from sftp_transfer.utils.validators import validate_host, validate_port, validate_timeout

logger = get_logger("connection")


DEFAULT_PREFERRED_AUTHENTICATIONS: Tuple[str, ...] = (
    "publickey",
    "keyboard-interactive",
    "password",
)


class ConnectionState(Enum):
    """SFTP connection state."""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class StrictHostKeyPolicy(RejectPolicy):
    """Reject hosts missing from known_hosts with SFTPHostKeyError."""

    def missing_host_key(self, client, hostname, key):
        logger.warning(f"Rejecting unknown {key.get_name()} host key for {hostname}")
        raise SFTPHostKeyError(
            hostname,
            SSHException(f"Server {hostname!r} not found in known_hosts"),
        )


class HostKeyPolicy(Enum):
    """What to do when the server's host key is not in known_hosts."""
    STRICT = "strict"
    WARN = "warn"
    ACCEPT_NEW = "accept_new"

    def create(self):
        """Build the matching paramiko missing-host-key policy."""
        if self is HostKeyPolicy.ACCEPT_NEW:
            return AutoAddPolicy()
        if self is HostKeyPolicy.WARN:
            return WarningPolicy()
        return StrictHostKeyPolicy()


@dataclass
class SFTPConnectionConfig:
    """SFTP connection configuration.

    Mutable until passed to connect(); the manager works from its own
    copy afterwards.
    """
    host: str
    username: str
    password: Optional[Union[SecretPassword, str]] = field(default=None, repr=False)
    port: int = 22
    timeout: int = 30
    host_key_policy: HostKeyPolicy = HostKeyPolicy.STRICT
    known_hosts_file: Optional[Path] = None
    preferred_authentications: Tuple[str, ...] = DEFAULT_PREFERRED_AUTHENTICATIONS

    def __post_init__(self):
        """Validate configuration after initialization."""
        if not self.host:
            raise ValueError("Host is required")
        is_valid, error = validate_host(self.host)
        if not is_valid:
            raise ValueError(error)
        if not self.username:
            raise ValueError("Username is required")
        is_valid, error = validate_port(self.port)
        if not is_valid:
            raise ValueError(error)
        is_valid, error = validate_timeout(self.timeout)
        if not is_valid:
            raise ValueError(error)
        if isinstance(self.password, str):
            self.password = SecretPassword(self.password)
        if isinstance(self.host_key_policy, str):
            self.host_key_policy = HostKeyPolicy(self.host_key_policy)
        if self.known_hosts_file is not None:
            self.known_hosts_file = Path(self.known_hosts_file)
        self.preferred_authentications = tuple(self.preferred_authentications)

    @property
    def uses_public_key(self) -> bool:
        """True if agent and default key files may be offered."""
        return "publickey" in self.preferred_authentications

    @property
    def uses_password(self) -> bool:
        """True if the password may be sent (directly or interactively)."""
        return bool(
            {"password", "keyboard-interactive"} & set(self.preferred_authentications)
        )


class SFTPConnectionManager:
    """Manages the SSH session and SFTP channel lifecycle."""

    SUBSYSTEM = "sftp"

    def __init__(self):
        """Initialize the connection manager."""
        self._client: Optional[SSHClient] = None
        self._channel: Optional[Channel] = None
        self._sftp: Optional[SFTPClient] = None
        self._config: Optional[SFTPConnectionConfig] = None
        self._state = ConnectionState.DISCONNECTED
        self._connected_at: Optional[datetime] = None
        self._last_activity: Optional[datetime] = None
        self._error_message: Optional[str] = None
        self._working_directory: Optional[str] = None

    def __enter__(self) -> "SFTPConnectionManager":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.disconnect()

    @property
    def state(self) -> ConnectionState:
        """Current connection state."""
        return self._state

    @property
    def is_connected(self) -> bool:
        """True if the session is alive and the SFTP channel is open."""
        if self._state != ConnectionState.CONNECTED:
            return False
        if self._client is None or self._channel is None or self._sftp is None:
            return False
        transport = self._client.get_transport()
        if transport is None or not transport.is_active():
            return False
        return not self._channel.closed

    @property
    def config(self) -> Optional[SFTPConnectionConfig]:
        """Configuration of the current (or last attempted) connection."""
        return self._config

    @property
    def connected_at(self) -> Optional[datetime]:
        """Timestamp when connection was established."""
        return self._connected_at

    @property
    def last_activity(self) -> Optional[datetime]:
        """Timestamp of last successful operation."""
        return self._last_activity

    @property
    def error_message(self) -> Optional[str]:
        """Message of the last failed connection attempt."""
        return self._error_message

    @property
    def working_directory(self) -> Optional[str]:
        """
        Remote working directory of the SFTP channel.

        Every relative remote path resolves against this value, so callers
        sharing one manager must serialize directory-dependent sequences.
        """
        return self._working_directory

    @property
    def sftp(self) -> SFTPClient:
        """
        Get the underlying SFTPClient.

        Raises:
            SFTPNotConnectedError: If not connected
        """
        if not self.is_connected:
            raise SFTPNotConnectedError("SFTP access")
        return self._sftp

    def connect(self, config: SFTPConnectionConfig) -> None:
        """
        Open an SSH session and an SFTP channel over it.

        Args:
            config: Connection configuration

        Raises:
            SFTPConnectionError: If the handshake or channel open fails
            SFTPAuthenticationError: If authentication fails
            SFTPHostKeyError: If the host key does not match
            SFTPTimeoutError: If connecting times out
        """
        if self._state != ConnectionState.DISCONNECTED or self._client is not None:
            self.disconnect()

        password = config.password.copy() if config.password is not None else None
        self._config = replace(config, password=password)
        self._state = ConnectionState.CONNECTING
        self._error_message = None

        logger.info(f"Connecting to {config.host}:{config.port} as {config.username}")

        try:
            self._open_session(self._config)
            self._open_channel(self._config)

            self._working_directory = self._sftp.normalize(".")
            self._state = ConnectionState.CONNECTED
            self._connected_at = datetime.now()
            self._last_activity = self._connected_at
            logger.info(f"Connected to {config.host}:{config.port}")

        except SFTPConnectionError as e:
            self._fail(e)
            raise
        except Exception as e:
            error = SFTPConnectionError(config.host, config.port, e)
            self._fail(error)
            raise error from e

    def _open_session(self, config: SFTPConnectionConfig) -> None:
        """Connect and authenticate the SSH client."""
        self._client = SSHClient()
        self._client.load_system_host_keys()
        if config.known_hosts_file is not None:
            self._client.load_host_keys(str(config.known_hosts_file))
        self._client.set_missing_host_key_policy(config.host_key_policy.create())

        password = None
        if config.password is not None and config.uses_password:
            password = config.password.encoded()

        try:
            self._client.connect(
                hostname=config.host,
                port=config.port,
                username=config.username,
                password=password,
                timeout=config.timeout,
                banner_timeout=config.timeout,
                auth_timeout=config.timeout,
                allow_agent=config.uses_public_key,
                look_for_keys=config.uses_public_key,
            )
        except socket.timeout as e:
            raise SFTPTimeoutError("Connection", config.timeout) from e
        except AuthenticationException as e:
            raise SFTPAuthenticationError(config.username, e) from e
        except BadHostKeyException as e:
            raise SFTPHostKeyError(config.host, e) from e
        except (SSHException, OSError, EOFError) as e:
            raise SFTPConnectionError(config.host, config.port, e) from e

    def _open_channel(self, config: SFTPConnectionConfig) -> None:
        """Open a session channel, start the sftp subsystem and wrap it."""
        logger.debug("Opening sftp channel")
        try:
            transport = self._client.get_transport()
            self._channel = transport.open_session(timeout=config.timeout)
            self._channel.settimeout(config.timeout)
            self._channel.invoke_subsystem(self.SUBSYSTEM)
            self._sftp = SFTPClient(self._channel)
        except socket.timeout as e:
            raise SFTPTimeoutError("Opening SFTP channel", config.timeout) from e
        except (SSHException, OSError, EOFError) as e:
            raise SFTPConnectionError(config.host, config.port, e) from e
        logger.debug("SFTP channel opened")

    def _fail(self, error: Exception) -> None:
        """Record a failed connect and drop everything opened so far."""
        self._error_message = str(error)
        logger.error(f"Connection failed: {error}")
        self._release()
        self._state = ConnectionState.DISCONNECTED

    def disconnect(self) -> None:
        """Close the SFTP client, channel and session. Safe to call repeatedly."""
        had_session = self._client is not None
        self._release()
        self._state = ConnectionState.DISCONNECTED
        self._connected_at = None
        if had_session:
            logger.info("Disconnected")

    def _release(self) -> None:
        """Release SFTP client, channel, then SSH client, each independently."""
        if self._sftp is not None:
            logger.debug("Closing SFTP client")
            try:
                self._sftp.close()
            except Exception as e:
                logger.debug(f"Error closing SFTP client: {e}")
            self._sftp = None

        if self._channel is not None:
            logger.debug("Closing channel")
            try:
                self._channel.close()
            except Exception as e:
                logger.debug(f"Error closing channel: {e}")
            self._channel = None

        if self._client is not None:
            logger.debug("Closing session")
            try:
                self._client.close()
            except Exception as e:
                logger.debug(f"Error closing session: {e}")
            self._client = None

        if self._config is not None and self._config.password is not None:
            self._config.password.clear()
        self._working_directory = None

    def record_activity(self) -> None:
        """Update last activity timestamp."""
        self._last_activity = datetime.now()

    def set_working_directory(self, path: str) -> None:
        """Record the remote working directory after a change."""
        self._working_directory = path
