"""Secure credential handling for the SFTP Transfer Client.

SecretPassword keeps a password as Latin-1 bytes that can be wiped
after use. CredentialManager stores passwords in the system keyring
(Windows Credential Manager, macOS Keychain, Linux Secret Service).
"""

import hmac
from typing import Optional, Union

import keyring
from keyring.errors import KeyringError


class SecretPassword:
    """Password held as a mutable byte buffer so it can be zeroed.

    The bytes are Latin-1 encoded, one byte per character, which is what
    the server receives during password authentication.
    """

    ENCODING = "latin-1"
    MASK = "********"

    def __init__(self, value: Union[str, bytes, bytearray] = ""):
        if isinstance(value, str):
            try:
                data = value.encode(self.ENCODING)
            except UnicodeEncodeError as e:
                raise ValueError(
                    "Password contains characters that cannot be encoded as Latin-1"
                ) from e
        else:
            data = bytes(value)
        self._value = bytearray(data)

    def encoded(self) -> bytes:
        """Bytes to hand to the authentication layer."""
        return bytes(self._value)

    def reveal(self) -> str:
        """Decode the password back to text (for keyring storage)."""
        return self._value.decode(self.ENCODING)

    def copy(self) -> "SecretPassword":
        """Independent copy that can be cleared without affecting this one."""
        return SecretPassword(self._value)

    def clear(self) -> None:
        """Overwrite the buffer with zeros and empty it."""
        for i in range(len(self._value)):
            self._value[i] = 0
        del self._value[:]

    @property
    def is_empty(self) -> bool:
        """True if no password is held (never set or cleared)."""
        return len(self._value) == 0

    def __len__(self) -> int:
        return len(self._value)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SecretPassword):
            return NotImplemented
        return hmac.compare_digest(bytes(self._value), bytes(other._value))

    __hash__ = None

    def __repr__(self) -> str:
        return f"SecretPassword('{self.MASK}')"

    def __str__(self) -> str:
        return self.MASK


class CredentialManager:
    """Secure credential storage using system keyring."""

    SERVICE_NAME = "sftp-transfer-client"

    def _make_key(self, host: str, username: str) -> str:
        """
        Create a unique key for the credential.

        Args:
            host: SFTP host
            username: SFTP username

        Returns:
            Unique key string
        """
        return f"{host}:{username}"

    def save_password(
        self,
        host: str,
        username: str,
        password: Union[str, SecretPassword]
    ) -> bool:
        """
        Save SFTP password securely.

        Args:
            host: SFTP host
            username: SFTP username
            password: Password to save

        Returns:
            True if saved successfully, False otherwise
        """
        if isinstance(password, SecretPassword):
            password = password.reveal()
        try:
            key = self._make_key(host, username)
            keyring.set_password(self.SERVICE_NAME, key, password)
            return True
        except KeyringError:
            return False

    def get_password(self, host: str, username: str) -> Optional[str]:
        """
        Retrieve saved password.

        Args:
            host: SFTP host
            username: SFTP username

        Returns:
            Password string or None if not found
        """
        try:
            key = self._make_key(host, username)
            return keyring.get_password(self.SERVICE_NAME, key)
        except KeyringError:
            return None

    def get_secret(self, host: str, username: str) -> Optional[SecretPassword]:
        """
        Retrieve saved password wrapped in a SecretPassword.

        Raises:
            ValueError: If the stored password is not Latin-1 encodable
        """
        password = self.get_password(host, username)
        if password is None:
            return None
        return SecretPassword(password)

    def delete_password(self, host: str, username: str) -> bool:
        """
        Remove saved password.

        Args:
            host: SFTP host
            username: SFTP username

        Returns:
            True if deleted successfully, False otherwise
        """
        try:
            key = self._make_key(host, username)
            keyring.delete_password(self.SERVICE_NAME, key)
            return True
        except KeyringError:
            return False

    def has_password(self, host: str, username: str) -> bool:
        """
        Check if a password is saved.

        Args:
            host: SFTP host
            username: SFTP username

        Returns:
            True if password exists
        """
        return self.get_password(host, username) is not None
