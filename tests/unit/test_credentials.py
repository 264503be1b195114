"""Unit tests for SecretPassword and CredentialManager."""

from unittest.mock import patch

import pytest
from keyring.errors import KeyringError

from sftp_transfer.config.credentials import CredentialManager, SecretPassword


class TestSecretPassword:
    """Tests for SecretPassword."""

    def test_encodes_latin1(self):
        """Test each character becomes exactly one Latin-1 byte."""
        secret = SecretPassword("Grüße")
        assert secret.encoded() == b"Gr\xfc\xdfe"
        assert len(secret) == 5

    def test_accepts_bytes(self):
        """Test raw bytes are kept as-is."""
        assert SecretPassword(b"\xff\x00ab").encoded() == b"\xff\x00ab"

    def test_rejects_non_latin1(self):
        """Test characters outside Latin-1 raise ValueError."""
        with pytest.raises(ValueError):
            SecretPassword("密码")

    def test_reveal_round_trips(self):
        """Test reveal decodes back to the original text."""
        assert SecretPassword("Grüße").reveal() == "Grüße"

    def test_repr_and_str_are_masked(self):
        """Test the value never appears in repr or str."""
        secret = SecretPassword("hunter2")
        assert "hunter2" not in repr(secret)
        assert "hunter2" not in str(secret)
        assert f"{secret}" == SecretPassword.MASK

    def test_clear_zeroes_buffer(self):
        """Test clear wipes the value."""
        secret = SecretPassword("hunter2")
        buffer = secret._value

        secret.clear()

        assert secret.is_empty
        assert secret.encoded() == b""
        assert bytes(buffer) == b""

    def test_copy_is_independent(self):
        """Test clearing a copy leaves the original intact."""
        secret = SecretPassword("hunter2")
        duplicate = secret.copy()

        duplicate.clear()

        assert secret.encoded() == b"hunter2"
        assert duplicate.is_empty

    def test_equality(self):
        """Test comparison by value."""
        assert SecretPassword("a") == SecretPassword("a")
        assert SecretPassword("a") != SecretPassword("b")


class TestCredentialManager:
    """Tests for CredentialManager class."""

    @pytest.fixture
    def credential_manager(self):
        """Create a CredentialManager instance."""
        return CredentialManager()

    def test_make_key(self, credential_manager):
        """Test _make_key creates unique key."""
        assert credential_manager._make_key("192.168.1.100", "admin") == "192.168.1.100:admin"

    @patch("keyring.set_password")
    def test_save_password_success(self, mock_set, credential_manager):
        """Test successful password save."""
        result = credential_manager.save_password("host.local", "user", "secret123")

        assert result is True
        mock_set.assert_called_once_with(
            CredentialManager.SERVICE_NAME,
            "host.local:user",
            "secret123"
        )

    @patch("keyring.set_password")
    def test_save_secret_password(self, mock_set, credential_manager):
        """Test a SecretPassword is stored as its text."""
        credential_manager.save_password("host.local", "user", SecretPassword("Grüße"))

        mock_set.assert_called_once_with(
            CredentialManager.SERVICE_NAME,
            "host.local:user",
            "Grüße"
        )

    @patch("keyring.set_password")
    def test_save_password_failure(self, mock_set, credential_manager):
        """Test password save failure."""
        mock_set.side_effect = KeyringError("Backend error")

        assert credential_manager.save_password("host.local", "user", "secret") is False

    @patch("keyring.get_password")
    def test_get_password_found(self, mock_get, credential_manager):
        """Test retrieving existing password."""
        mock_get.return_value = "my_secret"

        assert credential_manager.get_password("host.local", "user") == "my_secret"
        mock_get.assert_called_once_with(CredentialManager.SERVICE_NAME, "host.local:user")

    @patch("keyring.get_password")
    def test_get_password_error(self, mock_get, credential_manager):
        """Test get_password returns None on error."""
        mock_get.side_effect = KeyringError("Backend error")

        assert credential_manager.get_password("host.local", "user") is None

    @patch("keyring.get_password")
    def test_get_secret(self, mock_get, credential_manager):
        """Test get_secret wraps the stored password."""
        mock_get.return_value = "my_secret"

        secret = credential_manager.get_secret("host.local", "user")

        assert isinstance(secret, SecretPassword)
        assert secret.encoded() == b"my_secret"

    @patch("keyring.get_password")
    def test_get_secret_not_found(self, mock_get, credential_manager):
        """Test get_secret returns None when nothing is stored."""
        mock_get.return_value = None

        assert credential_manager.get_secret("host.local", "user") is None

    @patch("keyring.delete_password")
    def test_delete_password_success(self, mock_delete, credential_manager):
        """Test successful password deletion."""
        assert credential_manager.delete_password("host.local", "user") is True
        mock_delete.assert_called_once_with(CredentialManager.SERVICE_NAME, "host.local:user")

    @patch("keyring.delete_password")
    def test_delete_password_failure(self, mock_delete, credential_manager):
        """Test password deletion failure."""
        mock_delete.side_effect = KeyringError("Backend error")

        assert credential_manager.delete_password("host.local", "user") is False

    @patch("keyring.get_password")
    def test_has_password(self, mock_get, credential_manager):
        """Test has_password reflects whether a password is stored."""
        mock_get.return_value = "secret"
        assert credential_manager.has_password("host.local", "user") is True

        mock_get.return_value = None
        assert credential_manager.has_password("host.local", "user") is False
