"""SFTP-specific exceptions for the SFTP Transfer Client.

Custom exception hierarchy for SFTP operations so callers can handle
connection, transfer, listing and local filesystem failures separately.
"""


class SFTPError(Exception):
    """Base exception for all SFTP-related errors."""

    def __init__(self, message: str, original_error: Exception = None):
        super().__init__(message)
        self.message = message
        self.original_error = original_error

    def __str__(self) -> str:
        if self.original_error:
            return f"{self.message}: {self.original_error}"
        return self.message


class SFTPConnectionError(SFTPError):
    """Failed to establish the SSH session or the SFTP channel."""

    def __init__(self, host: str, port: int, original_error: Exception = None):
        self.host = host
        self.port = port
        message = f"Failed to connect to {host}:{port}"
        super().__init__(message, original_error)


class SFTPAuthenticationError(SFTPConnectionError):
    """SSH authentication failed."""

    def __init__(self, username: str, original_error: Exception = None):
        self.username = username
        self.host = None
        self.port = None
        SFTPError.__init__(
            self, f"Authentication failed for user '{username}'", original_error
        )


class SFTPTimeoutError(SFTPConnectionError):
    """Connecting to the server timed out."""

    def __init__(self, operation: str = "Operation", timeout: int = 30):
        self.timeout = timeout
        self.host = None
        self.port = None
        SFTPError.__init__(self, f"{operation} timed out after {timeout} seconds")


class SFTPHostKeyError(SFTPConnectionError):
    """Server host key did not match the known hosts entry."""

    def __init__(self, host: str, original_error: Exception = None):
        self.host = host
        self.port = None
        SFTPError.__init__(
            self, f"Host key verification failed for '{host}'", original_error
        )


class SFTPNotConnectedError(SFTPError):
    """Operation attempted without an active SFTP connection."""

    def __init__(self, operation: str = "Operation"):
        self.operation = operation
        message = f"{operation} requires an active SFTP connection"
        super().__init__(message)


class SFTPTransferError(SFTPError):
    """A single remote file operation (put, get, remove, cd) failed."""

    def __init__(self, operation: str, path: str, original_error: Exception = None):
        self.operation = operation
        self.path = path
        message = f"Failed to {operation} '{path}'"
        super().__init__(message, original_error)


class SFTPListingError(SFTPError):
    """Listing a remote directory failed."""

    def __init__(self, path: str, original_error: Exception = None):
        self.path = path
        message = f"Failed to list '{path}'"
        super().__init__(message, original_error)


class LocalIOError(SFTPError):
    """Local filesystem operation failed (e.g. creating the target directory)."""

    def __init__(self, path: str, operation: str, original_error: Exception = None):
        self.path = path
        self.operation = operation
        message = f"Failed to {operation} local path '{path}'"
        super().__init__(message, original_error)
