"""SFTP transfer operations for the SFTP Transfer Client.

SFTPTransferClient runs single-file operations (upload, download, remove,
change directory, list) over an SFTPConnectionManager, and retrieves a
remote directory into a local one, optionally purging the remote copies.
"""

import os
import posixpath
import stat
import tempfile
import time
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable, Deque, Iterator, List, Optional, Tuple, Union

from paramiko import SFTPAttributes, SFTPClient, SSHException
from paramiko import SFTPError as ProtocolStatusError

from sftp_transfer.sftp.connection import SFTPConnectionConfig, SFTPConnectionManager
from sftp_transfer.sftp.exceptions import (
    LocalIOError,
    SFTPListingError,
    SFTPNotConnectedError,
    SFTPTransferError,
)
from sftp_transfer.utils.logging import get_logger
from sftp_transfer.utils.validators import validate_remote_path

logger = get_logger("client")

# Errors paramiko raises for failed remote operations or a dropped channel
PROTOCOL_ERRORS = (OSError, EOFError, SSHException, ProtocolStatusError)

SPECIAL_ENTRIES = (".", "..")


def remote_parent(remote_path: str) -> str:
    """
    Directory to change into before listing ``remote_path``.

    Text before the last '/' when the path contains one and is longer
    than one character, otherwise the path itself. An empty result
    (e.g. for "/data") means the root directory.
    """
    index = remote_path.rfind("/")
    if index == -1 or len(remote_path) <= 1:
        return remote_path
    return remote_path[:index] or "/"


def join_remote(directory: str, name: str) -> str:
    """Join a remote directory and an entry name with a single '/'."""
    return f"{directory.rstrip('/')}/{name}"


@dataclass
class RemoteEntry:
    """One entry of a remote directory listing."""
    name: str
    is_directory: bool
    parent_path: str
    size: int = 0
    modified_at: Optional[datetime] = None

    @classmethod
    def from_attributes(cls, attrs: SFTPAttributes, parent_path: str) -> "RemoteEntry":
        """
        Create a RemoteEntry from paramiko listing attributes.

        Args:
            attrs: Attributes returned by listdir_attr
            parent_path: Absolute remote path of the listed directory

        Returns:
            RemoteEntry instance
        """
        mode = attrs.st_mode or 0
        modified_at = None
        if attrs.st_mtime is not None:
            modified_at = datetime.fromtimestamp(attrs.st_mtime)
        return cls(
            name=attrs.filename,
            is_directory=stat.S_ISDIR(mode),
            parent_path=parent_path,
            size=attrs.st_size or 0,
            modified_at=modified_at,
        )

    @property
    def path(self) -> str:
        """Full remote path of the entry."""
        return join_remote(self.parent_path, self.name)


@dataclass
class TransferProgress:
    """Progress information for a single file transfer."""
    remote_path: str
    local_path: str
    bytes_transferred: int
    bytes_total: int

    @property
    def percent(self) -> float:
        """Transfer progress as percentage (0-100)."""
        if self.bytes_total == 0:
            return 0.0
        return (self.bytes_transferred / self.bytes_total) * 100.0


# Type alias for progress callback
ProgressCallback = Callable[[TransferProgress], None]


@dataclass
class RetrievalResult:
    """Outcome of a retrieve_and_purge run."""
    remote_path: str
    local_dir: str
    downloaded: List[str] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)
    skipped_directories: List[str] = field(default_factory=list)
    bytes_transferred: int = 0
    duration_seconds: float = 0.0

    @property
    def file_count(self) -> int:
        """Number of files downloaded."""
        return len(self.downloaded)


class SFTPTransferClient:
    """File transfer operations over a single SFTP connection.

    Not thread-safe: one client drives one session, and the remote
    working directory is shared by every call made through it.
    """

    def __init__(self, connection: Optional[SFTPConnectionManager] = None):
        """
        Initialize the transfer client.

        Args:
            connection: Connection manager to use (a new one if omitted)
        """
        self._connection = connection or SFTPConnectionManager()

    def __enter__(self) -> "SFTPTransferClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.disconnect()

    @property
    def connection(self) -> SFTPConnectionManager:
        """Underlying connection manager."""
        return self._connection

    @property
    def is_connected(self) -> bool:
        """True if the session and SFTP channel are live."""
        return self._connection.is_connected

    def connect(self, config: SFTPConnectionConfig) -> None:
        """
        Connect to the server.

        Raises:
            SFTPConnectionError: Or one of its subclasses on failure
        """
        self._connection.connect(config)

    def disconnect(self) -> None:
        """Disconnect from the server. Safe to call when not connected."""
        self._connection.disconnect()

    def _require_connection(self, operation: str) -> SFTPClient:
        """Return the live SFTP client or fail before any I/O."""
        if not self._connection.is_connected:
            raise SFTPNotConnectedError(operation)
        return self._connection.sftp

    def upload(
        self,
        local_path: Union[str, Path],
        remote_path: str,
        on_progress: Optional[ProgressCallback] = None
    ) -> int:
        """
        Upload a local file, overwriting the remote file.

        Args:
            local_path: Local file to send
            remote_path: Destination path on the server
            on_progress: Optional callback for progress updates

        Returns:
            Number of bytes transferred

        Raises:
            SFTPNotConnectedError: If not connected
            SFTPTransferError: If the upload fails
        """
        sftp = self._require_connection("Upload")
        local_path = str(local_path)
        callback, sent = self._progress_tracker(remote_path, local_path, on_progress)

        logger.debug(f"Uploading {local_path} -> {remote_path}")
        try:
            sftp.put(local_path, remote_path, callback=callback)
        except PROTOCOL_ERRORS as e:
            raise SFTPTransferError("upload", remote_path, e) from e

        self._connection.record_activity()
        logger.info(f"Uploaded {local_path} -> {remote_path}")
        return sent[0]

    def download(
        self,
        remote_path: str,
        local_path: Union[str, Path],
        on_progress: Optional[ProgressCallback] = None
    ) -> int:
        """
        Download a remote file, overwriting the local file.

        The data lands in a temporary file beside ``local_path`` that
        replaces it only once the transfer is complete, so a failed
        download leaves an existing local file untouched and creates
        nothing new.

        Args:
            remote_path: File on the server
            local_path: Local destination path
            on_progress: Optional callback for progress updates

        Returns:
            Number of bytes transferred

        Raises:
            SFTPNotConnectedError: If not connected
            SFTPTransferError: If the download fails
        """
        sftp = self._require_connection("Download")
        local = Path(local_path)
        callback, received = self._progress_tracker(remote_path, str(local), on_progress)

        logger.debug(f"Downloading {remote_path} -> {local}")
        partial = None
        try:
            partial = self._partial_path(local)
            sftp.get(remote_path, str(partial), callback=callback)
            os.replace(partial, local)
        except PROTOCOL_ERRORS as e:
            if partial is not None:
                self._discard_partial(partial)
            raise SFTPTransferError("download", remote_path, e) from e

        self._connection.record_activity()
        logger.info(f"Downloaded {remote_path} -> {local}")
        return received[0]

    def remove(self, remote_path: str) -> None:
        """
        Delete a single remote file.

        Raises:
            SFTPNotConnectedError: If not connected
            SFTPTransferError: If the removal fails
        """
        sftp = self._require_connection("Remove")

        logger.debug(f"Removing {remote_path}")
        try:
            sftp.remove(remote_path)
        except PROTOCOL_ERRORS as e:
            raise SFTPTransferError("remove", remote_path, e) from e

        self._connection.record_activity()
        logger.info(f"Removed {remote_path}")

    def change_directory(self, path: str) -> None:
        """
        Change the remote working directory.

        Subsequent relative paths on this client resolve against it.

        Raises:
            SFTPNotConnectedError: If not connected
            SFTPTransferError: If the directory cannot be entered
        """
        sftp = self._require_connection("Change directory")

        logger.debug(f"Changing directory to {path}")
        try:
            sftp.chdir(path)
            current = sftp.getcwd()
        except PROTOCOL_ERRORS as e:
            raise SFTPTransferError("change directory to", path, e) from e

        self._connection.set_working_directory(current)
        self._connection.record_activity()
        logger.debug(f"Working directory is now {current}")

    def get_current_directory(self) -> str:
        """
        Get the remote working directory.

        Raises:
            SFTPNotConnectedError: If not connected
        """
        self._require_connection("Get current directory")
        return self._connection.working_directory

    def list_directory(self, path: str = ".") -> List[RemoteEntry]:
        """
        List a remote directory.

        Args:
            path: Directory path, absolute or relative to the working directory

        Returns:
            Entries of the directory

        Raises:
            SFTPNotConnectedError: If not connected
            SFTPListingError: If the directory cannot be listed
        """
        sftp = self._require_connection("List directory")

        try:
            attributes = sftp.listdir_attr(path)
        except PROTOCOL_ERRORS as e:
            raise SFTPListingError(path, e) from e

        self._connection.record_activity()
        parent = self._resolve(path)
        logger.debug(f"Listed {len(attributes)} entries in {parent}")
        return [RemoteEntry.from_attributes(attrs, parent) for attrs in attributes]

    def retrieve_and_purge(
        self,
        remote_path: str,
        local_dir: Union[str, Path],
        remove_remote: bool = False,
        max_depth: Optional[int] = 1,
        on_progress: Optional[ProgressCallback] = None
    ) -> RetrievalResult:
        """
        Download the files of a remote directory, optionally deleting them.

        Each file is downloaded, then removed from the server when
        ``remove_remote`` is set. The first failure aborts the run and is
        raised unchanged; files handled before it stay downloaded (and
        removed).

        The client changes into the parent of ``remote_path`` (see
        remote_parent) and builds file paths from that working directory.
        Give directories with a trailing slash: "/data/" lists /data and
        fetches /data/a.txt, while "/data" lists /data but fetches /a.txt
        from the working directory "/".

        Args:
            remote_path: Remote directory, e.g. "/data/"
            local_dir: Local directory, created with parents if missing
            remove_remote: Delete each remote file after downloading it
            max_depth: Directory levels to process; 1 handles only the
                files directly in ``remote_path``, None has no limit
            on_progress: Optional callback for per-file progress updates

        Returns:
            RetrievalResult describing what was transferred

        Raises:
            SFTPNotConnectedError: If not connected
            SFTPTransferError: If changing directory, a download or a removal fails
            SFTPListingError: If a directory cannot be listed
            LocalIOError: If a local directory cannot be created
        """
        self._require_connection("Retrieve")
        is_valid, error = validate_remote_path(remote_path)
        if not is_valid:
            raise ValueError(error)
        if max_depth is not None and max_depth < 1:
            raise ValueError(f"max_depth must be at least 1, got {max_depth}")

        start_time = time.time()
        result = RetrievalResult(remote_path=remote_path, local_dir=str(local_dir))

        pending: Deque[Tuple[str, Path, int]] = deque([(remote_path, Path(local_dir), 1)])
        while pending:
            directory, target, depth = pending.popleft()
            subdirectories = self._retrieve_directory(
                directory, target, remove_remote, result, on_progress
            )
            for remote_subdir, name in subdirectories:
                if max_depth is None or depth < max_depth:
                    pending.append((f"{remote_subdir}/", target / name, depth + 1))
                else:
                    result.skipped_directories.append(remote_subdir)

        result.duration_seconds = time.time() - start_time
        logger.info(
            f"Retrieved {result.file_count} files from {remote_path} "
            f"into {local_dir} ({len(result.removed)} removed)"
        )
        return result

    def _retrieve_directory(
        self,
        remote_dir: str,
        local_dir: Path,
        remove_remote: bool,
        result: RetrievalResult,
        on_progress: Optional[ProgressCallback]
    ) -> List[Tuple[str, str]]:
        """
        Process the regular files of one remote directory.

        Returns:
            (remote path, name) of each subdirectory found
        """
        parent = remote_parent(remote_dir)
        logger.debug(f"Remote folder is {parent}")
        self.change_directory(parent)

        if not local_dir.exists():
            logger.info(f"Creating local directory {local_dir}")
        try:
            local_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise LocalIOError(str(local_dir), "create directory", e) from e

        entries = self.list_directory(remote_dir)
        current = self.get_current_directory()
        logger.debug(f"{len(entries)} entries in {remote_dir}")

        subdirectories: List[Tuple[str, str]] = []
        for entry in entries:
            if entry.name in SPECIAL_ENTRIES:
                continue
            remote_file = join_remote(current, entry.name)
            if entry.is_directory:
                subdirectories.append((remote_file, entry.name))
                continue

            local_file = local_dir / entry.name
            try:
                result.bytes_transferred += self.download(remote_file, local_file, on_progress)
            except SFTPTransferError as e:
                logger.error(f"Retrieval of {remote_file} failed, aborting: {e}")
                raise
            result.downloaded.append(remote_file)

            if remove_remote:
                self.remove(remote_file)
                result.removed.append(remote_file)

        return subdirectories

    def _resolve(self, path: str) -> str:
        """Absolute form of a remote path, relative to the working directory."""
        base = self._connection.working_directory or "/"
        return posixpath.normpath(posixpath.join(base, path))

    def _progress_tracker(
        self,
        remote_path: str,
        local_path: str,
        on_progress: Optional[ProgressCallback]
    ):
        """
        Build a paramiko transfer callback.

        Returns:
            (callback, one-element list holding the bytes transferred so far)
        """
        transferred = [0]

        def callback(done: int, total: int) -> None:
            transferred[0] = done
            if on_progress:
                on_progress(TransferProgress(
                    remote_path=remote_path,
                    local_path=local_path,
                    bytes_transferred=done,
                    bytes_total=total,
                ))

        return callback, transferred

    def _partial_path(self, local: Path) -> Path:
        """Create an empty temporary file in the directory of ``local``."""
        fd, name = tempfile.mkstemp(
            prefix=f".{local.name}.", suffix=".part", dir=str(local.parent)
        )
        os.close(fd)
        return Path(name)

    def _discard_partial(self, partial: Path) -> None:
        """Remove the temporary file of a failed download."""
        try:
            partial.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Could not remove partial download {partial}: {e}")


@contextmanager
def open_client(config: SFTPConnectionConfig) -> Iterator[SFTPTransferClient]:
    """
    Connect a new SFTPTransferClient and always disconnect it afterwards.

    Raises:
        SFTPConnectionError: Or one of its subclasses if connecting fails
    """
    client = SFTPTransferClient()
    client.connect(config)
    try:
        yield client
    finally:
        client.disconnect()
