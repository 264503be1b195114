"""Helpers shared by the test modules."""

import stat

from paramiko import SFTPAttributes


def make_attributes(name: str, is_dir: bool = False, size: int = 16) -> SFTPAttributes:
    """Build listing attributes for a file or directory."""
    attrs = SFTPAttributes()
    attrs.filename = name
    attrs.st_mode = (stat.S_IFDIR | 0o755) if is_dir else (stat.S_IFREG | 0o644)
    attrs.st_size = size
    attrs.st_mtime = 1700000000
    return attrs
