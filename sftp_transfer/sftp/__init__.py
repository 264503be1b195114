"""SFTP operations module for the SFTP Transfer Client.

This module handles all SFTP-related functionality:
- SFTPConnectionManager: SSH session and SFTP channel lifecycle
- SFTPTransferClient: Upload, download, remove, cd, list, retrieve-and-purge
- Exceptions: SFTP-specific error types
"""
