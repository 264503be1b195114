"""SFTP Transfer Client.

Authenticated SFTP sessions with upload, download, remove, directory
navigation and retrieve-and-purge of remote directories.
"""
