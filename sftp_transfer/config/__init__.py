"""Configuration module for the SFTP Transfer Client.

This module handles client settings and credentials:
- SettingsManager: JSON-based settings persistence
- CredentialManager: Secure credential storage via keyring
- SecretPassword: Wipeable Latin-1 password buffer
- Paths: Application data directories
"""
