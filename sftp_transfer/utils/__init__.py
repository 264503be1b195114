"""Utility module for the SFTP Transfer Client.

This module provides cross-cutting utilities:
- Logging: Configured logging with PII redaction
- Validators: Input validation for host, port, timeout and remote paths
"""
