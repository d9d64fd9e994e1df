"""Ephemeral shared-secret storage service."""

__version__ = "1.2.0"
