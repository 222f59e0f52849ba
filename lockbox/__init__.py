"""Lockbox: password-manager backend for client-encrypted personal and shared vaults."""

__version__ = "1.0.0"
