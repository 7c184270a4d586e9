"""
Exception classes for message encryption operations.

Hierarchy:
- MessageEncryptionError
  - ConfigError
  - CryptoError
    - DecryptionError
      - MalformedEnvelopeError
      - AuthenticationError
  - StorageError
"""

from __future__ import annotations


class MessageEncryptionError(Exception):
    """Base exception for all message encryption operations."""

    pass


class ConfigError(MessageEncryptionError):
    """Configuration error (encryption key missing)."""

    pass


class CryptoError(MessageEncryptionError):
    """Cryptographic operation failed or received invalid input."""

    pass


class DecryptionError(CryptoError):
    """A stored envelope could not be turned back into plaintext."""

    pass


class MalformedEnvelopeError(DecryptionError):
    """Value carries the envelope marker but its structure is invalid."""

    pass


class AuthenticationError(DecryptionError):
    """GCM tag verification failed (tampered, corrupted, or wrong key)."""

    pass


class StorageError(MessageEncryptionError):
    """Storage backend error (database)."""

    pass
