"""
Message encryption codec.

Encrypts plaintext message content into the stored envelope format and
decrypts envelopes back. Values that are not envelopes (legacy plaintext,
empty strings, None) pass through unchanged on read.

Quick use::

    from message_encryption import encrypt, decrypt

    stored = encrypt("hello")          # "enc::<nonce>:<ct>:<tag>"
    assert decrypt(stored) == "hello"
    assert decrypt("old plain row") == "old plain row"
"""

from __future__ import annotations

import threading
from typing import Optional

from .crypto import AesGcmCipher, SecureKey
from .envelope import encode_envelope, is_envelope, parse_envelope
from .errors import CryptoError, DecryptionError
from .keys import KEY_ENV_VAR, KeyProvider


class MessageCodec:
    """AES-256-GCM codec for message content stored as envelope strings."""

    def __init__(
        self,
        secret: Optional[str] = None,
        *,
        env_var: str = KEY_ENV_VAR,
        key_provider: Optional[KeyProvider] = None,
    ) -> None:
        """
        Initialize the codec.

        Args:
            secret: Explicit secret material; when None the environment
                variable is read lazily on first use
            env_var: Environment variable holding the secret
            key_provider: Pre-built provider (overrides secret/env_var)
        """
        self._keys = key_provider or KeyProvider(secret, env_var=env_var)

    @property
    def key_provider(self) -> KeyProvider:
        return self._keys

    def ensure_key(self) -> SecureKey:
        """
        Resolve the key now instead of on first use.

        Raises:
            ConfigError: If the secret is missing
        """
        return self._keys.get_key()

    def encrypt(self, plaintext: Optional[str]) -> Optional[str]:
        """
        Encrypt plaintext into an envelope string.

        None and "" are returned unchanged.

        Raises:
            ConfigError: If the secret is missing
            CryptoError: If the input is not a string or not encodable
        """
        if plaintext is None:
            return None
        if not isinstance(plaintext, str):
            raise CryptoError(f"Plaintext must be str, got {type(plaintext).__name__}")
        if plaintext == "":
            return ""

        try:
            data = plaintext.encode("utf-8")
        except UnicodeEncodeError:
            raise CryptoError("Plaintext is not valid UTF-8 text") from None

        encrypted = AesGcmCipher.encrypt(self._keys.get_key(), data)
        return encode_envelope(encrypted)

    def decrypt(self, stored: Optional[str]) -> Optional[str]:
        """
        Decrypt an envelope string back to plaintext.

        None, "" and any value without the envelope marker are returned
        unchanged.

        Raises:
            ConfigError: If the secret is missing
            MalformedEnvelopeError: If the envelope structure is invalid
            AuthenticationError: If the tag does not verify
            DecryptionError: If the plaintext is not valid UTF-8
        """
        if stored is None or stored == "":
            return stored
        if not is_envelope(stored):
            return stored

        encrypted = parse_envelope(stored)
        data = AesGcmCipher.decrypt(self._keys.get_key(), encrypted)

        try:
            return data.decode("utf-8")
        except UnicodeDecodeError:
            raise DecryptionError("Decryption failed") from None

    def __repr__(self) -> str:
        return f"MessageCodec({self._keys!r})"


# =============================================================================
# Process-wide default codec
# =============================================================================

_default_codec: Optional[MessageCodec] = None
_default_lock = threading.Lock()


def get_default_codec() -> MessageCodec:
    """Return the process-wide codec reading MESSAGE_ENCRYPTION_KEY."""
    global _default_codec
    codec = _default_codec
    if codec is None:
        with _default_lock:
            if _default_codec is None:
                _default_codec = MessageCodec()
            codec = _default_codec
    return codec


def reset_default_codec() -> None:
    """Drop the default codec so the next call re-reads the environment."""
    global _default_codec
    with _default_lock:
        _default_codec = None


def ensure_encryption_key() -> None:
    """
    Fail fast at startup if the encryption key is not configured.

    Raises:
        ConfigError: If MESSAGE_ENCRYPTION_KEY is missing
    """
    get_default_codec().ensure_key()


def is_encrypted(value: Optional[str]) -> bool:
    """Return True if the stored value is an envelope."""
    return is_envelope(value)


def encrypt(plaintext: Optional[str]) -> Optional[str]:
    """Encrypt with the default codec."""
    return get_default_codec().encrypt(plaintext)


def decrypt(stored: Optional[str]) -> Optional[str]:
    """Decrypt with the default codec."""
    return get_default_codec().decrypt(stored)


# Names used by message persistence code
encrypt_message = encrypt
decrypt_message = decrypt
