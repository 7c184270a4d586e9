"""
Key resolution for message encryption.

The secret material comes from the ``MESSAGE_ENCRYPTION_KEY`` environment
variable and is turned into a 32-byte AES key by the first matching rule:

1. 64 hexadecimal characters: decoded directly
2. Base64 (standard or URL-safe, padding optional) decoding to 32 bytes
3. Anything else: SHA-256 of the UTF-8 passphrase

The rules are checked in order, so a 64-character hex passphrase is always
used as a raw key.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import logging
import os
import re
import threading
from enum import Enum
from typing import Optional, Tuple

from .crypto import AES_256_KEY_SIZE, SecureKey
from .errors import ConfigError

logger = logging.getLogger(__name__)

KEY_ENV_VAR: str = "MESSAGE_ENCRYPTION_KEY"

_HEX_KEY = re.compile(r"[0-9a-fA-F]{64}")
_BASE64_KEY = re.compile(r"[A-Za-z0-9+/_-]+={0,2}")


class KeyRule(Enum):
    """Which resolution rule produced a key."""

    HEX = "hex"
    BASE64 = "base64"
    PASSPHRASE = "passphrase"

    def __str__(self) -> str:
        return self.value


def _decode_base64(value: str) -> Optional[bytes]:
    if _BASE64_KEY.fullmatch(value) is None:
        return None
    normalized = value.rstrip("=").replace("+", "-").replace("/", "_")
    try:
        return base64.urlsafe_b64decode(normalized + "=" * (-len(normalized) % 4))
    except (binascii.Error, ValueError):
        return None


def derive_key(secret: Optional[str]) -> Tuple[SecureKey, KeyRule]:
    """
    Resolve secret material into a key, reporting the rule used.

    Args:
        secret: Raw secret material

    Returns:
        (key, rule) tuple

    Raises:
        ConfigError: If the secret is missing or blank
    """
    if secret is None:
        raise ConfigError(f"{KEY_ENV_VAR} is not set")

    trimmed = str(secret).strip()
    if not trimmed:
        raise ConfigError(f"{KEY_ENV_VAR} is empty")

    if _HEX_KEY.fullmatch(trimmed):
        return SecureKey(bytes.fromhex(trimmed)), KeyRule.HEX

    decoded = _decode_base64(trimmed)
    if decoded is not None and len(decoded) == AES_256_KEY_SIZE:
        return SecureKey(decoded), KeyRule.BASE64

    digest = hashlib.sha256(trimmed.encode("utf-8")).digest()
    return SecureKey(digest), KeyRule.PASSPHRASE


def resolve_key(secret: Optional[str]) -> SecureKey:
    """Resolve secret material into a 32-byte key (pure, deterministic)."""
    key, _rule = derive_key(secret)
    return key


class KeyProvider:
    """
    Process-wide holder for the resolved key.

    The secret is read on first use (explicit value, or the environment
    variable at that moment) and the key is computed once under a lock.
    A missing secret is never cached, so every call keeps failing with
    ConfigError until the environment is fixed.
    """

    def __init__(
        self,
        secret: Optional[str] = None,
        *,
        env_var: str = KEY_ENV_VAR,
    ) -> None:
        """
        Initialize the provider.

        Args:
            secret: Explicit secret material; when None the environment
                variable is read on first use
            env_var: Environment variable holding the secret
        """
        self._secret = secret
        self._env_var = env_var
        self._key: Optional[SecureKey] = None
        self._lock = threading.Lock()

    @property
    def env_var(self) -> str:
        return self._env_var

    def is_configured(self) -> bool:
        """Return True if secret material is available (without resolving)."""
        if self._key is not None:
            return True
        secret = self._load_secret()
        return secret is not None and bool(secret.strip())

    def get_key(self) -> SecureKey:
        """
        Return the resolved key, resolving it on first call.

        Raises:
            ConfigError: If the secret is missing
        """
        key = self._key
        if key is not None:
            return key

        with self._lock:
            if self._key is None:
                key, rule = derive_key(self._load_secret())
                logger.info("Message encryption key resolved (rule=%s)", rule)
                self._key = key
            return self._key

    def _load_secret(self) -> Optional[str]:
        if self._secret is not None:
            return self._secret
        return os.environ.get(self._env_var)

    def __repr__(self) -> str:
        state = "resolved" if self._key is not None else "pending"
        return f"KeyProvider(env_var={self._env_var!r}, key={state})"
