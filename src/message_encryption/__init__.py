"""
Message Encryption Library

At-rest AES-256-GCM encryption for chat message content, stored as a
self-describing envelope string and readable alongside legacy plaintext rows.

Quick Start
-----------
```python
import os
from message_encryption import encrypt, decrypt

os.environ["MESSAGE_ENCRYPTION_KEY"] = "00" * 32

stored = encrypt("hello")          # "enc::<nonce>:<ciphertext>:<tag>"
assert decrypt(stored) == "hello"

# Rows written before encryption was enabled pass through unchanged
assert decrypt("plain old row") == "plain old row"
```

Key Features
------------
- **AES-256-GCM**: Authenticated encryption, tampering is always detected
- **Flexible Key Material**: 64-char hex, 32-byte base64, or any passphrase
- **Legacy Compatibility**: Non-envelope values are returned as stored
- **PostgreSQL Store**: asyncpg store encrypting message content on write
- **Legacy Migration**: Batch job encrypting historical plaintext rows
- **Memory Security**: Best-effort key zeroization on deletion
"""

__version__ = "0.1.0"

# =============================================================================
# Crypto Exports
# =============================================================================

from .crypto import (
    AES_256_KEY_SIZE,
    NONCE_SIZE,
    TAG_SIZE,
    AesGcmCipher,
    EncryptedData,
    SecureKey,
)

# =============================================================================
# Envelope / Key Exports
# =============================================================================

from .envelope import (
    ENVELOPE_PREFIX,
    encode_envelope,
    is_envelope,
    parse_envelope,
)
from .keys import (
    KEY_ENV_VAR,
    KeyProvider,
    KeyRule,
    derive_key,
    resolve_key,
)

# =============================================================================
# Codec Exports (Primary API)
# =============================================================================

from .codec import (
    MessageCodec,
    decrypt,
    decrypt_message,
    encrypt,
    encrypt_message,
    ensure_encryption_key,
    get_default_codec,
    is_encrypted,
    reset_default_codec,
)
from .records import (
    decrypt_record,
    decrypt_records,
    encrypt_record,
)

# =============================================================================
# Error Exports
# =============================================================================

from .errors import (
    AuthenticationError,
    ConfigError,
    CryptoError,
    DecryptionError,
    MalformedEnvelopeError,
    MessageEncryptionError,
    StorageError,
)

# =============================================================================
# PostgreSQL Exports
# =============================================================================

from .postgres import (
    LegacyMessage,
    PostgresMessageStore,
    StoredMessage,
)
from .migration import (
    MigrationResult,
    encrypt_legacy_messages,
)

# =============================================================================
# Public API
# =============================================================================

__all__ = [
    # Version
    "__version__",
    # Crypto
    "AES_256_KEY_SIZE",
    "NONCE_SIZE",
    "TAG_SIZE",
    "AesGcmCipher",
    "EncryptedData",
    "SecureKey",
    # Envelope
    "ENVELOPE_PREFIX",
    "encode_envelope",
    "is_envelope",
    "parse_envelope",
    # Keys
    "KEY_ENV_VAR",
    "KeyProvider",
    "KeyRule",
    "derive_key",
    "resolve_key",
    # Codec
    "MessageCodec",
    "encrypt",
    "decrypt",
    "encrypt_message",
    "decrypt_message",
    "ensure_encryption_key",
    "get_default_codec",
    "reset_default_codec",
    "is_encrypted",
    # Records
    "encrypt_record",
    "decrypt_record",
    "decrypt_records",
    # Errors
    "MessageEncryptionError",
    "ConfigError",
    "CryptoError",
    "DecryptionError",
    "MalformedEnvelopeError",
    "AuthenticationError",
    "StorageError",
    # PostgreSQL
    "PostgresMessageStore",
    "StoredMessage",
    "LegacyMessage",
    "MigrationResult",
    "encrypt_legacy_messages",
]
