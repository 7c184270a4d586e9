"""
Stored envelope format.

An encrypted message is persisted as a single self-describing string::

    enc::<hex(nonce)>:<hex(ciphertext)>:<hex(tag)>

Hex is written lowercase. Values without the ``enc::`` marker are legacy
plaintext and are never parsed as envelopes.
"""

from __future__ import annotations

import re
from typing import Optional

from .crypto import NONCE_SIZE, TAG_SIZE, EncryptedData
from .errors import MalformedEnvelopeError

ENVELOPE_PREFIX: str = "enc::"
FIELD_SEPARATOR: str = ":"

_HEX_FIELD = re.compile(r"(?:[0-9a-fA-F]{2})*")


def is_envelope(value: Optional[str]) -> bool:
    """Return True if the value carries the envelope marker."""
    return isinstance(value, str) and value.startswith(ENVELOPE_PREFIX)


def encode_envelope(encrypted: EncryptedData) -> str:
    """Serialize encrypted data into the stored envelope string."""
    return (
        ENVELOPE_PREFIX
        + encrypted.nonce.hex()
        + FIELD_SEPARATOR
        + encrypted.ciphertext.hex()
        + FIELD_SEPARATOR
        + encrypted.tag.hex()
    )


def parse_envelope(value: str) -> EncryptedData:
    """
    Parse a stored envelope string.

    Args:
        value: String starting with the envelope marker

    Returns:
        EncryptedData with decoded nonce, ciphertext and tag

    Raises:
        MalformedEnvelopeError: If the marker is missing, the field count is
            not three, a field is not even-length hex, or the nonce/tag have
            the wrong size
    """
    if not is_envelope(value):
        raise MalformedEnvelopeError("Invalid encrypted message format")

    parts = value[len(ENVELOPE_PREFIX):].split(FIELD_SEPARATOR)
    if len(parts) != 3:
        raise MalformedEnvelopeError("Invalid encrypted message format")

    for part in parts:
        if _HEX_FIELD.fullmatch(part) is None:
            raise MalformedEnvelopeError("Invalid encrypted message format")

    nonce_hex, ciphertext_hex, tag_hex = parts
    nonce = bytes.fromhex(nonce_hex)
    tag = bytes.fromhex(tag_hex)
    if len(nonce) != NONCE_SIZE or len(tag) != TAG_SIZE:
        raise MalformedEnvelopeError("Invalid encrypted message format")

    return EncryptedData(
        nonce=nonce,
        ciphertext=bytes.fromhex(ciphertext_hex),
        tag=tag,
    )
