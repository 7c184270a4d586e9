"""
Field-level helpers applying the codec to message records.

Write side encrypts the sensitive string fields of a record before it is
persisted; read side decrypts them after loading. Only ids and field names
are ever logged, never content.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from .codec import MessageCodec, get_default_codec
from .errors import DecryptionError

logger = logging.getLogger(__name__)

DEFAULT_FIELDS: Sequence[str] = ("content",)


def encrypt_record(
    data: Optional[Mapping[str, Any]],
    fields: Sequence[str] = DEFAULT_FIELDS,
    codec: Optional[MessageCodec] = None,
) -> Optional[Dict[str, Any]]:
    """
    Return a copy of ``data`` with every listed string field encrypted.

    Missing fields and non-string values are left untouched.
    """
    if data is None:
        return None
    codec = codec or get_default_codec()
    result = dict(data)
    for field in fields:
        value = result.get(field)
        if isinstance(value, str):
            result[field] = codec.encrypt(value)
    return result


def decrypt_record(
    record: Optional[Mapping[str, Any]],
    fields: Sequence[str] = DEFAULT_FIELDS,
    codec: Optional[MessageCodec] = None,
    strict: bool = True,
) -> Optional[Dict[str, Any]]:
    """
    Return a copy of ``record`` with every listed string field decrypted.

    Args:
        record: Loaded record (mapping)
        fields: Field names holding envelopes or legacy plaintext
        codec: Codec to use (default codec when None)
        strict: When False, a field that fails to decrypt is logged and
            keeps its stored value instead of raising

    Raises:
        DecryptionError: On a corrupt or tampered field (strict mode only)
    """
    if record is None:
        return None
    codec = codec or get_default_codec()
    result = dict(record)
    for field in fields:
        value = result.get(field)
        if not isinstance(value, str):
            continue
        try:
            result[field] = codec.decrypt(value)
        except DecryptionError as e:
            if strict:
                raise
            logger.error(
                "Failed to decrypt field %r of record id=%s: %s",
                field,
                result.get("id"),
                e,
            )
    return result


def decrypt_records(
    records: Iterable[Mapping[str, Any]],
    fields: Sequence[str] = DEFAULT_FIELDS,
    codec: Optional[MessageCodec] = None,
    strict: bool = True,
) -> List[Dict[str, Any]]:
    """Decrypt every record of an iterable (see decrypt_record)."""
    return [decrypt_record(r, fields, codec, strict) for r in records]
