"""
One-time migration encrypting legacy plaintext messages.

Walks every message whose stored content does not start with the envelope
marker, in id order, and re-saves it through the store, which encrypts it.
Safe to re-run: encrypted rows are never selected again.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List

from .errors import CryptoError, StorageError
from .postgres import PostgresMessageStore

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE: int = 100


@dataclass
class MigrationResult:
    """Result of a legacy message migration run."""

    scanned: int = 0
    encrypted: int = 0
    failed_ids: List[int] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return len(self.failed_ids)


async def encrypt_legacy_messages(
    store: PostgresMessageStore,
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> MigrationResult:
    """
    Encrypt all messages still stored as plaintext.

    Pagination is keyset-based (id > last seen id), so a row that fails to
    update is skipped rather than fetched again forever.

    Args:
        store: Message store (its codec performs the encryption)
        batch_size: Rows fetched per batch

    Returns:
        MigrationResult with counts and the ids that failed

    Raises:
        ConfigError: If the encryption key is missing (nothing is touched)
        StorageError: If fetching a batch fails
    """
    if batch_size < 1:
        raise ValueError("batch_size must be positive")

    store.codec.ensure_key()

    result = MigrationResult()
    last_id = 0

    while True:
        batch = await store.fetch_legacy_batch(after_id=last_id, limit=batch_size)
        if not batch:
            break

        logger.info("Found %d legacy messages in this batch", len(batch))

        for message in batch:
            last_id = message.id
            result.scanned += 1
            if message.content == "":
                # empty content is never wrapped in an envelope
                continue
            try:
                if await store.update_content(message.id, message.content):
                    result.encrypted += 1
            except (StorageError, CryptoError) as e:
                logger.error("Failed to encrypt message id=%s: %s", message.id, e)
                result.failed_ids.append(message.id)

    logger.info(
        "Legacy message migration complete: %d encrypted, %d failed",
        result.encrypted,
        result.failed,
    )
    return result
