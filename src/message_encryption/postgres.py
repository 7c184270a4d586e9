"""
PostgreSQL message store with transparent content encryption.

This module provides:
- PostgresMessageStore: asyncpg-backed access to the "Message" table
- StoredMessage: Message row with decrypted content
- LegacyMessage: Raw row whose content is still plaintext at rest

Every write encrypts ``content`` with the codec; every read decrypts it.
Rows written before encryption was introduced are returned unchanged by the
codec, and can be converted with ``message_encryption.migration``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

import asyncpg

from .codec import MessageCodec, get_default_codec
from .envelope import ENVELOPE_PREFIX
from .errors import StorageError


# =============================================================================
# Data Classes
# =============================================================================


@dataclass
class StoredMessage:
    """Chat message with content decrypted for use in memory."""

    id: int
    user_id: int
    character_id: str
    content: str
    created_at: datetime
    updated_at: datetime


@dataclass
class LegacyMessage:
    """Raw message row whose content does not carry the envelope marker."""

    id: int
    content: str


# =============================================================================
# PostgreSQL Store
# =============================================================================


class PostgresMessageStore:
    """
    PostgreSQL store for chat messages.

    Content is encrypted before it reaches the database and decrypted after
    it is read. Database errors surface as StorageError; decryption errors
    propagate unchanged.
    """

    table: str = '"Message"'

    def __init__(
        self,
        pool: asyncpg.Pool,
        codec: Optional[MessageCodec] = None,
    ) -> None:
        """
        Initialize PostgreSQL storage.

        Args:
            pool: asyncpg connection pool
            codec: Codec for content (default codec when None)
        """
        self._pool = pool
        self._codec = codec or get_default_codec()

    @property
    def pool(self) -> asyncpg.Pool:
        """Get the connection pool."""
        return self._pool

    @property
    def codec(self) -> MessageCodec:
        return self._codec

    async def create_message(
        self, user_id: int, character_id: str, content: str
    ) -> StoredMessage:
        """
        Insert a new message, encrypting its content.

        Args:
            user_id: Owning user id
            character_id: Character the conversation is with
            content: Plaintext message content

        Returns:
            The stored message (plaintext content)
        """
        encrypted = self._codec.encrypt(content)
        query = f"""
            INSERT INTO {self.table} ("userId", "characterId", "content", "createdAt", "updatedAt")
            VALUES ($1, $2, $3, CURRENT_TIMESTAMP, CURRENT_TIMESTAMP)
            RETURNING "id", "userId", "characterId", "content", "createdAt", "updatedAt"
        """
        try:
            row = await self._pool.fetchrow(query, user_id, character_id, encrypted)
        except Exception as e:
            raise StorageError(f"Failed to create message: {e}")
        return self._row_to_message(row)

    async def get_message(self, message_id: int) -> Optional[StoredMessage]:
        """
        Get a message by id.

        Returns:
            StoredMessage if found, None otherwise
        """
        query = f"""
            SELECT "id", "userId", "characterId", "content", "createdAt", "updatedAt"
            FROM {self.table}
            WHERE "id" = $1
        """
        try:
            row = await self._pool.fetchrow(query, message_id)
        except Exception as e:
            raise StorageError(f"Failed to get message: {e}")
        if row is None:
            return None
        return self._row_to_message(row)

    async def list_messages(
        self,
        user_id: int,
        character_id: Optional[str] = None,
        limit: int = 50,
    ) -> List[StoredMessage]:
        """
        List a user's messages, oldest first.

        Args:
            user_id: Owning user id
            character_id: Restrict to one character when given
            limit: Maximum number of messages
        """
        query = f"""
            SELECT "id", "userId", "characterId", "content", "createdAt", "updatedAt"
            FROM {self.table}
            WHERE "userId" = $1 AND ($2::TEXT IS NULL OR "characterId" = $2)
            ORDER BY "createdAt" ASC, "id" ASC
            LIMIT $3
        """
        try:
            rows = await self._pool.fetch(query, user_id, character_id, limit)
        except Exception as e:
            raise StorageError(f"Failed to list messages: {e}")
        return [self._row_to_message(row) for row in rows]

    async def update_content(self, message_id: int, content: str) -> bool:
        """
        Replace a message's content, encrypting it.

        Returns:
            True if a row was updated, False if not found
        """
        encrypted = self._codec.encrypt(content)
        query = f"""
            UPDATE {self.table}
            SET "content" = $2, "updatedAt" = CURRENT_TIMESTAMP
            WHERE "id" = $1
        """
        try:
            status = await self._pool.execute(query, message_id, encrypted)
        except Exception as e:
            raise StorageError(f"Failed to update message: {e}")
        return _affected_rows(status) > 0

    async def delete_message(self, message_id: int) -> bool:
        """
        Delete a message.

        Returns:
            True if deleted, False if not found
        """
        query = f'DELETE FROM {self.table} WHERE "id" = $1'
        try:
            status = await self._pool.execute(query, message_id)
        except Exception as e:
            raise StorageError(f"Failed to delete message: {e}")
        return _affected_rows(status) > 0

    async def count_legacy_messages(self) -> int:
        """Count messages whose content is still plaintext at rest."""
        query = f"""
            SELECT count(*) AS count
            FROM {self.table}
            WHERE "content" NOT LIKE $1
        """
        try:
            row = await self._pool.fetchrow(query, ENVELOPE_PREFIX + "%")
        except Exception as e:
            raise StorageError(f"Failed to count legacy messages: {e}")
        return row["count"] if row else 0

    async def fetch_legacy_batch(
        self, after_id: int = 0, limit: int = 100
    ) -> List[LegacyMessage]:
        """
        Get a batch of plaintext-at-rest messages with id > after_id.

        Rows are returned raw (no decryption), ordered by id.
        """
        query = f"""
            SELECT "id", "content"
            FROM {self.table}
            WHERE "id" > $1 AND "content" NOT LIKE $2
            ORDER BY "id" ASC
            LIMIT $3
        """
        try:
            rows = await self._pool.fetch(query, after_id, ENVELOPE_PREFIX + "%", limit)
        except Exception as e:
            raise StorageError(f"Failed to get legacy message batch: {e}")
        return [LegacyMessage(id=row["id"], content=row["content"]) for row in rows]

    def _row_to_message(self, row: asyncpg.Record) -> StoredMessage:
        """Convert database row to StoredMessage, decrypting content."""
        return StoredMessage(
            id=row["id"],
            user_id=row["userId"],
            character_id=row["characterId"],
            content=self._codec.decrypt(row["content"]),
            created_at=row["createdAt"],
            updated_at=row["updatedAt"],
        )


def _affected_rows(status: str) -> int:
    """Parse the row count from an asyncpg command status ("UPDATE 1")."""
    try:
        return int(status.rsplit(" ", 1)[-1])
    except (AttributeError, ValueError):
        return 0
