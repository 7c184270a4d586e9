"""
Pytest configuration and fixtures for message encryption tests.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import AsyncGenerator, Dict, Iterable, List, Optional, Set

import asyncpg
import pytest
from dotenv import load_dotenv

from message_encryption import (
    ENVELOPE_PREFIX,
    KEY_ENV_VAR,
    LegacyMessage,
    MessageCodec,
    PostgresMessageStore,
    StorageError,
    reset_default_codec,
)

HEX_SECRET = "00" * 32
OTHER_SECRET = "a-completely-different-passphrase"

TEST_TABLE = "message_encryption_test_messages"


@pytest.fixture(autouse=True)
def clean_key_env(monkeypatch: pytest.MonkeyPatch):
    """Start every test without a configured key or cached default codec."""
    monkeypatch.delenv(KEY_ENV_VAR, raising=False)
    reset_default_codec()
    yield
    reset_default_codec()


@pytest.fixture
def codec() -> MessageCodec:
    """Codec with an explicit 64-char hex key."""
    return MessageCodec(HEX_SECRET)


@pytest.fixture
def other_codec() -> MessageCodec:
    """Codec with a different (passphrase) key."""
    return MessageCodec(OTHER_SECRET)


class InMemoryMessageStore:
    """Message store double exposing the calls the migration makes."""

    def __init__(self, codec: MessageCodec, rows: Optional[Dict[int, str]] = None) -> None:
        self.codec = codec
        self.rows: Dict[int, str] = dict(rows or {})
        self.fail_ids: Set[int] = set()
        self.fetch_calls: List[int] = []

    async def fetch_legacy_batch(self, after_id: int = 0, limit: int = 100) -> List[LegacyMessage]:
        self.fetch_calls.append(after_id)
        ids: Iterable[int] = sorted(
            i
            for i, content in self.rows.items()
            if i > after_id and not content.startswith(ENVELOPE_PREFIX)
        )
        return [LegacyMessage(id=i, content=self.rows[i]) for i in list(ids)[:limit]]

    async def update_content(self, message_id: int, content: str) -> bool:
        if message_id in self.fail_ids:
            raise StorageError("Failed to update message: connection reset")
        if message_id not in self.rows:
            return False
        self.rows[message_id] = self.codec.encrypt(content)
        return True


@pytest.fixture
def memory_store(codec: MessageCodec) -> InMemoryMessageStore:
    """Create an in-memory message store with a mix of rows."""
    rows = {
        1: "first legacy message",
        2: codec.encrypt("already encrypted"),
        3: "مرحباً بالعالم",
        4: "",
        5: "fifth: with colons : inside",
    }
    return InMemoryMessageStore(codec, rows)


@pytest.fixture
async def pg_pool() -> AsyncGenerator[asyncpg.Pool, None]:
    """Create a PostgreSQL connection pool for testing."""
    # Load environment from project root
    env_path = Path(__file__).parent.parent / ".env"
    load_dotenv(env_path)

    database_url = os.environ.get("DATABASE_URL")
    if not database_url:
        pytest.skip("DATABASE_URL not set, skipping PostgreSQL tests")

    pool = await asyncpg.create_pool(database_url)
    if pool is None:
        pytest.skip("Failed to create PostgreSQL connection pool")

    await pool.execute(f'DROP TABLE IF EXISTS "{TEST_TABLE}"')
    await pool.execute(
        f"""
        CREATE TABLE "{TEST_TABLE}" (
            "id" SERIAL PRIMARY KEY,
            "userId" INTEGER NOT NULL,
            "characterId" TEXT NOT NULL,
            "content" TEXT NOT NULL,
            "createdAt" TIMESTAMP(3) NOT NULL DEFAULT CURRENT_TIMESTAMP,
            "updatedAt" TIMESTAMP(3) NOT NULL
        )
        """
    )

    yield pool

    await pool.execute(f'DROP TABLE IF EXISTS "{TEST_TABLE}"')
    await pool.close()


class _TestMessageStore(PostgresMessageStore):
    table = f'"{TEST_TABLE}"'


@pytest.fixture
async def postgres_store(pg_pool: asyncpg.Pool, codec: MessageCodec) -> PostgresMessageStore:
    """Create a PostgreSQL message store bound to the test table."""
    return _TestMessageStore(pg_pool, codec)
