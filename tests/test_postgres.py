"""
Tests for the PostgreSQL message store.

Tests using the ``postgres_store`` fixture need DATABASE_URL and are skipped
otherwise; the rest run against a stub pool.
"""

from __future__ import annotations

import pytest

from message_encryption import (
    AuthenticationError,
    PostgresMessageStore,
    StorageError,
    encrypt_legacy_messages,
    is_encrypted,
)
from message_encryption.postgres import _affected_rows

from conftest import TEST_TABLE


class _FailingPool:
    async def fetchrow(self, *args, **kwargs):
        raise OSError("connection refused")

    async def fetch(self, *args, **kwargs):
        raise OSError("connection refused")

    async def execute(self, *args, **kwargs):
        raise OSError("connection refused")


class _RecordingPool:
    def __init__(self):
        self.calls = []

    async def execute(self, query, *args):
        self.calls.append((query, args))
        return "UPDATE 1"


@pytest.mark.parametrize(
    "status,expected",
    [("UPDATE 1", 1), ("DELETE 0", 0), ("INSERT 0 3", 3), ("", 0), (None, 0)],
)
def test_affected_rows(status, expected):
    assert _affected_rows(status) == expected


async def test_database_errors_are_wrapped(codec):
    store = PostgresMessageStore(_FailingPool(), codec)

    with pytest.raises(StorageError, match="Failed to get message"):
        await store.get_message(1)
    with pytest.raises(StorageError, match="Failed to list messages"):
        await store.list_messages(1)
    with pytest.raises(StorageError, match="Failed to update message"):
        await store.update_content(1, "x")
    with pytest.raises(StorageError, match="Failed to get legacy message batch"):
        await store.fetch_legacy_batch()


async def test_update_sends_only_ciphertext(codec):
    pool = _RecordingPool()
    store = PostgresMessageStore(pool, codec)

    assert await store.update_content(9, "do not store me in clear")

    _query, args = pool.calls[0]
    assert args[0] == 9
    assert is_encrypted(args[1])
    assert "do not store me in clear" not in args[1]
    assert codec.decrypt(args[1]) == "do not store me in clear"


# =============================================================================
# Live database
# =============================================================================


async def test_create_and_read_back(postgres_store, pg_pool):
    created = await postgres_store.create_message(1, "hana", "good morning")
    assert created.content == "good morning"

    raw = await pg_pool.fetchval(
        f'SELECT "content" FROM "{TEST_TABLE}" WHERE "id" = $1', created.id
    )
    assert is_encrypted(raw)

    loaded = await postgres_store.get_message(created.id)
    assert loaded is not None
    assert loaded.content == "good morning"
    assert loaded.user_id == 1
    assert loaded.character_id == "hana"


async def test_get_missing_message(postgres_store):
    assert await postgres_store.get_message(999_999) is None


async def test_list_messages_mixes_legacy_and_encrypted(postgres_store, pg_pool):
    await pg_pool.execute(
        f'INSERT INTO "{TEST_TABLE}" ("userId", "characterId", "content", "updatedAt") '
        "VALUES ($1, $2, $3, now())",
        5,
        "hana",
        "legacy row",
    )
    await postgres_store.create_message(5, "hana", "encrypted row")
    await postgres_store.create_message(5, "other", "elsewhere")

    contents = [m.content for m in await postgres_store.list_messages(5, "hana")]
    assert contents == ["legacy row", "encrypted row"]
    assert len(await postgres_store.list_messages(5)) == 3


async def test_update_and_delete(postgres_store):
    created = await postgres_store.create_message(2, "hana", "before")

    assert await postgres_store.update_content(created.id, "after")
    assert (await postgres_store.get_message(created.id)).content == "after"

    assert await postgres_store.delete_message(created.id)
    assert not await postgres_store.delete_message(created.id)
    assert not await postgres_store.update_content(created.id, "gone")


async def test_wrong_key_read_propagates(postgres_store, other_codec):
    created = await postgres_store.create_message(3, "hana", "secret")
    foreign = type(postgres_store)(postgres_store.pool, other_codec)

    with pytest.raises(AuthenticationError):
        await foreign.get_message(created.id)


async def test_migration_end_to_end(postgres_store, pg_pool):
    for text in ("one", "two", "three"):
        await pg_pool.execute(
            f'INSERT INTO "{TEST_TABLE}" ("userId", "characterId", "content", "updatedAt") '
            "VALUES (7, 'hana', $1, now())",
            text,
        )
    await postgres_store.create_message(7, "hana", "four")

    assert await postgres_store.count_legacy_messages() == 3

    result = await encrypt_legacy_messages(postgres_store, batch_size=2)

    assert result.encrypted == 3
    assert await postgres_store.count_legacy_messages() == 0
    contents = [m.content for m in await postgres_store.list_messages(7)]
    assert contents == ["one", "two", "three", "four"]
