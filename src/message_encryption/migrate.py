"""
Legacy Message Encryption CLI.

Usage:
    message-encryption-migrate [--yes] [--batch-size N]

Or run directly:
    python -m message_encryption.migrate

Setup:
    1. Set MESSAGE_ENCRYPTION_KEY (same key the application uses)
    2. Set DATABASE_URL environment variable or .env file

Only rows whose content does not start with "enc::" are touched. Safe to
re-run; already-encrypted rows are skipped.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
import time
from typing import List, Optional

import asyncpg
from dotenv import load_dotenv

from message_encryption.codec import MessageCodec
from message_encryption.errors import ConfigError, StorageError
from message_encryption.logging_config import setup_logging
from message_encryption.migration import DEFAULT_BATCH_SIZE, encrypt_legacy_messages
from message_encryption.postgres import PostgresMessageStore

logger = logging.getLogger("message_encryption.migrate")


def ask_for_confirmation() -> bool:
    """Ask on stdin before modifying any data."""
    answer = input(
        "Are you sure you want to encrypt legacy messages? "
        "This cannot be easily undone. (yes/no): "
    )
    return answer.strip().lower() in ("yes", "y")


async def run_migration(database_url: str, batch_size: int, assume_yes: bool) -> int:
    """Run the legacy message migration. Returns a process exit code."""
    codec = MessageCodec()
    try:
        codec.ensure_key()
    except ConfigError as e:
        print(f"[ERROR] Encryption key misconfigured: {e}")
        return 1

    pool = await asyncpg.create_pool(database_url)
    if pool is None:
        print("[ERROR] Failed to create connection pool")
        return 1

    try:
        store = PostgresMessageStore(pool, codec)
        pending = await store.count_legacy_messages()
        print(f"[INFO] Legacy plaintext messages: {pending}")
        if pending == 0:
            print("[OK] Nothing to migrate")
            return 0

        if not assume_yes and not ask_for_confirmation():
            print("[INFO] Aborted by user.")
            return 0

        start = time.perf_counter()
        result = await encrypt_legacy_messages(store, batch_size=batch_size)
        duration = time.perf_counter() - start
    except StorageError as e:
        logger.error("Migration aborted: %s", e)
        return 1
    finally:
        await pool.close()

    print(f"[OK] Total messages encrypted: {result.encrypted}")
    print(f"[PERF] Time: {duration * 1000:.3f}ms")
    if result.failed_ids:
        print(f"[ERROR] Failed message ids: {', '.join(map(str, result.failed_ids))}")
        return 1
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point for message-encryption-migrate command."""
    parser = argparse.ArgumentParser(description="Encrypt legacy plaintext messages.")
    parser.add_argument("--yes", action="store_true", help="skip the confirmation prompt")
    parser.add_argument("--batch-size", type=int, default=DEFAULT_BATCH_SIZE)
    args = parser.parse_args(argv)

    load_dotenv()
    setup_logging()

    database_url = os.environ.get("DATABASE_URL")
    if not database_url:
        print("[ERROR] DATABASE_URL must be set in environment or .env file")
        return 1

    if args.batch_size < 1:
        print("[ERROR] --batch-size must be positive")
        return 1

    return asyncio.run(run_migration(database_url, args.batch_size, args.yes))


if __name__ == "__main__":
    sys.exit(main())
