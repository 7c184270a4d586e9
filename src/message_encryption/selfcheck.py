"""
Message Encryption Self-Check CLI.

Usage:
    message-encryption-check [--iterations N]

Or run directly:
    python -m message_encryption.selfcheck

Requires MESSAGE_ENCRYPTION_KEY in the environment or a .env file (any
string; it is turned into a 32-byte key via SHA-256 if it is not a raw
hex or base64 key).
"""

from __future__ import annotations

import argparse
import os
import sys
import time
from typing import List, Optional

from dotenv import load_dotenv

from message_encryption.codec import MessageCodec
from message_encryption.errors import ConfigError, DecryptionError
from message_encryption.keys import KEY_ENV_VAR, derive_key

SAMPLE_MESSAGE = "This is a secret test message with Arabic: مرحباً بالعالم"
LEGACY_MESSAGE = "legacy-plain-text-message"


def run_checks(codec: MessageCodec, iterations: int = 1000) -> bool:
    """Run the sanity checks, printing results. Returns True if all pass."""
    ok = True

    def check(label: str, passed: bool) -> None:
        nonlocal ok
        if passed:
            print(f"[OK] {label}")
        else:
            print(f"[FAIL] {label}")
            ok = False

    encrypted = codec.encrypt(SAMPLE_MESSAGE)
    print(f"[INFO] Envelope sample (truncated): {encrypted[:60]}...")

    check("Round-trip decrypt equals original", codec.decrypt(encrypted) == SAMPLE_MESSAGE)
    check("Encrypting twice yields different envelopes", codec.encrypt(SAMPLE_MESSAGE) != encrypted)
    check(
        "Legacy plaintext passes through decrypt unchanged",
        codec.decrypt(LEGACY_MESSAGE) == LEGACY_MESSAGE,
    )
    check("Empty string passes through", codec.encrypt("") == "" and codec.decrypt("") == "")

    tampered = encrypted[:-1] + ("0" if encrypted[-1] != "0" else "1")
    try:
        codec.decrypt(tampered)
        check("Tampered envelope is rejected", False)
    except DecryptionError:
        check("Tampered envelope is rejected", True)

    encrypt_start = time.perf_counter()
    envelopes: List[str] = [codec.encrypt(SAMPLE_MESSAGE) for _ in range(iterations)]
    encrypt_duration = time.perf_counter() - encrypt_start

    decrypt_start = time.perf_counter()
    for envelope in envelopes:
        codec.decrypt(envelope)
    decrypt_duration = time.perf_counter() - decrypt_start

    print(
        f"[PERF] Encryption: {encrypt_duration * 1000 / iterations:.3f}ms per message "
        f"({iterations / encrypt_duration:.2f} ops/sec)"
    )
    print(
        f"[PERF] Decryption: {decrypt_duration * 1000 / iterations:.3f}ms per message "
        f"({iterations / decrypt_duration:.2f} ops/sec)"
    )
    return ok


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point for message-encryption-check command."""
    parser = argparse.ArgumentParser(description="Sanity-check message encryption.")
    parser.add_argument("--iterations", type=int, default=1000)
    args = parser.parse_args(argv)

    print("=== Message Encryption Self-Check ===\n")

    load_dotenv()

    secret = os.environ.get(KEY_ENV_VAR)
    print(f"[INFO] {KEY_ENV_VAR} set? {bool(secret)}")
    try:
        _key, rule = derive_key(secret)
    except ConfigError as e:
        print(f"[ERROR] {e}")
        return 1
    print(f"[INFO] Key resolution rule: {rule}")

    passed = run_checks(MessageCodec(secret), max(1, args.iterations))
    print("\nSelf-check " + ("passed" if passed else "FAILED"))
    return 0 if passed else 1


if __name__ == "__main__":
    sys.exit(main())
