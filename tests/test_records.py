"""
Tests for record-level field encryption helpers.
"""

from __future__ import annotations

import logging

import pytest

from message_encryption import (
    KEY_ENV_VAR,
    AuthenticationError,
    decrypt_record,
    decrypt_records,
    encrypt_record,
    is_encrypted,
)

from conftest import HEX_SECRET


def test_encrypt_record_only_touches_listed_string_fields(codec):
    data = {"userId": 1, "characterId": "hana", "content": "hi there", "note": "plain"}
    result = encrypt_record(data, codec=codec)

    assert result is not data
    assert data["content"] == "hi there"
    assert is_encrypted(result["content"])
    assert result["note"] == "plain"
    assert result["characterId"] == "hana"
    assert codec.decrypt(result["content"]) == "hi there"


def test_encrypt_record_leaves_missing_and_non_string_values(codec):
    assert encrypt_record(None, codec=codec) is None
    assert encrypt_record({"id": 1}, codec=codec) == {"id": 1}
    assert encrypt_record({"content": None}, codec=codec) == {"content": None}
    assert encrypt_record({"content": ""}, codec=codec) == {"content": ""}


def test_multiple_fields(codec):
    data = {"content": "a", "summary": "b"}
    encrypted = encrypt_record(data, fields=("content", "summary"), codec=codec)
    assert is_encrypted(encrypted["content"]) and is_encrypted(encrypted["summary"])
    assert decrypt_record(encrypted, fields=("content", "summary"), codec=codec) == data


def test_decrypt_record_handles_legacy_rows(codec):
    record = {"id": 3, "content": "written before encryption"}
    assert decrypt_record(record, codec=codec) == record


def test_decrypt_record_strict_raises(codec, other_codec):
    record = {"id": 7, "content": other_codec.encrypt("secret")}
    with pytest.raises(AuthenticationError):
        decrypt_record(record, codec=codec)


def test_decrypt_record_non_strict_keeps_stored_value(codec, other_codec, caplog):
    stored = other_codec.encrypt("very private words")
    record = {"id": 7, "content": stored}

    with caplog.at_level(logging.ERROR, logger="message_encryption.records"):
        result = decrypt_record(record, codec=codec, strict=False)

    assert result["content"] == stored
    assert "id=7" in caplog.text
    assert "very private words" not in caplog.text


def test_decrypt_records_uses_default_codec(monkeypatch, codec):
    monkeypatch.setenv(KEY_ENV_VAR, HEX_SECRET)
    rows = [
        {"id": 1, "content": codec.encrypt("one")},
        {"id": 2, "content": "two"},
    ]
    assert [r["content"] for r in decrypt_records(rows)] == ["one", "two"]
