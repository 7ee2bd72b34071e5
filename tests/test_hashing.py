"""Tests for content fingerprints."""

from __future__ import annotations

from pathlib import Path

from ipfsvault.hashing import legacy_sha256, matches, sha256_bytes, sha256_file

HELLO_SHA256 = "2cf24dba5fb0a30e26e83b2ac5b9e29e1b161e5c1fa7425e73043362938b9824"


def test_sha256_of_hello():
    assert sha256_bytes(b"hello") == HELLO_SHA256


def test_file_and_bytes_agree(tmp_path: Path):
    data = bytes(range(256)) * 100
    path = tmp_path / "blob.bin"
    path.write_bytes(data)
    assert sha256_file(path) == sha256_bytes(data)


def test_empty_file(tmp_path: Path):
    path = tmp_path / "empty"
    path.write_bytes(b"")
    assert sha256_file(path) == sha256_bytes(b"")


def test_legacy_digest_equal_for_ascii():
    assert legacy_sha256(b"hello") == HELLO_SHA256


def test_legacy_digest_differs_for_high_bytes():
    data = bytes(range(256))
    assert legacy_sha256(data) != sha256_bytes(data)


def test_matches_accepts_both_forms():
    data = b"\xff\xfe binary"
    assert matches(data, sha256_bytes(data))
    assert matches(data, legacy_sha256(data))
    assert not matches(data, HELLO_SHA256)
