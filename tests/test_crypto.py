"""Tests for dataset encryption and checksums."""

from __future__ import annotations

import base64
import hashlib

import pytest

from bulkdeploy.crypto import IV_BYTES, compute_checksum, decrypt, encrypt, generate_encryption_key


def test_generated_key_is_256_bits_base64():
    raw = base64.b64decode(generate_encryption_key(), validate=True)
    assert len(raw) == 32


def test_generated_keys_are_unique():
    assert len({generate_encryption_key() for _ in range(20)}) == 20


def test_decrypt_recovers_plaintext():
    key = generate_encryption_key()
    plaintext = b"test7 - 2024-01-01T00:00:00+00:00"
    assert decrypt(encrypt(plaintext, key), key) == plaintext


def test_ciphertext_is_iv_prefixed_and_block_aligned():
    ciphertext = encrypt(b"x" * 20, generate_encryption_key())
    assert (len(ciphertext) - IV_BYTES) % 16 == 0
    assert len(ciphertext) == IV_BYTES + 32


def test_same_plaintext_encrypts_differently():
    key = generate_encryption_key()
    assert encrypt(b"same", key) != encrypt(b"same", key)


def test_empty_plaintext_round_trips():
    key = generate_encryption_key()
    assert decrypt(encrypt(b"", key), key) == b""


def test_wrong_key_length_rejected():
    short = base64.b64encode(b"\x00" * 16).decode()
    with pytest.raises(ValueError):
        encrypt(b"data", short)


def test_truncated_ciphertext_rejected():
    with pytest.raises(ValueError):
        decrypt(b"\x00" * 20, generate_encryption_key())


def test_checksum_is_prefixed_sha256():
    data = b"ciphertext bytes"
    assert compute_checksum(data) == "0x" + hashlib.sha256(data).hexdigest()
    assert compute_checksum(data) == compute_checksum(data)
    assert len(compute_checksum(data)) == 66
