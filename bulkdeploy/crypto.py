"""
Dataset encryption in the marketplace's format.

- key: 256 random bits, base64 encoded (this string is what the SMS stores)
- ciphertext: 16-byte IV || AES-256-CBC(PKCS7(plaintext))
- checksum: "0x" + sha256(ciphertext), re-verified by workers on consumption
"""

from __future__ import annotations

import base64
import hashlib
import os

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

KEY_BYTES = 32
IV_BYTES = 16


def generate_encryption_key() -> str:
    """Fresh base64-encoded AES-256 key from the OS CSPRNG."""
    return base64.b64encode(os.urandom(KEY_BYTES)).decode("ascii")


def _decode_key(key: str) -> bytes:
    raw = base64.b64decode(key, validate=True)
    if len(raw) != KEY_BYTES:
        raise ValueError(f"encryption key must be {KEY_BYTES} bytes, got {len(raw)}")
    return raw


def encrypt(plaintext: bytes, key: str) -> bytes:
    iv = os.urandom(IV_BYTES)
    padder = padding.PKCS7(algorithms.AES.block_size).padder()
    padded = padder.update(plaintext) + padder.finalize()
    encryptor = Cipher(algorithms.AES(_decode_key(key)), modes.CBC(iv)).encryptor()
    return iv + encryptor.update(padded) + encryptor.finalize()


def decrypt(ciphertext: bytes, key: str) -> bytes:
    if len(ciphertext) < 2 * IV_BYTES:
        raise ValueError("ciphertext too short")
    iv, body = ciphertext[:IV_BYTES], ciphertext[IV_BYTES:]
    decryptor = Cipher(algorithms.AES(_decode_key(key)), modes.CBC(iv)).decryptor()
    padded = decryptor.update(body) + decryptor.finalize()
    unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
    return unpadder.update(padded) + unpadder.finalize()


def compute_checksum(ciphertext: bytes) -> str:
    return "0x" + hashlib.sha256(ciphertext).hexdigest()
