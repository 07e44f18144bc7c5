"""AES-256-GCM encryption for user-supplied platform tokens.

Encrypted values are ``base64(iv[12] | tag[16] | ciphertext)``.
"""

from __future__ import annotations

import base64
import binascii
import os
import re

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from chesstrack.errors import ConfigurationError

KEY_LENGTH = 32
IV_LENGTH = 12
TAG_LENGTH = 16
MIN_PAYLOAD_LENGTH = IV_LENGTH + TAG_LENGTH + 1
_HEX_KEY = re.compile(r"^[0-9a-fA-F]{64}$")


def decode_key(raw_key: str | None) -> bytes:
    """Decode a 64-character hex or base64 key into 32 bytes.

    Raises:
        ConfigurationError: When the key is missing or has the wrong length.
    """
    if not raw_key or not raw_key.strip():
        raise ConfigurationError("LICHESS_ENCRYPTION_KEY is not set")
    value = raw_key.strip()
    if _HEX_KEY.match(value):
        key = bytes.fromhex(value)
    else:
        try:
            key = base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ConfigurationError("LICHESS_ENCRYPTION_KEY is neither hex nor base64") from exc
    if len(key) != KEY_LENGTH:
        raise ConfigurationError("LICHESS_ENCRYPTION_KEY must decode to exactly 32 bytes")
    return key


def encrypt_token(plaintext: str, raw_key: str | None) -> str:
    """Encrypt ``plaintext`` with a fresh random IV."""
    key = decode_key(raw_key)
    iv = os.urandom(IV_LENGTH)
    sealed = AESGCM(key).encrypt(iv, plaintext.encode("utf-8"), None)
    ciphertext, tag = sealed[:-TAG_LENGTH], sealed[-TAG_LENGTH:]
    return base64.b64encode(iv + tag + ciphertext).decode("ascii")


def decrypt_token(payload: str, raw_key: str | None) -> str:
    """Decrypt a value produced by ``encrypt_token``.

    Raises:
        ConfigurationError: When the key is invalid, the payload is truncated
            or authentication fails.
    """
    key = decode_key(raw_key)
    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ConfigurationError("Encrypted token is not valid base64") from exc
    if len(data) < MIN_PAYLOAD_LENGTH:
        raise ConfigurationError("Encrypted token is too short")
    iv = data[:IV_LENGTH]
    tag = data[IV_LENGTH : IV_LENGTH + TAG_LENGTH]
    ciphertext = data[IV_LENGTH + TAG_LENGTH :]
    try:
        plaintext = AESGCM(key).decrypt(iv, ciphertext + tag, None)
    except InvalidTag as exc:
        raise ConfigurationError("Encrypted token authentication failed") from exc
    return plaintext.decode("utf-8")
