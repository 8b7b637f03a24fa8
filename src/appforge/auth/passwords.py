# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Password credentials: salted PBKDF2-HMAC-SHA256.

A credential is ``<salt>.<derived_key>``, both parts base64url without
padding. The iteration count is not embedded, so hashing and verification
must agree on it.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import secrets

ITERATIONS = 100_000
SALT_BYTES = 16
KEY_BYTES = 32
SEPARATOR = "."


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64decode(text: str) -> bytes:
    padded = text + "=" * (-len(text) % 4)
    return base64.urlsafe_b64decode(padded.encode("ascii"))


def _derive(plain: str, salt: bytes, iterations: int) -> bytes:
    return hashlib.pbkdf2_hmac("sha256", plain.encode("utf-8", "surrogatepass"), salt, iterations, dklen=KEY_BYTES)


def hash_password(plain: str, *, iterations: int = ITERATIONS) -> str:
    salt = secrets.token_bytes(SALT_BYTES)
    key = _derive(plain, salt, iterations)
    return f"{_b64encode(salt)}{SEPARATOR}{_b64encode(key)}"


def verify_password(plain: str, credential: str, *, iterations: int = ITERATIONS) -> bool:
    if not credential or plain is None:
        return False
    parts = str(credential).split(SEPARATOR)
    if len(parts) != 2 or not parts[0] or not parts[1]:
        return False
    try:
        salt = _b64decode(parts[0])
        expected = _b64decode(parts[1])
    except (binascii.Error, ValueError):
        return False
    if not salt or not expected:
        return False
    return hmac.compare_digest(_derive(plain, salt, iterations), expected)
