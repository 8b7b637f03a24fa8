# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import hashlib
import secrets
import time
from dataclasses import dataclass
from typing import Optional

from itsdangerous import BadData, Serializer, URLSafeSerializer
from itsdangerous.encoding import base64_encode

# Plain HMAC-SHA256 over the encoded payload, keyed directly with the secret.
_SIGNER_KWARGS = {"key_derivation": "none", "digest_method": hashlib.sha256}


@dataclass(frozen=True)
class TokenClaims:
    user_id: str
    issued_at: int


class _TokenSerializer(URLSafeSerializer):
    """URL-safe serializer that never zlib-compresses, so tokens stay ``<payload>.<sig>``."""

    def dump_payload(self, obj) -> bytes:
        return base64_encode(Serializer.dump_payload(self, obj))


def _serializer(secret: str) -> URLSafeSerializer:
    if not secret:
        raise RuntimeError("Falta el secreto de firma de tokens")
    return _TokenSerializer(secret_key=secret, signer_kwargs=_SIGNER_KWARGS)


def issue_token(user_id: str, secret: str, *, issued_at: Optional[int] = None) -> str:
    iat = int(time.time()) if issued_at is None else int(issued_at)
    # jti keeps tokens issued to one user within the same second distinct.
    return _serializer(secret).dumps({"uid": str(user_id), "iat": iat, "jti": secrets.token_urlsafe(12)})


def verify_token(token: str, secret: str) -> Optional[TokenClaims]:
    if not token or not isinstance(token, str):
        return None
    if token.count(".") != 1:
        return None
    s = _serializer(secret)
    try:
        data = s.loads(token)
    except (BadData, UnicodeError):
        return None
    if not isinstance(data, dict):
        return None
    uid = str(data.get("uid") or "").strip()
    if not uid:
        return None
    try:
        iat = int(data.get("iat") or 0)
    except (TypeError, ValueError):
        return None
    return TokenClaims(user_id=uid, issued_at=iat)
