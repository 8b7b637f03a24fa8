# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

USER_KEY_PREFIX = "user:"


@dataclass(frozen=True)
class UserRecord:
    id: str
    email: str
    password_hash: str
    created_at: str


def normalize_email(email: str) -> str:
    return str(email or "").strip().lower()


def user_key(email: str) -> str:
    return USER_KEY_PREFIX + normalize_email(email)


def new_user(email: str, password_hash: str) -> UserRecord:
    """Build a fresh record with a random id and the current UTC time."""
    return UserRecord(
        id=uuid.uuid4().hex,
        email=normalize_email(email),
        password_hash=password_hash,
        created_at=datetime.now(timezone.utc).isoformat(),
    )


def dump_user(user: UserRecord) -> str:
    return json.dumps(
        {
            "id": user.id,
            "email": user.email,
            "passwordHash": user.password_hash,
            "createdAt": user.created_at,
        }
    )


def load_user(raw: Optional[str]) -> Optional[UserRecord]:
    if not raw:
        return None
    data = json.loads(raw)
    if not isinstance(data, dict):
        return None
    uid = str(data.get("id") or "").strip()
    email = normalize_email(data.get("email") or "")
    if not uid or not email:
        return None
    return UserRecord(
        id=uid,
        email=email,
        password_hash=str(data.get("passwordHash") or ""),
        created_at=str(data.get("createdAt") or ""),
    )
