# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from appforge.auth.sessions import DEFAULT_SESSION_TTL_SECONDS, CredentialSessionManager
from appforge.infra.kv_store import FileKVStore, KVStore, MemoryKVStore


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in {"1", "true", "yes", "y"}


@dataclass(frozen=True)
class Settings:
    secret_key: str
    session_ttl: int
    store_path: Optional[Path]
    min_password_length: int
    host: str
    port: int
    reload: bool
    log_level: str


def load_settings() -> Settings:
    store_path = os.getenv("FORGE_STORE_PATH", "").strip()
    return Settings(
        secret_key=os.getenv("FORGE_SECRET_KEY") or os.getenv("SECRET_KEY") or "",
        session_ttl=int(os.getenv("FORGE_SESSION_TTL", str(DEFAULT_SESSION_TTL_SECONDS))),
        store_path=Path(store_path).resolve() if store_path else None,
        min_password_length=int(os.getenv("FORGE_MIN_PASSWORD_LENGTH", "8")),
        host=os.getenv("FORGE_HOST", "0.0.0.0"),
        port=int(os.getenv("FORGE_PORT", "8000")),
        reload=_flag("FORGE_RELOAD"),
        log_level=os.getenv("FORGE_LOG_LEVEL", "INFO").upper(),
    )


def build_store(settings: Settings) -> KVStore:
    if settings.store_path:
        return FileKVStore(settings.store_path)
    return MemoryKVStore()


def build_manager(settings: Settings) -> CredentialSessionManager:
    if not settings.secret_key:
        raise RuntimeError("Falta FORGE_SECRET_KEY (o SECRET_KEY) en entorno")
    return CredentialSessionManager(
        build_store(settings),
        settings.secret_key,
        session_ttl=settings.session_ttl,
    )
