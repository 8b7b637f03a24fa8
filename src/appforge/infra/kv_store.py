# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Key-value stores with per-key expiry.

Values are opaque strings (JSON in practice). Every backend offers the same
async ``get`` / ``put`` / ``put_if_absent`` / ``delete`` surface; an entry
whose TTL has elapsed is indistinguishable from a missing one.
"""

from __future__ import annotations

import asyncio
import logging
import os
import tempfile
import time
from pathlib import Path
from typing import Callable, Dict, Optional, Tuple

import yaml
from starlette.concurrency import run_in_threadpool

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


class KVStore:
    """Interface shared by the store backends."""

    async def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    async def put(self, key: str, value: str, *, ttl: Optional[int] = None) -> None:
        raise NotImplementedError

    async def put_if_absent(self, key: str, value: str, *, ttl: Optional[int] = None) -> bool:
        raise NotImplementedError

    async def delete(self, key: str) -> None:
        raise NotImplementedError


def _expiry(now: float, ttl: Optional[int]) -> Optional[float]:
    if ttl is None:
        return None
    if ttl <= 0:
        raise ValueError("El TTL debe ser positivo")
    return now + ttl


def _alive(expires_at: Optional[float], now: float) -> bool:
    return expires_at is None or expires_at > now


class MemoryKVStore(KVStore):
    """Process-local store. Check-and-set never yields, so it is atomic on the loop."""

    def __init__(self, *, clock: Clock = time.time) -> None:
        self._clock = clock
        self._data: Dict[str, Tuple[str, Optional[float]]] = {}

    def _live(self, key: str) -> Optional[str]:
        hit = self._data.get(key)
        if hit is None:
            return None
        value, expires_at = hit
        if not _alive(expires_at, self._clock()):
            del self._data[key]
            return None
        return value

    async def get(self, key: str) -> Optional[str]:
        return self._live(key)

    async def put(self, key: str, value: str, *, ttl: Optional[int] = None) -> None:
        self._data[key] = (value, _expiry(self._clock(), ttl))

    async def put_if_absent(self, key: str, value: str, *, ttl: Optional[int] = None) -> bool:
        if self._live(key) is not None:
            return False
        self._data[key] = (value, _expiry(self._clock(), ttl))
        return True

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def __len__(self) -> int:
        now = self._clock()
        return sum(1 for _, exp in self._data.values() if _alive(exp, now))


class FileKVStore(KVStore):
    """YAML file backend.

    The whole file is rewritten atomically (temp file + replace) on every
    mutation; expired entries are dropped at that point. File I/O runs in the
    threadpool; a single ``asyncio.Lock`` serialises writers within the process.
    """

    def __init__(self, path: Path, *, clock: Clock = time.time) -> None:
        self.path = Path(path)
        self._clock = clock
        self._lock = asyncio.Lock()

    def _read(self) -> Dict[str, dict]:
        if not self.path.exists():
            return {}
        raw = yaml.safe_load(self.path.read_text(encoding="utf-8")) or {}
        entries = raw.get("entries") if isinstance(raw, dict) else None
        return entries if isinstance(entries, dict) else {}

    def _write(self, entries: Dict[str, dict]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        doc = {"version": 1, "entries": entries}
        fd, tmp = tempfile.mkstemp(prefix=".kv-", suffix=".yml", dir=str(self.path.parent))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                yaml.safe_dump(doc, fh, sort_keys=True, allow_unicode=True)
            os.replace(tmp, self.path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise

    def _purged(self, entries: Dict[str, dict], now: float) -> Dict[str, dict]:
        out = {k: v for k, v in entries.items() if isinstance(v, dict) and _alive(v.get("expires_at"), now)}
        dropped = len(entries) - len(out)
        if dropped:
            logger.debug("Purged %d expired entries from %s", dropped, self.path)
        return out

    @staticmethod
    def _entry(value: str, expires_at: Optional[float]) -> dict:
        return {"value": value, "expires_at": expires_at}

    async def get(self, key: str) -> Optional[str]:
        hit = (await run_in_threadpool(self._read)).get(key)
        if not isinstance(hit, dict) or not _alive(hit.get("expires_at"), self._clock()):
            return None
        value = hit.get("value")
        return None if value is None else str(value)

    async def put(self, key: str, value: str, *, ttl: Optional[int] = None) -> None:
        async with self._lock:
            now = self._clock()
            entries = self._purged(await run_in_threadpool(self._read), now)
            entries[key] = self._entry(value, _expiry(now, ttl))
            await run_in_threadpool(self._write, entries)

    async def put_if_absent(self, key: str, value: str, *, ttl: Optional[int] = None) -> bool:
        async with self._lock:
            now = self._clock()
            entries = self._purged(await run_in_threadpool(self._read), now)
            if key in entries:
                return False
            entries[key] = self._entry(value, _expiry(now, ttl))
            await run_in_threadpool(self._write, entries)
            return True

    async def delete(self, key: str) -> None:
        async with self._lock:
            entries = await run_in_threadpool(self._read)
            if key not in entries:
                return
            del entries[key]
            await run_in_threadpool(self._write, self._purged(entries, self._clock()))
