"""In-memory record store (non-persistent, single process)."""

from __future__ import annotations

import time
from dataclasses import dataclass
from threading import Lock
from typing import Optional

from kvshare.models.entities import Record
from kvshare.services.base_store import BaseRecordStore, ttl_ms_to_seconds


@dataclass
class _Entry:
    record: Record
    expires_at: float  # physical expiry, epoch seconds


class MemoryRecordStore(BaseRecordStore):
    """Dict-backed store with per-key expiry, for local development and tests."""

    name = "memory"

    def __init__(self) -> None:
        self._entries: dict[str, _Entry] = {}
        self._lock = Lock()

    def _purge_expired(self, now: float) -> None:
        expired = [k for k, e in self._entries.items() if e.expires_at <= now]
        for k in expired:
            del self._entries[k]

    async def load(self, key: str) -> Optional[Record]:
        now = time.time()
        with self._lock:
            entry = self._entries.get(key)
            if not entry:
                return None
            if entry.expires_at <= now:
                self._entries.pop(key, None)
                return None
            return entry.record

    async def set(self, key: str, record: Record, ttl_ms: int) -> None:
        expires_at = time.time() + ttl_ms_to_seconds(ttl_ms)
        with self._lock:
            self._entries[key] = _Entry(record=record, expires_at=expires_at)

    async def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    async def count(self) -> Optional[int]:
        with self._lock:
            self._purge_expired(time.time())
            return len(self._entries)

    def expire_now(self, key: str) -> None:
        """Force physical expiry of a key, simulating a backend TTL sweep. Test helper."""
        with self._lock:
            entry = self._entries.get(key)
            if entry:
                entry.expires_at = 0.0
