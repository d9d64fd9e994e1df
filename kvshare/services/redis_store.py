"""Redis record store (Vercel KV, Upstash, self-hosted Redis)."""

from typing import Any, AsyncIterator, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError, ResponseError

from kvshare.core.errors import BackendError
from kvshare.core.logging import structured_log
from kvshare.models.entities import Record
from kvshare.services.base_store import BaseRecordStore, ttl_ms_to_seconds


def get_redis_client(url: str, socket_timeout: float = 5.0) -> redis.Redis:
    """Return an asyncio Redis client; connections are pooled and safe to share."""
    return redis.from_url(
        url,
        decode_responses=True,
        socket_timeout=socket_timeout,
        socket_connect_timeout=socket_timeout,
    )


class RedisRecordStore(BaseRecordStore):
    """Stores each record as JSON text under its key with SET ... EX."""

    name = "redis"

    def __init__(self, client: Any) -> None:
        self.client = client

    def _error(self, operation: str, exc: Exception) -> BackendError:
        return BackendError(
            f"Redis {operation} failed: {exc}",
            backend=self.name,
            details={"operation": operation, "type": type(exc).__name__},
        )

    async def load(self, key: str) -> Optional[Record]:
        try:
            raw = await self.client.get(key)
        except RedisError as exc:
            raise self._error("get", exc) from exc
        if raw is None:
            return None
        try:
            return Record.from_json(raw)
        except ValueError as exc:
            raise BackendError(
                f"Stored value under {key} is not a record",
                backend=self.name,
                details={"operation": "decode"},
            ) from exc

    async def set(self, key: str, record: Record, ttl_ms: int) -> None:
        try:
            await self.client.set(key, record.to_json(), ex=ttl_ms_to_seconds(ttl_ms))
        except RedisError as exc:
            raise self._error("set", exc) from exc

    async def delete(self, key: str) -> bool:
        try:
            removed = await self.client.delete(key)
        except RedisError as exc:
            raise self._error("delete", exc) from exc
        return int(removed or 0) == 1

    async def count(self) -> Optional[int]:
        try:
            return int(await self.client.dbsize())
        except ResponseError as exc:
            # Some managed Redis offerings disable DBSIZE
            structured_log(
                "WARNING",
                "Redis refused DBSIZE; record count unavailable",
                operation="store.count",
                error={"type": type(exc).__name__, "message": str(exc)},
            )
            return None
        except RedisError as exc:
            raise self._error("dbsize", exc) from exc

    async def scan_keys(self, batch: int = 100) -> AsyncIterator[str]:
        """Iterate over every key with SCAN (used by the offline migration)."""
        try:
            async for key in self.client.scan_iter(count=batch):
                yield key
        except RedisError as exc:
            raise self._error("scan", exc) from exc

    async def aclose(self) -> None:
        await self.client.aclose()
