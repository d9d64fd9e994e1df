"""Firestore record store: one document per key in a records collection."""

import asyncio
from datetime import UTC, datetime, timedelta
from typing import Any, Optional

from google.api_core import exceptions as gcp_exceptions
from google.cloud import firestore  # type: ignore

from kvshare.core.errors import BackendError
from kvshare.models.entities import Record
from kvshare.services.base_store import BaseRecordStore, ttl_ms_to_seconds

# Field a Firestore TTL policy should be configured on
EXPIRE_AT_FIELD = "expireAt"


def get_firestore_client(project_id: Optional[str] = None):  # type: ignore
    """Return Firestore client."""
    if project_id:
        return firestore.Client(project=project_id)
    return firestore.Client()


def _expire_at(ttl_ms: int) -> datetime:
    try:
        return datetime.now(UTC) + timedelta(seconds=ttl_ms_to_seconds(ttl_ms))
    except OverflowError:
        return datetime.max.replace(tzinfo=UTC)


class FirestoreRecordStore(BaseRecordStore):
    """Document store whose TTL sweep is lazy (may lag by hours).

    Logical expiry in BaseRecordStore.get keeps reads exact in the meantime.
    """

    name = "firestore"

    def __init__(self, client: Any, collection: str) -> None:
        self.client = client
        self.collection = collection

    def _ref(self, key: str):
        return self.client.collection(self.collection).document(key)

    async def _call(self, operation: str, fn, *args) -> Any:
        # The sync client blocks, so keep it off the event loop
        try:
            return await asyncio.to_thread(fn, *args)
        except gcp_exceptions.GoogleAPIError as exc:
            raise BackendError(
                f"Firestore {operation} failed: {exc}",
                backend=self.name,
                details={"operation": operation, "type": type(exc).__name__},
            ) from exc

    async def load(self, key: str) -> Optional[Record]:
        snap = await self._call("get", self._ref(key).get)
        if not snap or not snap.exists:
            return None
        try:
            return Record.from_store_dict(snap.to_dict() or {})
        except (ValueError, TypeError) as exc:
            raise BackendError(
                f"Stored document {key} is not a record",
                backend=self.name,
                details={"operation": "decode"},
            ) from exc

    async def set(self, key: str, record: Record, ttl_ms: int) -> None:
        doc = record.to_store_dict()
        doc[EXPIRE_AT_FIELD] = _expire_at(ttl_ms)
        await self._call("set", self._ref(key).set, doc)

    async def delete(self, key: str) -> bool:
        # Firestore deletes are idempotent and report nothing
        await self._call("delete", self._ref(key).delete)
        return True

    async def count(self) -> Optional[int]:
        query = self.client.collection(self.collection).count(alias="records")
        results = await self._call("count", query.get)
        for result in results or []:
            for aggregation in result:
                if aggregation.alias == "records":
                    return int(aggregation.value)
        return None

    async def aclose(self) -> None:
        await asyncio.to_thread(self.client.close)
