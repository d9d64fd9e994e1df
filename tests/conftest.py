"""Pytest configuration and shared fixtures."""

import os

import pytest
from fastapi.testclient import TestClient
from unittest.mock import AsyncMock, MagicMock

os.environ.setdefault("LOG_FORMAT", "readable")
os.environ["STORAGE_BACKEND"] = "memory"
os.environ.pop("GCP_PROJECT_ID", None)


@pytest.fixture(autouse=True)
def _fresh_state():
    """Settings and counters are process-wide; reset them around every test."""
    from kvshare.core.config import get_settings
    from kvshare.core.telemetry import reset_metrics

    get_settings.cache_clear()
    reset_metrics()
    yield
    get_settings.cache_clear()


@pytest.fixture
def memory_store():
    from kvshare.services.memory_store import MemoryRecordStore

    return MemoryRecordStore()


@pytest.fixture
def client() -> TestClient:
    """FastAPI test client; the lifespan builds a fresh in-memory store."""
    from kvshare.main import app

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def redis_mock() -> MagicMock:
    """Async Redis client double backed by a dict."""
    data: dict[str, str] = {}
    client = MagicMock()

    async def get(key):
        return data.get(key)

    async def set(key, value, ex=None):
        data[key] = value
        return True

    async def delete(key):
        return 1 if data.pop(key, None) is not None else 0

    async def dbsize():
        return len(data)

    async def scan_iter(count=None):
        for key in list(data):
            yield key

    client.get = AsyncMock(side_effect=get)
    client.set = AsyncMock(side_effect=set)
    client.delete = AsyncMock(side_effect=delete)
    client.dbsize = AsyncMock(side_effect=dbsize)
    client.scan_iter = scan_iter
    client.aclose = AsyncMock()
    client.data = data
    return client


def make_firestore_mock(store: dict[str, dict]) -> MagicMock:
    """Return a mock Firestore client that stores docs in `store`."""
    client = MagicMock()

    def collection(name: str):
        col = MagicMock()

        def document(doc_id: str):
            doc_ref = MagicMock()

            def set(data: dict) -> None:
                store[doc_id] = data

            def get() -> MagicMock:
                result = MagicMock()
                result.exists = doc_id in store
                result.to_dict.return_value = store.get(doc_id)
                return result

            def delete() -> None:
                store.pop(doc_id, None)

            doc_ref.set = set
            doc_ref.get = get
            doc_ref.delete = delete
            return doc_ref

        def count(alias: str = "count"):
            query = MagicMock()
            aggregation = MagicMock()
            aggregation.alias = alias
            aggregation.value = len(store)
            query.get = lambda: [[aggregation]]
            return query

        col.document = document
        col.count = count
        return col

    client.collection = collection
    return client


@pytest.fixture
def firestore_docs() -> dict[str, dict]:
    return {}


@pytest.fixture
def firestore_mock(firestore_docs: dict[str, dict]) -> MagicMock:
    return make_firestore_mock(firestore_docs)
