"""Unit tests for record write/read/delete/status against the in-memory store."""

import asyncio
import logging
from typing import Optional

import pytest

from kvshare.core.errors import BackendError
from kvshare.core.telemetry import get_metrics
from kvshare.models.entities import Record
from kvshare.models.results import DeleteResult, Failure, ReadResult, StatusResult, WriteResult
from kvshare.services.access_control import MAX_EXPIRY_MS, is_valid_uuid, iso_to_ms, now_ms
from kvshare.services.lifecycle import (
    RecordLimits,
    get_status,
    read_payload,
    read_record,
    remove_record,
    write_record,
)
from kvshare.services.memory_store import MemoryRecordStore

CALLER = "10.0.0.5"
KEY = "123e4567-e89b-42d3-a456-426614174000"


class SpyStore(MemoryRecordStore):
    """Memory store that records every backend call."""

    def __init__(self) -> None:
        super().__init__()
        self.calls: list[str] = []

    async def load(self, key: str) -> Optional[Record]:
        self.calls.append("get")
        return await super().load(key)

    async def set(self, key: str, record: Record, ttl_ms: int) -> None:
        self.calls.append("set")
        await super().set(key, record, ttl_ms)

    async def delete(self, key: str) -> bool:
        self.calls.append("delete")
        return await super().delete(key)


class DeleteFailsStore(MemoryRecordStore):
    async def delete(self, key: str) -> bool:
        raise BackendError("Redis delete failed: timeout", backend="memory")


class DeleteLosesRaceStore(MemoryRecordStore):
    async def delete(self, key: str) -> bool:
        await super().delete(key)
        return False


class CountFailsStore(MemoryRecordStore):
    async def count(self) -> Optional[int]:
        raise BackendError("dbsize failed", backend="memory")


def run(coro):
    return asyncio.run(coro)


def test_write_then_read_roundtrip() -> None:
    store = MemoryRecordStore()
    written = run(write_record(store, "hello", ttl_ms=60_000))
    assert isinstance(written, WriteResult)
    assert is_valid_uuid(written.key)
    assert written.ip_rule == "*.*.*.*"
    assert written.password is None

    result = run(read_record(store, written.key, None, CALLER))
    assert isinstance(result, ReadResult)
    assert result.payload == "hello"
    assert result.key == written.key
    assert result.expiry_iso == written.expiry_iso
    assert result.deleted is False
    assert run(read_payload(store, written.key, None, CALLER)) == "hello"


def test_write_uses_default_ttl_of_seven_days() -> None:
    before = now_ms()
    written = run(write_record(MemoryRecordStore(), "hello"))
    expiry = iso_to_ms(written.expiry_iso)
    assert before + 604_800_000 <= expiry <= now_ms() + 604_800_000


def test_write_with_caller_key_is_lowercased_and_overwrites() -> None:
    store = MemoryRecordStore()
    first = run(write_record(store, "v1", requested_key=KEY.upper()))
    assert first.key == KEY
    second = run(write_record(store, "v2", password="p2", requested_key=KEY))
    assert second.key == KEY
    assert run(read_payload(store, KEY, "p2", CALLER)) == "v2"
    assert run(store.count()) == 1


def test_write_with_invalid_caller_key_generates_one() -> None:
    written = run(write_record(MemoryRecordStore(), "hello", requested_key="nope"))
    assert is_valid_uuid(written.key)
    assert written.key != "nope"


@pytest.mark.parametrize(
    "kwargs,field",
    [
        ({"payload": None}, "data"),
        ({"payload": ""}, "data"),
        ({"payload": "x" * 1_048_577}, "data"),
        ({"payload": "x", "password": "p" * 129}, "password"),
        ({"payload": "x", "ip_rule": "999.*.*.*"}, "safeIP"),
        ({"payload": "x", "ttl_ms": 0}, "expiredTime"),
        ({"payload": "x", "ttl_ms": -5}, "expiredTime"),
    ],
)
def test_invalid_write_rejected_without_touching_store(kwargs: dict, field: str) -> None:
    store = SpyStore()
    result = run(write_record(store, **kwargs))
    assert isinstance(result, Failure)
    assert result.status == 400
    assert result.error_kind == "ValidationError"
    assert store.calls == []


def test_write_validation_order() -> None:
    store = SpyStore()
    # Oversized payload wins over every later problem
    result = run(write_record(store, "x" * 1_048_577, password="p" * 200, ip_rule="bad", ttl_ms=0))
    assert "Data exceeds" in result.message
    result = run(write_record(store, "x", password="p" * 200, ip_rule="bad", ttl_ms=0))
    assert "Password exceeds" in result.message
    result = run(write_record(store, "x", ip_rule="bad", ttl_ms=0))
    assert "Invalid IP rule" in result.message


def test_write_size_boundaries_accepted() -> None:
    store = MemoryRecordStore()
    result = run(write_record(store, "x" * 1_048_576, password="p" * 128))
    assert isinstance(result, WriteResult)
    assert result.password == "p" * 128


def test_custom_limits_apply() -> None:
    limits = RecordLimits(max_payload_length=4, max_password_length=2, default_ttl_ms=1000)
    assert isinstance(run(write_record(MemoryRecordStore(), "abcde", limits=limits)), Failure)
    assert isinstance(run(write_record(MemoryRecordStore(), "abcd", limits=limits)), WriteResult)


def test_backend_failure_on_write_is_500() -> None:
    class SetFailsStore(MemoryRecordStore):
        async def set(self, key, record, ttl_ms):
            raise BackendError("quota exceeded", backend="memory")

    result = run(write_record(SetFailsStore(), "hello"))
    assert isinstance(result, Failure)
    assert result.status == 500
    assert get_metrics()["backend_errors_total"] == 1


@pytest.mark.parametrize(
    "key,status",
    [(None, 400), ("", 400), ("not-a-uuid", 400), (KEY, 404)],
)
def test_read_rejections_before_access_checks(key, status: int) -> None:
    store = SpyStore()
    result = run(read_record(store, key, None, CALLER))
    assert isinstance(result, Failure)
    assert result.status == status
    if status == 400:
        assert store.calls == []


def test_read_accepts_uppercase_key() -> None:
    store = MemoryRecordStore()
    written = run(write_record(store, "hello"))
    assert run(read_payload(store, written.key.upper(), None, CALLER)) == "hello"


def test_ip_checked_before_password() -> None:
    store = MemoryRecordStore()
    written = run(write_record(store, "s3cret", password="p1", ip_rule="10.0.0.*"))

    outside = run(read_record(store, written.key, "wrong", "10.0.1.5"))
    assert outside.status == 403
    assert outside.error_kind == "Forbidden"

    wrong_password = run(read_record(store, written.key, "wrong", "10.0.0.9"))
    assert wrong_password.status == 401
    assert wrong_password.error_kind == "Unauthorized"

    missing_password = run(read_record(store, written.key, None, "10.0.0.9"))
    assert missing_password.status == 401

    ok = run(read_record(store, written.key, "p1", "10.0.0.9"))
    assert ok.payload == "s3cret"
    assert ok.password == "p1"
    assert ok.ip_rule == "10.0.0.*"
    assert get_metrics()["access_denied_total"] == 3


def test_unprotected_record_ignores_supplied_password() -> None:
    store = MemoryRecordStore()
    written = run(write_record(store, "open"))
    assert run(read_payload(store, written.key, "anything", CALLER)) == "open"


def test_read_and_delete_consumes_record() -> None:
    store = MemoryRecordStore()
    written = run(write_record(store, "once"))
    first = run(read_record(store, written.key, None, CALLER, delete_after=True))
    assert first.payload == "once"
    assert first.deleted is True
    second = run(read_record(store, written.key, None, CALLER))
    assert second.status == 404


def test_read_payload_with_delete() -> None:
    store = MemoryRecordStore()
    written = run(write_record(store, "once"))
    assert run(read_payload(store, written.key, None, CALLER, delete_after=True)) == "once"
    assert run(store.get(written.key)) is None


def test_failed_post_read_delete_still_returns_payload() -> None:
    store = DeleteFailsStore()
    written = run(write_record(store, "sticky"))
    result = run(read_record(store, written.key, None, CALLER, delete_after=True))
    assert isinstance(result, ReadResult)
    assert result.payload == "sticky"
    assert result.deleted is False
    # Record remains until its TTL
    assert run(read_payload(store, written.key, None, CALLER)) == "sticky"


def test_denied_read_does_not_delete() -> None:
    store = MemoryRecordStore()
    written = run(write_record(store, "s3cret", password="p1"))
    denied = run(read_record(store, written.key, "wrong", CALLER, delete_after=True))
    assert denied.status == 401
    assert run(store.get(written.key)) is not None


def test_expired_record_is_not_found() -> None:
    store = MemoryRecordStore()
    written = run(write_record(store, "hello", ttl_ms=1000))
    store.expire_now(written.key)
    assert run(read_record(store, written.key, None, CALLER)).status == 404
    assert run(remove_record(store, written.key, None, CALLER)).status == 404


def test_remove_record() -> None:
    store = MemoryRecordStore()
    written = run(write_record(store, "bye", password="p1", ip_rule="10.0.0.*"))
    assert run(remove_record(store, written.key, "p1", "10.0.1.1")).status == 403
    assert run(remove_record(store, written.key, "bad", CALLER)).status == 401
    assert isinstance(run(remove_record(store, written.key, "p1", CALLER)), DeleteResult)
    assert run(remove_record(store, written.key, "p1", CALLER)).status == 404
    assert get_metrics()["records_deleted_total"] == 1


def test_remove_record_lost_race_is_not_found() -> None:
    store = DeleteLosesRaceStore()
    written = run(write_record(store, "gone"))
    result = run(remove_record(store, written.key, None, CALLER))
    assert isinstance(result, Failure)
    assert result.status == 404


def test_status_counts_records() -> None:
    store = MemoryRecordStore()
    for i in range(3):
        run(write_record(store, f"r{i}"))
    status = run(get_status(store, "1.2.0"))
    assert isinstance(status, StatusResult)
    assert status.record_count == 3
    assert status.available
    assert status.version == "1.2.0"


def test_status_backend_failure() -> None:
    status = run(get_status(CountFailsStore(), "1.2.0"))
    assert isinstance(status, Failure)
    assert status.status == 500


def test_write_rejects_expiry_beyond_representable_dates() -> None:
    store = SpyStore()
    result = run(write_record(store, "x", ttl_ms=300_000_000_000_000))
    assert isinstance(result, Failure)
    assert result.status == 400
    assert "expiredTime" in result.message
    assert store.calls == []


def test_write_accepts_expiry_just_inside_date_range() -> None:
    ttl_ms = MAX_EXPIRY_MS - now_ms() - 60_000
    result = run(write_record(MemoryRecordStore(), "x", ttl_ms=ttl_ms))
    assert isinstance(result, WriteResult)
    assert result.expiry_iso.startswith("9999-12-31T")


def test_rejection_log_keeps_service_status(caplog: pytest.LogCaptureFixture) -> None:
    class UpstreamForbiddenStore(MemoryRecordStore):
        async def set(self, key, record, ttl_ms):
            raise BackendError("Authentication error", backend="cloudflare", details={"status": 403})

    caplog.set_level(logging.INFO)
    run(write_record(UpstreamForbiddenStore(), "x"))
    assert "'status': 500" in caplog.text
    assert "'status': 403" not in caplog.text
