"""Record lifecycle: write -> read / read-and-delete / delete, plus store status.

Validation order is fixed so that malformed or unauthorized requests never
reach the store and never reveal which later check would have failed:
  write:  payload present -> payload size -> password length -> IP rule -> TTL
  read:   key present -> key format -> exists -> caller IP -> password
  delete: same as read, then delete

Every operation returns a result value (or Failure) instead of raising.
Read-and-delete is a plain read followed by a separate delete, so a
concurrent reader can still observe the record between the two steps.
"""

import time
from dataclasses import dataclass
from typing import Optional, Union

from kvshare.core.config import Settings
from kvshare.core.errors import (
    ForbiddenError,
    KVShareError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from kvshare.core.logging import structured_log
from kvshare.core.telemetry import (
    record_access_denied,
    record_backend_error,
    record_deleted,
    record_read,
    record_written,
    span,
)
from kvshare.models.entities import UNRESTRICTED_IP_RULE, Record
from kvshare.models.results import (
    DeleteOutcome,
    DeleteResult,
    Failure,
    PayloadOutcome,
    ReadOutcome,
    ReadResult,
    StatusResult,
    WriteOutcome,
    WriteResult,
)
from kvshare.services.access_control import (
    DEFAULT_TTL_MS,
    MAX_PASSWORD_LENGTH,
    MAX_PAYLOAD_LENGTH,
    compute_expiry_ms,
    expiry_within_range,
    ip_matches,
    is_valid_ip_rule,
    is_valid_uuid,
    ms_to_iso,
    normalize_uuid,
    now_ms,
    password_satisfied,
    password_within_limit,
    payload_within_limit,
    resolve_key,
)
from kvshare.services.base_store import BaseRecordStore


@dataclass(frozen=True)
class RecordLimits:
    max_payload_length: int = MAX_PAYLOAD_LENGTH
    max_password_length: int = MAX_PASSWORD_LENGTH
    default_ttl_ms: int = DEFAULT_TTL_MS

    @classmethod
    def from_settings(cls, settings: Settings) -> "RecordLimits":
        return cls(
            max_payload_length=settings.max_payload_length,
            max_password_length=settings.max_password_length,
            default_ttl_ms=settings.default_ttl_ms,
        )


DEFAULT_LIMITS = RecordLimits()


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000


def _fail(operation: str, exc: KVShareError, key: Optional[str] = None) -> Failure:
    if exc.status_code >= 500:
        record_backend_error()
        level = "ERROR"
    else:
        if exc.status_code in (401, 403):
            record_access_denied()
        level = "WARNING"
    structured_log(
        level,
        f"{operation} rejected: {exc.message}",
        key=key,
        operation=operation,
        error={**exc.details, "type": exc.error_code, "status": exc.status_code},
    )
    return Failure.from_error(exc)


# --- Write ---
def _validate_write(
    payload: Optional[str],
    password: Optional[str],
    ip_rule: Optional[str],
    ttl_ms: int,
    written_at_ms: int,
    limits: RecordLimits,
) -> None:
    if not payload:
        raise ValidationError("Missing data field", field="data")
    if not payload_within_limit(payload, limits.max_payload_length):
        raise ValidationError(
            f"Data exceeds the {limits.max_payload_length} character limit", field="data"
        )
    if password and not password_within_limit(password, limits.max_password_length):
        raise ValidationError(
            f"Password exceeds the {limits.max_password_length} character limit", field="password"
        )
    if ip_rule and not is_valid_ip_rule(ip_rule):
        raise ValidationError("Invalid IP rule, valid example: 1.2-3.*.4", field="safeIP")
    if ttl_ms <= 0:
        raise ValidationError("expiredTime must be a positive number of milliseconds", field="expiredTime")
    if not expiry_within_range(compute_expiry_ms(ttl_ms, written_at_ms)):
        raise ValidationError("expiredTime is too far in the future", field="expiredTime")


async def write_record(
    store: BaseRecordStore,
    payload: Optional[str],
    password: Optional[str] = None,
    ip_rule: Optional[str] = None,
    ttl_ms: Optional[int] = None,
    requested_key: Optional[str] = None,
    *,
    limits: RecordLimits = DEFAULT_LIMITS,
) -> WriteOutcome:
    """Validate and persist a record; a valid requested_key overwrites in place."""
    started = time.perf_counter()
    effective_ttl = limits.default_ttl_ms if ttl_ms is None else ttl_ms
    written_at = now_ms()
    key: Optional[str] = None
    with span("record.write", {"ttl_ms": effective_ttl}):
        try:
            _validate_write(payload, password, ip_rule, effective_ttl, written_at, limits)
            key = resolve_key(requested_key)
            record = Record(
                payload=payload,
                ip_rule=ip_rule or UNRESTRICTED_IP_RULE,
                password=password or None,
                expiry_ms=compute_expiry_ms(effective_ttl, written_at),
            )
            await store.set(key, record, effective_ttl)
        except KVShareError as exc:
            return _fail("record.write", exc, key)

    record_written()
    structured_log(
        "INFO",
        "Record stored",
        key=key,
        operation="record.write",
        duration_ms=_elapsed_ms(started),
        metadata={
            "ip_rule": record.ip_rule,
            "protected": record.is_password_protected,
            "caller_key": key == (requested_key or "").lower(),
            "ttl_ms": effective_ttl,
        },
    )
    return WriteResult(
        key=key,
        expiry_iso=ms_to_iso(record.expiry_ms),
        ip_rule=record.ip_rule,
        password=record.password,
    )


# --- Read / delete ---
async def _authorize(
    store: BaseRecordStore,
    key: Optional[str],
    password: Optional[str],
    caller_ip: str,
) -> tuple[str, Record]:
    """Run the shared read/delete checks; return canonical key and record."""
    if not key:
        raise ValidationError("Missing uuid", field="uuid")
    if not is_valid_uuid(key):
        raise ValidationError("Malformed uuid", field="uuid")
    canonical = normalize_uuid(key)
    record = await store.get(canonical)
    if record is None:
        raise NotFoundError(canonical)
    if not ip_matches(record.ip_rule, caller_ip):
        raise ForbiddenError()
    if not password_satisfied(record.password, password):
        raise UnauthorizedError()
    return canonical, record


async def _delete_after_read(store: BaseRecordStore, key: str) -> bool:
    """Best-effort cleanup; its failure never fails the read that triggered it."""
    try:
        deleted = await store.delete(key)
    except KVShareError as exc:
        record_backend_error()
        structured_log(
            "WARNING",
            "Post-read delete failed; record remains until TTL expiry",
            key=key,
            operation="record.read.delete",
            error={"type": exc.error_code, "message": exc.message},
        )
        return False
    if deleted:
        record_deleted()
    return deleted


async def _read(
    store: BaseRecordStore,
    key: Optional[str],
    password: Optional[str],
    caller_ip: str,
    delete_after: bool,
    operation: str,
) -> Union[ReadResult, Failure]:
    started = time.perf_counter()
    with span(operation, {"delete_after": delete_after}):
        try:
            canonical, record = await _authorize(store, key, password, caller_ip)
        except KVShareError as exc:
            return _fail(operation, exc, key)
        deleted = await _delete_after_read(store, canonical) if delete_after else False

    record_read()
    structured_log(
        "INFO",
        "Record read",
        key=canonical,
        operation=operation,
        duration_ms=_elapsed_ms(started),
        metadata={"delete_after": delete_after, "deleted": deleted},
    )
    return ReadResult(
        key=canonical,
        payload=record.payload,
        expiry_iso=ms_to_iso(record.expiry_ms),
        ip_rule=record.ip_rule,
        password=record.password,
        deleted=deleted,
    )


async def read_record(
    store: BaseRecordStore,
    key: Optional[str],
    password: Optional[str],
    caller_ip: str,
    delete_after: bool = False,
) -> ReadOutcome:
    """Read payload plus metadata (expiry, password, IP rule, key)."""
    return await _read(store, key, password, caller_ip, delete_after, "record.read")


async def read_payload(
    store: BaseRecordStore,
    key: Optional[str],
    password: Optional[str],
    caller_ip: str,
    delete_after: bool = False,
) -> PayloadOutcome:
    """Read the bare payload."""
    result = await _read(store, key, password, caller_ip, delete_after, "record.read_payload")
    if isinstance(result, Failure):
        return result
    return result.payload


async def remove_record(
    store: BaseRecordStore,
    key: Optional[str],
    password: Optional[str],
    caller_ip: str,
) -> DeleteOutcome:
    """Delete after the same existence, IP and password checks as a read."""
    started = time.perf_counter()
    canonical: Optional[str] = None
    with span("record.delete"):
        try:
            canonical, _ = await _authorize(store, key, password, caller_ip)
            deleted = await store.delete(canonical)
            if not deleted:
                # Removed concurrently between the existence check and the delete
                raise NotFoundError(canonical)
        except KVShareError as exc:
            return _fail("record.delete", exc, canonical or key)

    record_deleted()
    structured_log(
        "INFO",
        "Record deleted",
        key=canonical,
        operation="record.delete",
        duration_ms=_elapsed_ms(started),
    )
    return DeleteResult()


# --- Status ---
async def get_status(store: BaseRecordStore, version: str) -> Union[StatusResult, Failure]:
    """Informational record count; None when the backend cannot report one."""
    with span("store.count", {"backend": store.name}):
        try:
            count = await store.count()
        except KVShareError as exc:
            return _fail("store.count", exc)
    return StatusResult(record_count=count, version=version)
