"""Offline migration: copy every record from Redis to another store.

Remaining TTL is recomputed from each record's absolute expiry, so records
keep their original expiry time on the target. Not used on the serving path.
"""

import asyncio
import json
import time
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional, TypeVar

from kvshare.core.errors import KVShareError
from kvshare.core.logging import structured_log
from kvshare.services.access_control import now_ms
from kvshare.services.base_store import BaseRecordStore
from kvshare.services.redis_store import RedisRecordStore

T = TypeVar("T")

REPORT_FILENAME = "migration-report.json"
ERRORS_FILENAME = "migration-errors.json"


@dataclass
class MigrationStats:
    total: int = 0
    migrated: int = 0
    skipped: int = 0
    expired: int = 0
    failed: int = 0
    errors: list[dict[str, str]] = field(default_factory=list)

    def counts(self) -> dict[str, int]:
        data = asdict(self)
        data.pop("errors")
        return data


async def with_retry(
    fn: Callable[[], Awaitable[T]],
    attempts: int = 3,
    delay_seconds: float = 1.0,
    *,
    key: Optional[str] = None,
) -> T:
    """Await fn, retrying on store errors with a fixed delay between attempts."""
    for attempt in range(1, attempts):
        try:
            return await fn()
        except KVShareError as exc:
            structured_log(
                "WARNING",
                f"Retry {attempt}/{attempts} after error: {exc.message}",
                key=key,
                operation="migrate.retry",
            )
            await asyncio.sleep(delay_seconds)
    # Final attempt: errors propagate to the caller
    return await fn()


async def migrate_key(
    source: BaseRecordStore,
    target: BaseRecordStore,
    key: str,
    stats: MigrationStats,
    *,
    retry_attempts: int = 3,
    retry_delay_seconds: float = 1.0,
) -> None:
    try:
        record = await source.load(key)
        if record is None:
            stats.skipped += 1
            structured_log("WARNING", "Skipping empty value", key=key, operation="migrate.key")
            return

        remaining_ms = record.expiry_ms - now_ms()
        if remaining_ms <= 0:
            stats.expired += 1
            structured_log("WARNING", "Skipping expired record", key=key, operation="migrate.key")
            return

        await with_retry(
            lambda: target.set(key, record, remaining_ms),
            retry_attempts,
            retry_delay_seconds,
            key=key,
        )
        stats.migrated += 1
        structured_log(
            "INFO",
            "Migrated record",
            key=key,
            operation="migrate.key",
            metadata={"remaining_ttl_ms": remaining_ms},
        )
    except KVShareError as exc:
        stats.failed += 1
        stats.errors.append({"key": key, "error": exc.message})
        structured_log(
            "ERROR",
            "Migration failed",
            key=key,
            operation="migrate.key",
            error={"type": exc.error_code, "message": exc.message},
        )


async def migrate_records(
    source: RedisRecordStore,
    target: BaseRecordStore,
    *,
    batch_size: int = 10,
    retry_attempts: int = 3,
    retry_delay_seconds: float = 1.0,
) -> MigrationStats:
    """Scan the source and copy keys in concurrent batches."""
    stats = MigrationStats()
    keys = [key async for key in source.scan_keys()]
    stats.total = len(keys)
    if not keys:
        structured_log("WARNING", "No records to migrate", operation="migrate")
        return stats

    total_batches = (len(keys) + batch_size - 1) // batch_size
    for start in range(0, len(keys), batch_size):
        batch = keys[start:start + batch_size]
        await asyncio.gather(
            *(
                migrate_key(
                    source,
                    target,
                    key,
                    stats,
                    retry_attempts=retry_attempts,
                    retry_delay_seconds=retry_delay_seconds,
                )
                for key in batch
            )
        )
        structured_log(
            "INFO",
            f"Batch {start // batch_size + 1}/{total_batches} done",
            operation="migrate",
            metadata={"progress_pct": round((start + len(batch)) / len(keys) * 100, 2)},
        )
    return stats


def build_report(stats: MigrationStats, duration_seconds: float) -> dict[str, Any]:
    return {
        "timestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
        "duration": f"{duration_seconds:.2f}s",
        "stats": stats.counts(),
        "errors": stats.errors,
    }


def write_report(stats: MigrationStats, duration_seconds: float, directory: Path) -> Path:
    """Write migration-report.json (and migration-errors.json when needed)."""
    directory.mkdir(parents=True, exist_ok=True)
    if stats.errors:
        (directory / ERRORS_FILENAME).write_text(json.dumps(stats.errors, indent=2), encoding="utf-8")
    report_path = directory / REPORT_FILENAME
    report_path.write_text(json.dumps(build_report(stats, duration_seconds), indent=2), encoding="utf-8")
    return report_path


async def run_migration(
    source: RedisRecordStore,
    target: BaseRecordStore,
    report_dir: Path,
    *,
    batch_size: int = 10,
    retry_attempts: int = 3,
    retry_delay_seconds: float = 1.0,
) -> MigrationStats:
    started = time.monotonic()
    try:
        stats = await migrate_records(
            source,
            target,
            batch_size=batch_size,
            retry_attempts=retry_attempts,
            retry_delay_seconds=retry_delay_seconds,
        )
    finally:
        await source.aclose()
        await target.aclose()
    duration = time.monotonic() - started
    report_path = write_report(stats, duration, report_dir)
    structured_log(
        "INFO",
        "Migration complete",
        operation="migrate",
        duration_ms=duration * 1000,
        metadata={**stats.counts(), "report": str(report_path)},
    )
    return stats
