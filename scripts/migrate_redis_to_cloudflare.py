#!/usr/bin/env python3
"""
Copies every record from Redis (Vercel KV) to Cloudflare Workers KV.

Usage: python3 scripts/migrate_redis_to_cloudflare.py [--report-dir DIR]
Reads REDIS_URL, CLOUDFLARE_ACCOUNT_ID, CLOUDFLARE_NAMESPACE_ID and
CLOUDFLARE_API_TOKEN from the environment or .env.
"""
import argparse
import asyncio
import sys
from pathlib import Path

from kvshare.core.config import get_settings
from kvshare.core.errors import KVShareError
from kvshare.core.logging import configure_logging, structured_log
from kvshare.services.migration import run_migration
from kvshare.services.store_factory import build_store


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("--report-dir", type=Path, default=Path.cwd(), help="Where to write migration-report.json")
    parser.add_argument("--batch-size", type=int, default=None, help="Override MIGRATE_BATCH_SIZE")
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    settings = get_settings()
    configure_logging(settings.log_level)
    try:
        source = build_store(settings, backend="redis")
        target = build_store(settings, backend="cloudflare")
        stats = asyncio.run(
            run_migration(
                source,
                target,
                args.report_dir,
                batch_size=args.batch_size or settings.migrate_batch_size,
                retry_attempts=settings.migrate_retry_attempts,
                retry_delay_seconds=settings.migrate_retry_delay_seconds,
            )
        )
    except KVShareError as exc:
        structured_log("ERROR", f"Migration aborted: {exc.message}", operation="migrate")
        return 1
    return 1 if stats.failed else 0


if __name__ == "__main__":
    sys.exit(main())
