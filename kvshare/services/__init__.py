"""Services: access control, record stores, lifecycle, migration."""

from kvshare.services.base_store import BaseRecordStore, ttl_ms_to_seconds
from kvshare.services.lifecycle import (
    RecordLimits,
    get_status,
    read_payload,
    read_record,
    remove_record,
    write_record,
)
from kvshare.services.memory_store import MemoryRecordStore
from kvshare.services.store_factory import build_store, register_store

__all__ = [
    "BaseRecordStore",
    "MemoryRecordStore",
    "ttl_ms_to_seconds",
    "build_store",
    "register_store",
    "RecordLimits",
    "write_record",
    "read_record",
    "read_payload",
    "remove_record",
    "get_status",
]
