from typing import Callable, Optional

from kvshare.core.config import Settings, optional_setting
from kvshare.core.errors import ConfigurationError
from kvshare.services.base_store import BaseRecordStore

StoreBuilder = Callable[[Settings], BaseRecordStore]

_builders: dict[str, StoreBuilder] = {}


def register_store(name: str, builder: StoreBuilder) -> None:
    _builders[name.lower()] = builder


def build_store(settings: Settings, backend: Optional[str] = None) -> BaseRecordStore:
    """Construct the record store selected by STORAGE_BACKEND (or an explicit backend)."""
    name = (backend or settings.storage_backend).lower()
    builder = _builders.get(name)
    if not builder:
        raise ConfigurationError(
            f"Storage backend {name} not found. Available: {sorted(_builders)}"
        )
    return builder(settings)


def _build_memory(settings: Settings) -> BaseRecordStore:
    from kvshare.services.memory_store import MemoryRecordStore

    return MemoryRecordStore()


def _build_redis(settings: Settings) -> BaseRecordStore:
    from kvshare.services.redis_store import RedisRecordStore, get_redis_client

    if not settings.redis_url:
        raise ConfigurationError("STORAGE_BACKEND=redis requires REDIS_URL")
    client = get_redis_client(settings.redis_url, settings.redis_socket_timeout_seconds)
    return RedisRecordStore(client)


def _build_cloudflare(settings: Settings) -> BaseRecordStore:
    from kvshare.services.cloudflare_store import CloudflareKVStore, get_cloudflare_client

    missing = [
        name
        for name, value in (
            ("CLOUDFLARE_ACCOUNT_ID", settings.cloudflare_account_id),
            ("CLOUDFLARE_NAMESPACE_ID", settings.cloudflare_namespace_id),
            ("CLOUDFLARE_API_TOKEN", settings.cloudflare_api_token),
        )
        if not value
    ]
    if missing:
        raise ConfigurationError(f"STORAGE_BACKEND=cloudflare requires {', '.join(missing)}")
    client = get_cloudflare_client(settings.cloudflare_api_token, settings.cloudflare_timeout_seconds)
    return CloudflareKVStore(
        client,
        account_id=settings.cloudflare_account_id,
        namespace_id=settings.cloudflare_namespace_id,
        base_url=settings.cloudflare_api_base_url,
    )


def _build_firestore(settings: Settings) -> BaseRecordStore:
    from kvshare.services.firestore_store import FirestoreRecordStore, get_firestore_client

    client = get_firestore_client(optional_setting(settings.gcp_project_id))
    return FirestoreRecordStore(client, settings.firestore_collection_records)


register_store("memory", _build_memory)
register_store("redis", _build_redis)
register_store("cloudflare", _build_cloudflare)
register_store("firestore", _build_firestore)
