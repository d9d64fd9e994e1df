"""Cloudflare Workers KV record store over the REST API."""

from typing import Optional
from urllib.parse import quote

import httpx

from kvshare.core.errors import BackendError
from kvshare.models.entities import Record
from kvshare.services.base_store import BaseRecordStore, ttl_ms_to_seconds

CLOUDFLARE_API_BASE = "https://api.cloudflare.com/client/v4"
# Workers KV rejects expiration_ttl below 60 seconds
MIN_EXPIRATION_TTL_SECONDS = 60


def get_cloudflare_client(api_token: str, timeout: float = 10.0) -> httpx.AsyncClient:
    """Return an AsyncClient authorised for the KV API; reuse it across requests."""
    return httpx.AsyncClient(
        timeout=timeout,
        headers={"Authorization": f"Bearer {api_token}"},
    )


class CloudflareKVStore(BaseRecordStore):
    """Stores each record as JSON text in a Workers KV namespace.

    KV has no count introspection and its delete carries no removal count.
    """

    name = "cloudflare"

    def __init__(
        self,
        client: httpx.AsyncClient,
        account_id: str,
        namespace_id: str,
        base_url: str = CLOUDFLARE_API_BASE,
    ) -> None:
        self.client = client
        self.namespace_url = (
            f"{base_url.rstrip('/')}/accounts/{account_id}/storage/kv/namespaces/{namespace_id}"
        )

    def _value_url(self, key: str) -> str:
        return f"{self.namespace_url}/values/{quote(key, safe='')}"

    async def _request(self, method: str, key: str, **kwargs) -> httpx.Response:
        try:
            return await self.client.request(method, self._value_url(key), **kwargs)
        except httpx.HTTPError as exc:
            raise BackendError(
                f"Cloudflare KV {method} failed: {exc}",
                backend=self.name,
                details={"operation": method.lower(), "type": type(exc).__name__},
            ) from exc

    def _raise_for_status(self, resp: httpx.Response, operation: str) -> None:
        if resp.status_code < 400:
            return
        body = resp.text
        message = f"HTTP {resp.status_code}: {body[:500]}"
        try:
            data = resp.json()
            if isinstance(data, dict) and data.get("errors"):
                message = data["errors"][0].get("message", message)
        except ValueError:
            pass
        raise BackendError(
            f"Cloudflare KV {operation} failed: {message}",
            backend=self.name,
            details={"operation": operation, "status": resp.status_code},
        )

    async def load(self, key: str) -> Optional[Record]:
        resp = await self._request("GET", key)
        if resp.status_code == 404:
            return None
        self._raise_for_status(resp, "get")
        try:
            return Record.from_json(resp.content)
        except ValueError as exc:
            raise BackendError(
                f"Stored value under {key} is not a record",
                backend=self.name,
                details={"operation": "decode"},
            ) from exc

    async def set(self, key: str, record: Record, ttl_ms: int) -> None:
        ttl_seconds = max(ttl_ms_to_seconds(ttl_ms), MIN_EXPIRATION_TTL_SECONDS)
        resp = await self._request(
            "PUT",
            key,
            params={"expiration_ttl": ttl_seconds},
            content=record.to_json().encode("utf-8"),
            headers={"Content-Type": "text/plain; charset=utf-8"},
        )
        self._raise_for_status(resp, "set")

    async def delete(self, key: str) -> bool:
        resp = await self._request("DELETE", key)
        self._raise_for_status(resp, "delete")
        # No removal count in the response; a 2xx is treated as deleted
        return True

    async def count(self) -> Optional[int]:
        return None

    async def aclose(self) -> None:
        await self.client.aclose()
