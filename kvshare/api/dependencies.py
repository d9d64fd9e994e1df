"""FastAPI dependencies: record store handle, limits, caller IP."""

from fastapi import Request

from kvshare.core.config import get_settings
from kvshare.services.base_store import BaseRecordStore
from kvshare.services.lifecycle import RecordLimits

UNKNOWN_CLIENT_IP = "0.0.0.0"


def get_store(request: Request) -> BaseRecordStore:
    """Return the store built at startup; one shared handle per process."""
    return request.app.state.store


def get_limits() -> RecordLimits:
    return RecordLimits.from_settings(get_settings())


def get_client_ip(request: Request) -> str:
    """Resolve the caller IP from proxy headers, then the socket peer."""
    for header in get_settings().client_ip_header_list:
        value = request.headers.get(header)
        if value:
            # X-Forwarded-For: client, proxy1, proxy2
            return value.split(",")[0].strip()
    if request.client and request.client.host:
        return request.client.host
    return UNKNOWN_CLIENT_IP
