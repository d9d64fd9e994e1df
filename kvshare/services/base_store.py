import math
from abc import ABC, abstractmethod
from typing import Optional

from kvshare.models.entities import Record
from kvshare.services.access_control import now_ms


def ttl_ms_to_seconds(ttl_ms: int) -> int:
    """Convert a millisecond TTL to whole seconds, rounding up.

    Applied to every backend, so physical expiry lands up to 999 ms after the
    logical expiry and never before it.
    """
    return max(1, math.ceil(ttl_ms / 1000))


class BaseRecordStore(ABC):
    """
    Uniform record store over a concrete key-value backend.
    Stateless apart from the backend handle; the lifecycle manager depends only on this.
    """

    name: str = "base"

    async def get(self, key: str) -> Optional[Record]:
        """Return the live record under key, or None.

        Records past their logical expiry read as absent even if the backend
        has not physically removed them yet.
        """
        record = await self.load(key)
        if record is None or record.is_expired(now_ms()):
            return None
        return record

    @abstractmethod
    async def load(self, key: str) -> Optional[Record]:
        """Load and decode the stored record, ignoring logical expiry."""
        pass

    @abstractmethod
    async def set(self, key: str, record: Record, ttl_ms: int) -> None:
        """Create or overwrite the record with a backend-side TTL."""
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Delete the record; True when the backend acknowledged the removal."""
        pass

    @abstractmethod
    async def count(self) -> Optional[int]:
        """Number of stored records, or None when the backend cannot report one."""
        pass

    async def aclose(self) -> None:
        """Release the backend connection."""
        return None
