"""Stored record entity and its backend wire encoding."""

import json
from dataclasses import dataclass
from typing import Any, Optional

UNRESTRICTED_IP_RULE = "*.*.*.*"


@dataclass(frozen=True)
class Record:
    """Payload plus access-control metadata, immutable once written."""

    payload: str
    ip_rule: str = UNRESTRICTED_IP_RULE
    password: Optional[str] = None
    expiry_ms: int = 0  # absolute epoch milliseconds

    @property
    def is_password_protected(self) -> bool:
        return bool(self.password)

    def is_expired(self, now_ms: int) -> bool:
        return self.expiry_ms <= now_ms

    def to_store_dict(self) -> dict[str, Any]:
        # Field names match records written by earlier deployments
        return {
            "data": self.payload,
            "ip": self.ip_rule,
            "password": self.password,
            "expiredTime": self.expiry_ms,
        }

    @classmethod
    def from_store_dict(cls, d: dict[str, Any]) -> "Record":
        return cls(
            payload=d.get("data", ""),
            ip_rule=d.get("ip") or UNRESTRICTED_IP_RULE,
            password=d.get("password") or None,
            expiry_ms=int(d.get("expiredTime") or 0),
        )

    def to_json(self) -> str:
        return json.dumps(self.to_store_dict(), ensure_ascii=False)

    @classmethod
    def from_json(cls, raw: str | bytes) -> "Record":
        data = json.loads(raw)
        if not isinstance(data, dict):
            raise ValueError(f"Stored value is not a record object: {type(data).__name__}")
        return cls.from_store_dict(data)
