"""Value-level outcomes returned by the record lifecycle operations."""

from dataclasses import dataclass
from typing import Optional, Union

from kvshare.core.errors import KVShareError


@dataclass(frozen=True)
class Failure:
    """Error outcome: HTTP-style status plus error kind."""

    status: int
    error_kind: str
    message: str

    @classmethod
    def from_error(cls, exc: KVShareError) -> "Failure":
        return cls(status=exc.status_code, error_kind=exc.error_code, message=exc.message)


@dataclass(frozen=True)
class WriteResult:
    key: str
    expiry_iso: str
    ip_rule: str
    password: Optional[str] = None
    status: int = 200


@dataclass(frozen=True)
class ReadResult:
    key: str
    payload: str
    expiry_iso: str
    ip_rule: str
    password: Optional[str] = None
    deleted: bool = False
    status: int = 200


@dataclass(frozen=True)
class DeleteResult:
    status: int = 200


@dataclass(frozen=True)
class StatusResult:
    """Record count, or None when the backend cannot report one."""

    record_count: Optional[int]
    version: str

    @property
    def available(self) -> bool:
        return self.record_count is not None


WriteOutcome = Union[WriteResult, Failure]
ReadOutcome = Union[ReadResult, Failure]
PayloadOutcome = Union[str, Failure]
DeleteOutcome = Union[DeleteResult, Failure]
