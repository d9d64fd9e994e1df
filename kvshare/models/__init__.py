"""Data models: record entity, Pydantic schemas, lifecycle results."""

from kvshare.models.entities import UNRESTRICTED_IP_RULE, Record
from kvshare.models.results import (
    DeleteResult,
    Failure,
    ReadResult,
    StatusResult,
    WriteResult,
)
from kvshare.models.schemas import (
    DeleteRequest,
    ErrorResponse,
    MessageResponse,
    ReadRequest,
    ReadResponse,
    StatusResponse,
    WriteRequest,
    WriteResponse,
)

__all__ = [
    "Record",
    "UNRESTRICTED_IP_RULE",
    "Failure",
    "WriteResult",
    "ReadResult",
    "DeleteResult",
    "StatusResult",
    "WriteRequest",
    "ReadRequest",
    "DeleteRequest",
    "MessageResponse",
    "WriteResponse",
    "ReadResponse",
    "StatusResponse",
    "ErrorResponse",
]
