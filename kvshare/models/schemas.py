"""Pydantic request/response models for the HTTP surface.

Wire field names (safeIP, expiredTime, shouldDelete, expiredAt) are kept for
compatibility with existing clients; Python code uses the snake_case names.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


# --- Request ---
class WriteRequest(_WireModel):
    """POST /?mode=set request body.

    Content limits (payload size, password length, IP rule syntax) are checked
    by the lifecycle manager in a fixed order, not here.
    """

    data: Optional[str] = Field(default=None, description="Opaque payload to store")
    password: Optional[str] = Field(default=None, description="Optional read/delete password")
    safe_ip: Optional[str] = Field(default=None, alias="safeIP", description="IP rule, e.g. 10.0.0.* or 1.2-3.*.4")
    expired_time: Optional[int] = Field(default=None, alias="expiredTime", description="TTL in milliseconds")
    uuid: Optional[str] = Field(default=None, description="Caller-chosen UUID v4 key; overwrites an existing record")


class ReadRequest(_WireModel):
    """POST /?mode=get request body."""

    uuid: Optional[str] = None
    password: Optional[str] = None
    should_delete: bool = Field(default=False, alias="shouldDelete")


class DeleteRequest(_WireModel):
    """POST /?mode=del request body."""

    uuid: Optional[str] = None
    password: Optional[str] = None


# --- Response ---
class MessageResponse(_WireModel):
    code: int
    message: str


class WriteResponse(MessageResponse):
    uuid: str
    expired_at: str = Field(alias="expiredAt")
    password: Optional[str] = None
    safe_ip: str = Field(alias="safeIP")


class ReadResponse(MessageResponse):
    data: str
    uuid: str
    expired_at: str = Field(alias="expiredAt")
    password: Optional[str] = None
    safe_ip: str = Field(alias="safeIP")


class StatusResponse(MessageResponse):
    version: str
    active: int = Field(description="Live record count, -1 when the backend cannot report one")


class ErrorResponse(MessageResponse):
    error: str
