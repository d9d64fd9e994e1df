"""Record routes: POST /?mode=set|get|del, GET /?uuid=... (raw payload), GET / (status)."""

import re
from typing import Annotated, Optional, TypeVar

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from kvshare.api.dependencies import get_client_ip, get_limits, get_store
from kvshare.core.config import get_settings
from kvshare.models.results import Failure
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
from kvshare.services.base_store import BaseRecordStore
from kvshare.services.lifecycle import (
    RecordLimits,
    get_status,
    read_payload,
    read_record,
    remove_record,
    write_record,
)

router = APIRouter(tags=["records"])

RequestModel = TypeVar("RequestModel", bound=BaseModel)

_CONTENT_SUBTYPE = re.compile(r"[a-z0-9][a-z0-9.+-]{0,63}", re.IGNORECASE)


def _json(model: MessageResponse) -> JSONResponse:
    return JSONResponse(status_code=model.code, content=model.model_dump(by_alias=True))


def _failure(failure: Failure) -> JSONResponse:
    return _json(ErrorResponse(code=failure.status, message=failure.message, error=failure.error_kind))


def _bad_request(message: str) -> JSONResponse:
    return _json(ErrorResponse(code=400, message=message, error="ValidationError"))


async def _parse_body(request: Request, model: type[RequestModel]) -> RequestModel | JSONResponse:
    try:
        body = await request.json()
    except ValueError:
        return _bad_request("Invalid JSON request body")
    try:
        return model.model_validate(body)
    except PydanticValidationError as exc:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) or "body" for err in exc.errors())
        return _bad_request(f"Invalid request body: {fields}")


async def _write(request: Request, store: BaseRecordStore, limits: RecordLimits) -> JSONResponse:
    body = await _parse_body(request, WriteRequest)
    if isinstance(body, JSONResponse):
        return body
    result = await write_record(
        store,
        body.data,
        password=body.password,
        ip_rule=body.safe_ip,
        ttl_ms=body.expired_time,
        requested_key=body.uuid,
        limits=limits,
    )
    if isinstance(result, Failure):
        return _failure(result)
    return _json(
        WriteResponse(
            code=result.status,
            message="Data stored",
            uuid=result.key,
            expired_at=result.expiry_iso,
            password=result.password,
            safe_ip=result.ip_rule,
        )
    )


async def _read(request: Request, store: BaseRecordStore, client_ip: str) -> JSONResponse:
    body = await _parse_body(request, ReadRequest)
    if isinstance(body, JSONResponse):
        return body
    result = await read_record(store, body.uuid, body.password, client_ip, body.should_delete)
    if isinstance(result, Failure):
        return _failure(result)
    message = "Query succeeded, record deleted" if body.should_delete else "Query succeeded"
    return _json(
        ReadResponse(
            code=result.status,
            message=message,
            data=result.payload,
            uuid=result.key,
            expired_at=result.expiry_iso,
            password=result.password,
            safe_ip=result.ip_rule,
        )
    )


async def _delete(request: Request, store: BaseRecordStore, client_ip: str) -> JSONResponse:
    body = await _parse_body(request, DeleteRequest)
    if isinstance(body, JSONResponse):
        return body
    result = await remove_record(store, body.uuid, body.password, client_ip)
    if isinstance(result, Failure):
        return _failure(result)
    return _json(MessageResponse(code=result.status, message="Deleted"))


@router.post("/", response_model=None)
async def records_post(
    request: Request,
    store: Annotated[BaseRecordStore, Depends(get_store)],
    limits: Annotated[RecordLimits, Depends(get_limits)],
    client_ip: Annotated[str, Depends(get_client_ip)],
    mode: Optional[str] = None,
) -> JSONResponse:
    """Write, read-with-metadata or delete depending on ?mode."""
    if mode == "set":
        return await _write(request, store, limits)
    if mode == "get":
        return await _read(request, store, client_ip)
    if mode == "del":
        return await _delete(request, store, client_ip)
    return _bad_request("Invalid request mode, expected set, get or del")


@router.get("/", response_model=None)
async def records_get(
    store: Annotated[BaseRecordStore, Depends(get_store)],
    client_ip: Annotated[str, Depends(get_client_ip)],
    uuid: Optional[str] = None,
    password: Optional[str] = None,
    should_delete: Annotated[Optional[str], Query(alias="shouldDelete")] = None,
    content_type: Annotated[Optional[str], Query(alias="type")] = None,
) -> Response:
    """Raw payload when ?uuid is given, otherwise service status."""
    if uuid:
        result = await read_payload(store, uuid, password, client_ip, should_delete == "true")
        if isinstance(result, Failure):
            return _failure(result)
        subtype = content_type if content_type and _CONTENT_SUBTYPE.fullmatch(content_type) else "plain"
        return Response(content=result, status_code=200, media_type=f"text/{subtype}")

    status = await get_status(store, get_settings().service_version)
    if isinstance(status, Failure):
        return _failure(status)
    return _json(
        StatusResponse(
            code=200,
            message="Service is running",
            version=status.version,
            active=status.record_count if status.available else -1,
        )
    )
