"""FastAPI application entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from kvshare.api.routes import health_router, records_router
from kvshare.core.config import get_settings
from kvshare.core.errors import KVShareError
from kvshare.core.logging import configure_logging, structured_log
from kvshare.core.telemetry import init_telemetry, instrument_fastapi
from kvshare.services.store_factory import build_store


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: logging, telemetry, record store. Shutdown: close the store."""
    settings = get_settings()
    configure_logging(settings.log_level)
    init_telemetry(project_id=settings.gcp_project_id or None)
    app.state.store = build_store(settings)
    structured_log(
        "INFO",
        "Record store ready",
        operation="startup",
        metadata={"backend": app.state.store.name, "version": settings.service_version},
    )
    yield
    await app.state.store.aclose()


app = FastAPI(
    title="kvshare",
    description="Ephemeral shared-secret storage with password and IP-range access control",
    version=get_settings().service_version,
    lifespan=lifespan,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["content-type"],
)

app.include_router(health_router)
app.include_router(records_router)

instrument_fastapi(app)


@app.exception_handler(KVShareError)
async def kvshare_error_handler(request: Request, exc: KVShareError) -> JSONResponse:
    """Map custom exceptions to JSON response."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "code": exc.status_code,
            "message": exc.message,
            "error": exc.error_code,
        },
    )


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed query parameters are caller errors (400, not 422)."""
    return JSONResponse(
        status_code=400,
        content={"code": 400, "message": "Invalid request parameters", "error": "ValidationError"},
    )
