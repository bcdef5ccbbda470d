from contextlib import asynccontextmanager
import logging
import uuid

from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from medtrack.api import dose_records, health, history, inventory, prn, regimens, schedule
from medtrack.api.deps import get_push_transport
from medtrack.config import settings
from medtrack.database import close_db, init_db
from medtrack.logging import configure_logging, request_id_var
from medtrack.services.notifications import ApnsPushTransport

configure_logging()
logger = logging.getLogger("medtrack")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    logger.info("Starting MedTrack API")
    try:
        await init_db()
        logger.info("Database initialized")
    except Exception:
        logger.exception("Failed to initialize database")
        raise

    yield

    logger.info("Shutting down MedTrack API")
    transport = get_push_transport()
    if isinstance(transport, ApnsPushTransport):
        await transport.aclose()
    try:
        await close_db()
        logger.info("Database connections closed")
    except Exception:
        logger.exception("Error closing database")
    logger.info("MedTrack API shutdown complete")


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    # MedTrack API

    Medication schedules, dose status and intake recording for patients and
    their caregivers.

    ## Features

    - **Schedule** - Recurring regimens expanded into timezone-aware doses
    - **Dose Records** - Idempotent single and per-slot intake recording
    - **History** - Day and month adherence views
    - **Inventory** - Pill counts with low/out alerts
    """,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

@app.middleware("http")
async def add_request_id(request: Request, call_next):
    request_id = request.headers.get("X-Request-Id", str(uuid.uuid4()))
    request_id_var.set(request_id)
    response = await call_next(request)
    response.headers.setdefault("X-Request-Id", request_id)
    return response

@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers.setdefault("X-Frame-Options", "DENY")
    response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
    response.headers.setdefault("Permissions-Policy", "geolocation=(), microphone=(), camera=()")
    response.headers.setdefault(
        "Content-Security-Policy",
        "default-src 'none'; frame-ancestors 'none'; base-uri 'none'",
    )
    if not settings.debug:
        response.headers.setdefault(
            "Strict-Transport-Security",
            "max-age=63072000; includeSubDomains; preload",
        )
    return response

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

app.include_router(health.router)
app.include_router(schedule.router, prefix=settings.api_prefix)
app.include_router(dose_records.router, prefix=settings.api_prefix)
app.include_router(prn.router, prefix=settings.api_prefix)
app.include_router(history.router, prefix=settings.api_prefix)
app.include_router(inventory.router, prefix=settings.api_prefix)
app.include_router(regimens.router, prefix=settings.api_prefix)


def _error_response(
    status_code: int,
    message,
    error_type: str,
    headers: dict[str, str] | None = None,
    **extra,
) -> JSONResponse:
    error = {"message": message, "status_code": status_code, "type": error_type, **extra}
    error["request_id"] = request_id_var.get()
    return JSONResponse(status_code=status_code, content={"error": error}, headers=headers)


@app.exception_handler(HTTPException)
async def http_exception_handler(_request: Request, exc: HTTPException):
    return _error_response(exc.status_code, exc.detail, "http_error", headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(_request: Request, exc: RequestValidationError):
    return _error_response(
        422, "Validation error", "validation_error", details=jsonable_encoder(exc.errors())
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, _exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error_response(500, "Internal server error", "server_error")
