import logging
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError
from sqlalchemy.engine import make_url
from sqlalchemy.exc import (
    DatabaseError,
    DBAPIError,
    IntegrityError,
    OperationalError,
    SQLAlchemyError,
)
from sqlalchemy.exc import (
    TimeoutError as SQLAlchemyTimeoutError,
)

from storefront.api import analytics, stores
from storefront.api import storefront as storefront_api
from storefront.cache import close_redis
from storefront.db.connection import (
    create_schema,
    dispose_engine,
    get_database_type,
    get_database_url,
)
from storefront.schemas.error import ErrorType, ValidationErrorDetail
from storefront.settings import get_settings
from storefront.utils.error_responses import (
    build_error_response,
    build_validation_error_response,
)
from storefront.utils.request_context import (
    REQUEST_ID_HEADER,
    clear_request_id,
    get_request_id,
    set_request_id,
)
from storefront.warmup import warmup_all

settings = get_settings()

logging.basicConfig(
    level=settings.log_level_numeric,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def validate_environment() -> None:
    """Log a warning for every optional setting left unconfigured."""

    for warning in settings.optional_config_warnings():
        logger.warning("Storefront configuration: %s", warning)


def _sanitize_database_url(url: str) -> str:
    """Hide the password of ``url`` so it can be logged."""
    return make_url(url).render_as_string(hide_password=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    validate_environment()

    db_type = get_database_type()
    logger.info(
        "Starting storefront API on %s (%s)", db_type, _sanitize_database_url(get_database_url())
    )

    if db_type == "sqlite":
        logger.info("SQLite fallback has no migrations; creating missing tables")
        await create_schema()

    await warmup_all()

    yield

    logger.info("Shutting down storefront API")
    await close_redis()
    await dispose_engine()


app = FastAPI(
    title="Storefront API",
    version="0.1.0",
    description="Public storefront reads, dashboard mutations, and visitor analytics.",
    lifespan=lifespan,
    redirect_slashes=False,
)


DEV_ORIGIN_PORTS = (*range(3000, 3011), 5173)


def allowed_origins(extra: list[str]) -> list[str]:
    """Local storefront dev servers first, then configured origins, without duplicates."""
    local = [
        f"http://{host}:{port}" for host in ("localhost", "127.0.0.1") for port in DEV_ORIGIN_PORTS
    ]
    return list(dict.fromkeys(origin.rstrip("/") for origin in [*local, *extra] if origin))


allow_origins = allowed_origins(settings.cors_origins)
logger.info("CORS allows %d origin(s); configured: %s", len(allow_origins), settings.cors_origins)

app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    """Tag each request with an id, reusing one a tracking client already sent."""
    request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
    token = set_request_id(request_id)
    try:
        response = await call_next(request)
    finally:
        clear_request_id(token)
    response.headers[REQUEST_ID_HEADER] = request_id
    return response


@dataclass(frozen=True)
class DatabaseFailure:
    status_code: int
    error_type: ErrorType
    message: str
    detail: str
    retry_after: int | None = None


# Keyed by exception class; the most specific class in the MRO wins.
DATABASE_FAILURES: dict[type[SQLAlchemyError], DatabaseFailure] = {
    IntegrityError: DatabaseFailure(
        status.HTTP_409_CONFLICT,
        ErrorType.DATABASE_ERROR,
        "Store change conflicts with existing data",
        "The slug is already taken or a referenced store or product no longer exists.",
    ),
    OperationalError: DatabaseFailure(
        status.HTTP_503_SERVICE_UNAVAILABLE,
        ErrorType.DATABASE_ERROR,
        "Store data is temporarily unavailable",
        "The storefront database could not be reached.",
        retry_after=5,
    ),
    DatabaseError: DatabaseFailure(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        ErrorType.DATABASE_ERROR,
        "Store data operation failed",
        "The storefront database rejected the operation.",
    ),
    # Driver-level failures outside DatabaseError, such as InterfaceError.
    DBAPIError: DatabaseFailure(
        status.HTTP_503_SERVICE_UNAVAILABLE,
        ErrorType.DATABASE_ERROR,
        "Store data is temporarily unavailable",
        "The database driver lost its connection.",
        retry_after=5,
    ),
    SQLAlchemyTimeoutError: DatabaseFailure(
        status.HTTP_504_GATEWAY_TIMEOUT,
        ErrorType.TIMEOUT_ERROR,
        "Store data request timed out",
        "No database connection became free in time.",
        retry_after=3,
    ),
}


def resolve_database_failure(exc: BaseException) -> DatabaseFailure | None:
    for klass in type(exc).__mro__:
        failure = DATABASE_FAILURES.get(klass)
        if failure is not None:
            return failure
    return None


def _error_json(status_code: int, payload: BaseModel) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=payload.model_dump(mode="json"))


async def database_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    failure = resolve_database_failure(exc)
    if failure is None:
        return await generic_exception_handler(request, exc)

    logger.error(
        "%s on %s %s (request %s): %s",
        type(exc).__name__,
        request.method,
        request.url.path,
        get_request_id(),
        exc,
    )
    return _error_json(
        failure.status_code,
        build_error_response(
            error_type=failure.error_type,
            message=failure.message,
            detail=failure.detail,
            status_code=failure.status_code,
            path=request.url.path,
            retry_after=failure.retry_after,
        ),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError | ValidationError
) -> JSONResponse:
    """Report request parsing and model validation failures as one 422 envelope."""
    errors = [
        ValidationErrorDetail(
            field=".".join(str(loc) for loc in error["loc"]),
            message=error["msg"],
            value=error.get("input"),
        )
        for error in exc.errors()
    ]
    origin = "request" if isinstance(exc, RequestValidationError) else "payload"
    logger.warning(
        "Rejected %s on %s %s (request %s): %d invalid field(s)",
        origin,
        request.method,
        request.url.path,
        get_request_id(),
        len(errors),
    )
    return _error_json(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        build_validation_error_response(
            message=f"Invalid {origin}",
            detail=f"{len(errors)} validation error(s)",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            path=request.url.path,
            errors=errors,
        ),
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "Unhandled %s on %s %s (request %s)",
        type(exc).__name__,
        request.method,
        request.url.path,
        get_request_id(),
    )
    return _error_json(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        build_error_response(
            error_type=ErrorType.INTERNAL_ERROR,
            message="Internal server error",
            detail=f"Unexpected {type(exc).__name__} while serving {request.url.path}",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            path=request.url.path,
        ),
    )


app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(ValidationError, validation_exception_handler)
for _failure_class in DATABASE_FAILURES:
    app.add_exception_handler(_failure_class, database_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)


@app.get("/health", tags=["system"])
async def healthcheck() -> dict[str, str]:
    return {"status": "ok", "database": get_database_type()}


app.include_router(storefront_api.router, prefix="/storefront", tags=["storefront"])
app.include_router(stores.router, prefix="/stores", tags=["stores"])
app.include_router(analytics.router, prefix="/analytics", tags=["analytics"])
