import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from medshare.api.v1.router import api_router
from medshare.core.config import get_settings
from medshare.core.exceptions import (
    AuthorizationError,
    InvalidStateError,
    NotFoundError,
    RecordSharingError,
    StorageError,
    ValidationError,
)

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="MedShare Record Sharing Backend",
)

# Most specific first; the base class catches anything new.
_ERROR_STATUS = (
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (InvalidStateError, status.HTTP_409_CONFLICT),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (AuthorizationError, status.HTTP_403_FORBIDDEN),
    (StorageError, status.HTTP_500_INTERNAL_SERVER_ERROR),
)


@app.exception_handler(RecordSharingError)
async def record_sharing_error_handler(request: Request, exc: RecordSharingError) -> JSONResponse:
    """
    Map workflow errors to HTTP responses.
    Storage failures keep their generic message; the cause is already logged.
    """
    status_code = status.HTTP_400_BAD_REQUEST
    for error_cls, code in _ERROR_STATUS:
        if isinstance(exc, error_cls):
            status_code = code
            break

    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")

    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "error": type(exc).__name__},
    )


@app.get("/health", tags=["health"])
async def root_health() -> dict:
    """
    Global health check endpoint.
    """
    return {"status": "ok"}


# Mount versioned API router
app.include_router(api_router, prefix=settings.api_v1_prefix)
