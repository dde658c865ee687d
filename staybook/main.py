"""FastAPI application entrypoint. No business logic; only wiring, middleware and error mapping."""

import logging

from dotenv import load_dotenv

load_dotenv()

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from staybook import __version__
from staybook.api.v1 import router as v1_router
from staybook.core.config import settings
from staybook.repositories.errors import (
    ConflictError,
    DataAccessError,
    InvalidArgumentError,
    MultipleResultsError,
    NotFoundError,
    PersistenceError,
)
from staybook.services.account_service import AccountError

logger = logging.getLogger(__name__)

# Error kind -> HTTP status. Unlisted DataAccessError subclasses fall back to 500.
ERROR_STATUS: dict[type[DataAccessError], int] = {
    InvalidArgumentError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ConflictError: status.HTTP_409_CONFLICT,
    MultipleResultsError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    PersistenceError: status.HTTP_503_SERVICE_UNAVAILABLE,
}

app = FastAPI(
    title="Staybook API",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.APP_ENV == "dev" else settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(v1_router, prefix=settings.API_V1_PREFIX)


@app.exception_handler(DataAccessError)
def handle_data_access_error(request: Request, exc: DataAccessError) -> JSONResponse:
    status_code = next(
        (code for kind, code in ERROR_STATUS.items() if isinstance(exc, kind)),
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
    if status_code >= 500:
        logger.error(
            "Data access failure",
            extra={"path": request.url.path, "error_type": type(exc).__name__, "reason": exc.message[:500]},
        )
    return JSONResponse(status_code=status_code, content={"detail": exc.message})


@app.exception_handler(AccountError)
def handle_account_error(request: Request, exc: AccountError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": exc.message})


@app.get("/")
def root() -> dict[str, str]:
    """Root route; minimal payload for discovery."""
    return {"message": "Staybook API"}
