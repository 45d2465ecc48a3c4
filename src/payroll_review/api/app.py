"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from payroll_review.api.routes import (
    allowances_router,
    health_router,
    reviewers_router,
    reviews_router,
)
from payroll_review.config import get_settings
from payroll_review.errors import (
    AuthError,
    FetchFailedError,
    InvalidOperationError,
    NetworkError,
    NotFoundError,
    ReviewPipelineError,
    UpdateFailedError,
    ValidationError,
)
from payroll_review.events import EventEmitter, log_event

logger = logging.getLogger(__name__)

# Most specific first; InvalidTransitionError resolves via InvalidOperationError
ERROR_STATUS: list[tuple[type[ReviewPipelineError], int, str]] = [
    (AuthError, status.HTTP_401_UNAUTHORIZED, "AUTH_ERROR"),
    (ValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY, "VALIDATION_ERROR"),
    (NotFoundError, status.HTTP_404_NOT_FOUND, "NOT_FOUND"),
    (InvalidOperationError, status.HTTP_409_CONFLICT, "INVALID_OPERATION"),
    (UpdateFailedError, status.HTTP_502_BAD_GATEWAY, "UPDATE_FAILED"),
    (FetchFailedError, status.HTTP_502_BAD_GATEWAY, "FETCH_FAILED"),
    (NetworkError, status.HTTP_503_SERVICE_UNAVAILABLE, "NETWORK_ERROR"),
]


def error_status(exc: ReviewPipelineError) -> tuple[int, str]:
    """HTTP status and error code for a pipeline error."""
    for error_cls, status_code, code in ERROR_STATUS:
        if isinstance(exc, error_cls):
            return status_code, code
    return status.HTTP_500_INTERNAL_SERVER_ERROR, "INTERNAL_ERROR"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    logger.info("Review pipeline API using payroll service at %s", get_settings().api_base_url)
    yield


def create_app(emitter: EventEmitter | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Payroll Review API",
        description="Multi-level payroll review and approval pipeline",
        version="0.1.0",
        lifespan=lifespan,
    )

    if emitter is None:
        emitter = EventEmitter()
        emitter.on_all(log_event)
    app.state.emitter = emitter

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(ReviewPipelineError)
    async def pipeline_exception_handler(
        request: Request, exc: ReviewPipelineError
    ) -> JSONResponse:
        """Map pipeline errors onto HTTP responses with a user-facing message."""
        status_code, code = error_status(exc)
        return JSONResponse(
            status_code=status_code,
            content={"detail": exc.user_message, "code": code},
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "An unexpected error occurred",
                "code": "INTERNAL_ERROR",
            },
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(reviewers_router, prefix="/api/v1")
    app.include_router(reviews_router, prefix="/api/v1")
    app.include_router(allowances_router, prefix="/api/v1")

    return app


# Default app instance for uvicorn
app = create_app()
