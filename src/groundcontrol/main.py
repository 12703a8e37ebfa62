"""
FastAPI application entry point.
"""

import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from groundcontrol.auth.router import router as auth_router
from groundcontrol.bsd import BSDClient
from groundcontrol.config import get_settings
from groundcontrol.email.mailgun import MailgunClient
from groundcontrol.graphql.router import router as graphql_router
from groundcontrol.shared.database import get_database
from groundcontrol.shared.exceptions import AppException
from groundcontrol.shared.logging import correlation_id_var, get_logger, setup_logging

import groundcontrol.models  # noqa: F401

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    setup_logging()
    settings = get_settings()
    database = get_database()

    if settings.is_development:
        await database.create_all()

    app.state.bsd = BSDClient(settings)
    app.state.mailer = MailgunClient(settings)
    logger.info("Ground Control started", extra={"env": settings.app_env, "bsd_host": settings.bsd_host})

    try:
        yield
    finally:
        await app.state.bsd.close()
        await app.state.mailer.close()
        await database.dispose()
        logger.info("Ground Control stopped")


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    logger.info(
        "Request failed",
        extra={"path": request.url.path, "status": exc.status_code, "code": exc.code},
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": {"code": exc.code, "message": exc.message, "details": exc.details}},
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = [
        {
            "field": ".".join(str(part) for part in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "detail": {"code": "VALIDATION_ERROR", "message": "Request validation failed", "errors": fields}
        },
    )


async def request_id_middleware(request: Request, call_next):
    """Tag the request (and its log lines) with a correlation id."""
    request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
    token = correlation_id_var.set(request_id)
    try:
        response = await call_next(request)
    finally:
        correlation_id_var.reset(token)
    response.headers[REQUEST_ID_HEADER] = request_id
    return response


def create_app() -> FastAPI:
    """Build the API: REST auth routes, `/graphql` and `/health`."""
    settings = get_settings()

    app = FastAPI(
        title="Ground Control API",
        description="Volunteer calling and event administration backend",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url=None,
    )

    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.middleware("http")(request_id_middleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(auth_router)
    app.include_router(graphql_router)

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        return {"status": "healthy"}

    return app


app = create_app()
