"""devtutor FastAPI application."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api import chat, code, progress, quiz, websocket
from .core.config import Settings, settings as default_settings
from .core.errors import TutorError, ValidationError, build_error_envelope
from .core.logging_config import configure_logging
from .observability.langsmith import initialize_langsmith
from .services import TutorServices

logger = logging.getLogger(__name__)

APP_VERSION = "0.1.0"


def create_app(
    services: Optional[TutorServices] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        services: Prebuilt service container (tests pass one bound to a temporary database)
        settings: Settings override, defaults to the environment
    """
    settings = settings or default_settings
    services = services or TutorServices.from_settings(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Lifespan context for startup and shutdown events."""
        configure_logging(settings)
        logger.info(f"{settings.APP_NAME} starting up ({settings.APP_ENV})")
        initialize_langsmith(settings)
        await services.startup(create_tables=settings.DB_AUTO_CREATE)
        yield
        logger.info(f"{settings.APP_NAME} shutting down")
        await services.shutdown()

    app = FastAPI(
        title=settings.APP_NAME,
        description="Conversational programming tutor with code feedback, explanations, quizzes and progress analysis",
        version=APP_VERSION,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
        lifespan=lifespan,
    )
    app.state.services = services
    app.state.settings = settings

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
        allow_methods=["*"],
        allow_headers=settings.cors_allow_headers_list,
    )

    # Include routers
    app.include_router(chat.router, prefix=settings.API_V1_PREFIX)
    app.include_router(websocket.router, prefix=settings.API_V1_PREFIX)
    app.include_router(quiz.router, prefix=settings.API_V1_PREFIX)
    app.include_router(code.router, prefix=settings.API_V1_PREFIX)
    app.include_router(progress.router, prefix=settings.API_V1_PREFIX)

    # Health check
    @app.get("/health")
    async def health_check():
        return {"status": "healthy", "app": settings.APP_NAME}

    # Root endpoint
    @app.get("/")
    async def root():
        return {
            "app": settings.APP_NAME,
            "version": APP_VERSION,
            "docs": "/docs",
            "health": "/health",
        }

    # ===== Exception handlers =====

    def _error_response(request: Request, exc: TutorError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.code} {exc.message}")
        else:
            logger.warning(f"{request.method} {request.url.path} rejected: {exc.code} {exc.message}")
        return JSONResponse(
            status_code=exc.status_code,
            content=jsonable_encoder(build_error_envelope(
                exc,
                path=request.url.path,
                method=request.method,
                include_stack=settings.DEBUG,
            )),
        )

    @app.exception_handler(TutorError)
    async def tutor_error_handler(request: Request, exc: TutorError):
        return _error_response(request, exc)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        error = ValidationError("Invalid request body", details=jsonable_encoder(exc.errors()))
        return _error_response(request, error)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        error = TutorError(str(exc) if settings.DEBUG else None)
        return _error_response(request, error)

    return app


# Create the app instance
app = create_app()
