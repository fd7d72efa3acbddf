"""
Estate AI Assistant - Main FastAPI Application
Conversational backend for a real estate brokerage: chat, voice synthesis,
property lookup and health endpoints.
"""

import time
from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.encoders import jsonable_encoder
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import Settings, get_settings
from .database import Database
from .exceptions import AssistantError, RateLimitError
from .routers import chat_router, health_router, properties_router, voice_router
from .services.ai_service import AIService, VoiceClient
from .services.broker_service import BrokerService
from .services.conversation_manager import ConversationManager
from .services.response_generator import ResponseGenerator
from .services.tts_service import ElevenLabsClient
from .utils.logger import configure_logging
from .utils.middleware import error_response, install_request_middleware
from .utils.rate_limit import build_rate_limiters


logger = structlog.get_logger("estate_assistant")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    settings: Settings = app.state.settings
    database: Database = app.state.database

    # Startup
    logger.info("Starting application", version=settings.APP_VERSION, environment=settings.ENVIRONMENT)
    for issue in settings.validate_configuration():
        logger.warning("Configuration issue, running with reduced functionality", issue=issue)

    await database.connect()
    await database.create_schema()
    logger.info("Application started", host=settings.HOST, port=settings.PORT)

    yield

    # Shutdown
    await database.close()
    logger.info("Application shutdown complete")


def install_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AssistantError)
    async def assistant_error_handler(request: Request, exc: AssistantError):
        details = exc.details
        if exc.status_code >= 500:
            logger.error(
                "Request failed",
                error_code=exc.error_code,
                error=exc.message,
                details=exc.details,
                path=request.url.path,
            )
            # Driver and upstream messages stay in the log outside development
            if not request.app.state.settings.is_development:
                details = None
        headers = {"Retry-After": str(exc.retry_after)} if isinstance(exc, RateLimitError) else None
        return error_response(request, exc.status_code, exc.error_code, exc.message, details, headers)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        details = [
            {
                "field": ".".join(str(part) for part in error["loc"] if part != "body"),
                "message": error["msg"],
                "type": error["type"],
            }
            for error in exc.errors()
        ]
        return error_response(
            request, 400, "VALIDATION_ERROR", "Request validation failed", jsonable_encoder(details)
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            return error_response(
                request, 404, "NOT_FOUND", f"Route {request.method} {request.url.path} not found"
            )
        return error_response(request, exc.status_code, "HTTP_ERROR", str(exc.detail))


def create_app(
    settings: Optional[Settings] = None,
    voice_client: Optional[VoiceClient] = None,
    response_generator: Optional[ResponseGenerator] = None
) -> FastAPI:
    """
    Build the application and its services.

    Args:
        settings: Configuration; read from the environment when omitted
        voice_client: Text-to-speech backend; ElevenLabs when omitted
        response_generator: Reply generator; canned replies when omitted
    """
    settings = settings or get_settings()
    configure_logging(settings.LOG_LEVEL, settings.JSON_LOGS)

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Conversational assistant backend for a real estate brokerage",
        lifespan=lifespan,
    )

    database = Database.from_settings(settings)
    conversation_manager = ConversationManager(database, settings)

    app.state.settings = settings
    app.state.started_at = time.time()
    app.state.database = database
    app.state.conversation_manager = conversation_manager
    app.state.ai_service = AIService(
        settings,
        conversation_manager,
        voice_client or ElevenLabsClient(settings),
        response_generator,
    )
    app.state.broker_service = BrokerService(database, settings)
    app.state.rate_limiters = build_rate_limiters(settings)

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
        expose_headers=["X-Request-ID", "X-Voice-ID", "X-Text-Length", "X-Audio-Format"],
    )
    install_request_middleware(app, settings)
    install_exception_handlers(app)

    # Include routers
    app.include_router(chat_router)
    app.include_router(voice_router)
    app.include_router(properties_router)
    app.include_router(health_router)

    @app.get("/")
    async def service_banner():
        """Service information endpoint."""
        return {
            "service": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "status": "operational",
            "compliance": settings.COMPLIANCE_LEVEL,
            "endpoints": {
                "chat": "/api/chat",
                "voice": "/api/voice",
                "properties": "/api/properties",
                "agents": "/api/agents",
                "health": "/api/health",
            },
        }

    return app
