"""
FastAPI application factory for the Chatline server.

This module handles FastAPI app creation, middleware configuration,
and router registration.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..api.health import health_router
from ..api.messages import messages_router
from ..api.real_time import realtime_router
from ..auth.endpoints import auth_router
from ..config import get_config
from ..middleware.correlation_middleware import CORRELATION_HEADER, CorrelationMiddleware
from ..middleware.error_handling_middleware import setup_error_handling
from ..structured_logging.enhanced_logging_config import get_logger
from .lifespan import lifespan

logger = get_logger(__name__)


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        FastAPI: The configured FastAPI application instance
    """
    config = get_config()

    app = FastAPI(
        title="Chatline API",
        description="Chat backend with accounts, message history and realtime presence",
        version="0.1.0",
        lifespan=lifespan,
    )

    cors = config.cors
    logger.info(
        "CORS configuration",
        allow_origins=cors.allow_origins,
        allow_methods=cors.allow_methods,
        allow_headers=cors.allow_headers,
        allow_credentials=cors.allow_credentials,
    )

    # The last middleware added runs first
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors.allow_origins,
        allow_credentials=cors.allow_credentials,
        allow_methods=cors.allow_methods,
        allow_headers=cors.allow_headers,
        expose_headers=[CORRELATION_HEADER],
    )
    app.add_middleware(CorrelationMiddleware, correlation_header=CORRELATION_HEADER)

    # Include details in development, hide in production
    setup_error_handling(app, include_details=not config.is_production)

    app.include_router(auth_router)
    app.include_router(messages_router)
    app.include_router(realtime_router)
    app.include_router(health_router)

    return app
