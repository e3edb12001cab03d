"""
Application lifecycle management for the Chatline server.

Startup wires the shared services onto app.state in dependency order; any
failure here (bad secret, unreachable database) aborts startup. Shutdown
closes live sockets before the database pool.
"""

from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import FastAPI

from ..auth.token_service import TokenService
from ..config import get_config
from ..config.models import AppConfig
from ..database import close_db, init_db
from ..realtime.connection_auth import ConnectionAuthenticator
from ..realtime.gateway import RealtimeGateway
from ..realtime.presence_registry import PresenceRegistry
from ..realtime.rate_limiter import EventRateLimiter
from ..services.email_service import EmailService
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)

__all__ = ["lifespan", "initialize_services", "shutdown_services"]


async def initialize_services(app: FastAPI, config: AppConfig) -> None:
    """Create the shared services and attach them to app.state."""
    await init_db(config.database)

    token_service = TokenService(
        config.auth.jwt_secret,
        algorithm=config.auth.jwt_algorithm,
        default_lifetime=timedelta(seconds=config.auth.token_lifetime_seconds),
    )
    rate_limiter = EventRateLimiter(
        capacity=config.realtime.rate_limit_capacity,
        window_seconds=config.realtime.rate_limit_window_seconds,
    )
    gateway = RealtimeGateway(
        ConnectionAuthenticator(token_service, cookie_name=config.auth.cookie_name),
        PresenceRegistry(),
        rate_limiter,
        notify_on_rate_limit=config.realtime.notify_on_rate_limit,
        max_message_length=config.realtime.max_message_length,
    )

    app.state.config = config
    app.state.token_service = token_service
    app.state.gateway = gateway
    app.state.email_service = EmailService(config.email)

    logger.info(
        "Services initialized",
        rate_limit_capacity=rate_limiter.capacity,
        rate_limit_window_seconds=rate_limiter.window_seconds,
        email_enabled=config.email.enabled,
    )


async def shutdown_services(app: FastAPI) -> None:
    gateway: RealtimeGateway | None = getattr(app.state, "gateway", None)
    if gateway is not None:
        await gateway.shutdown()
    await close_db()
    logger.info("Services shut down")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info("Starting Chatline server...")
    await initialize_services(app, get_config())
    logger.info("Chatline server started successfully")
    yield

    logger.info("Shutting down Chatline server...")
    await shutdown_services(app)
