"""
Pydantic-based configuration models for the chatline server.

Each section is a BaseSettings class with its own environment prefix;
AppConfig composes them. Invalid or missing required values raise at
construction, which happens once at startup.
"""

import json
from typing import Annotated, Any

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode

from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_TOKEN_LIFETIME_SECONDS = 7 * 24 * 60 * 60


def _parse_env_list(candidate: Any) -> list[str]:
    """Parse a value from the environment as a JSON list or CSV."""
    if candidate is None:
        return []
    if isinstance(candidate, (list, tuple)):
        return [str(item).strip() for item in candidate if str(item).strip()]
    s = str(candidate).strip()
    if not s:
        return []
    try:
        loaded = json.loads(s)
        if isinstance(loaded, list):
            return [str(item).strip() for item in loaded if str(item).strip()]
    except json.JSONDecodeError:
        pass
    return [item.strip() for item in s.split(",") if item.strip()]


class ServerConfig(BaseSettings):
    """Server network configuration."""

    host: str = Field(default="127.0.0.1", description="Server bind address")
    port: int = Field(default=3003, description="Server port")

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Validate port is in valid range."""
        if not 1024 <= v <= 65535:
            logger.error("Invalid server port", port=v, valid_range="1024-65535")
            raise ValueError("Port must be between 1024 and 65535")
        return v

    model_config = {"env_prefix": "SERVER_", "case_sensitive": False, "extra": "ignore"}


class DatabaseConfig(BaseSettings):
    """Database configuration."""

    url: str = Field(..., description="Database URL (required)")
    echo: bool = Field(default=False, description="Echo SQL statements")
    pool_size: int = Field(default=5, description="Number of connections to maintain in pool")
    max_overflow: int = Field(default=10, description="Additional connections beyond pool_size")
    pool_timeout: int = Field(default=30, description="Seconds to wait for a pooled connection")

    @field_validator("url")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Validate database URL format - PostgreSQL, or SQLite via aiosqlite."""
        if not v:
            logger.error("Database URL validation failed - empty URL")
            raise ValueError("Database URL cannot be empty")
        if not (v.startswith("postgresql") or v.startswith("sqlite+aiosqlite")):
            logger.error(
                "Database URL validation failed - invalid protocol",
                url_preview=v[:50],
                expected_protocols=["postgresql", "sqlite+aiosqlite"],
            )
            raise ValueError("Database URL must start with 'postgresql' or 'sqlite+aiosqlite'")
        return v

    @field_validator("pool_size", "max_overflow", "pool_timeout")
    @classmethod
    def validate_pool_config(cls, v: int) -> int:
        """Validate pool configuration values are positive."""
        if v < 1:
            raise ValueError("Pool configuration values must be at least 1")
        return v

    @property
    def async_url(self) -> str:
        """URL with the async driver made explicit."""
        if self.url.startswith("postgresql://"):
            return self.url.replace("postgresql://", "postgresql+asyncpg://", 1)
        return self.url

    model_config = {"env_prefix": "DATABASE_", "case_sensitive": False, "extra": "ignore"}


class AuthConfig(BaseSettings):
    """Token signing and auth cookie configuration."""

    jwt_secret: str = Field(
        ...,
        validation_alias=AliasChoices("AUTH_JWT_SECRET", "JWT_SECRET"),
        description="HMAC secret used to sign session tokens (required)",
    )
    jwt_algorithm: str = Field(default="HS256", description="Token signing algorithm")
    token_lifetime_seconds: int = Field(
        default=DEFAULT_TOKEN_LIFETIME_SECONDS, description="Default lifetime of issued tokens"
    )
    cookie_name: str = Field(default="auth_token", description="Name of the session cookie")
    cookie_secure: bool = Field(default=False, description="Set the Secure flag on the session cookie")
    cookie_samesite: str = Field(default="lax", description="SameSite policy for the session cookie")
    min_password_length: int = Field(default=8, description="Minimum accepted password length")

    @field_validator("jwt_secret")
    @classmethod
    def validate_jwt_secret(cls, v: str) -> str:
        """Validate the signing secret is present and not trivially short."""
        if not v or not v.strip():
            logger.error("JWT secret validation failed - empty secret")
            raise ValueError("JWT secret must be configured")
        if len(v) < 16:
            logger.error("JWT secret validation failed - too short", secret_length=len(v), minimum_length=16)
            raise ValueError("JWT secret must be at least 16 characters")
        return v

    @field_validator("jwt_algorithm")
    @classmethod
    def validate_algorithm(cls, v: str) -> str:
        valid_algorithms = ["HS256", "HS384", "HS512"]
        if v.upper() not in valid_algorithms:
            raise ValueError(f"JWT algorithm must be one of {valid_algorithms}, got '{v}'")
        return v.upper()

    @field_validator("token_lifetime_seconds")
    @classmethod
    def validate_lifetime(cls, v: int) -> int:
        if v < 60:
            raise ValueError("Token lifetime must be at least 60 seconds")
        return v

    @field_validator("cookie_samesite")
    @classmethod
    def validate_samesite(cls, v: str) -> str:
        valid_policies = ["lax", "strict", "none"]
        if v.lower() not in valid_policies:
            raise ValueError(f"Cookie SameSite must be one of {valid_policies}, got '{v}'")
        return v.lower()

    @field_validator("min_password_length")
    @classmethod
    def validate_min_password_length(cls, v: int) -> int:
        if v < 8:
            raise ValueError("Minimum password length cannot be lower than 8")
        return v

    model_config = {"env_prefix": "AUTH_", "case_sensitive": False, "extra": "ignore", "populate_by_name": True}


class RealtimeConfig(BaseSettings):
    """Realtime gateway configuration."""

    rate_limit_capacity: int = Field(default=10, description="Inbound events allowed per window and connection")
    rate_limit_window_seconds: float = Field(default=60.0, description="Fixed rate-limit window length in seconds")
    notify_on_rate_limit: bool = Field(
        default=False, description="Send an error event to the emitter when an event is dropped"
    )
    max_message_length: int = Field(default=2000, description="Maximum message text length")

    @field_validator("rate_limit_capacity", "max_message_length")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Validate value is positive."""
        if v < 1:
            raise ValueError("Value must be at least 1")
        return v

    @field_validator("rate_limit_window_seconds")
    @classmethod
    def validate_window(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Rate limit window must be positive")
        return v

    model_config = {"env_prefix": "REALTIME_", "case_sensitive": False, "extra": "ignore"}


class EmailConfig(BaseSettings):
    """Outbound email (Resend) configuration."""

    resend_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("EMAIL_RESEND_API_KEY", "RESEND_API_KEY"),
        description="Resend API key; email is disabled without it",
    )
    from_address: str | None = Field(
        default=None,
        validation_alias=AliasChoices("EMAIL_FROM_ADDRESS", "RESEND_FROM_EMAIL"),
        description="Sender address for outbound mail",
    )
    from_name: str = Field(default="Chatline", description="Sender display name")
    api_url: str = Field(default="https://api.resend.com/emails", description="Resend send endpoint")
    timeout_seconds: float = Field(default=10.0, description="HTTP timeout for the email provider")
    client_url: str = Field(
        default="http://localhost:5173",
        validation_alias=AliasChoices("EMAIL_CLIENT_URL", "CLIENT_URL"),
        description="Link included in the welcome email",
    )

    @property
    def enabled(self) -> bool:
        return bool(self.resend_api_key and self.from_address)

    model_config = {"env_prefix": "EMAIL_", "case_sensitive": False, "extra": "ignore", "populate_by_name": True}


class CORSConfig(BaseSettings):
    """Cross-origin resource sharing configuration."""

    allow_origins: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["http://localhost:5173"],
        validation_alias=AliasChoices("CORS_ALLOW_ORIGINS", "FRONTEND_URL"),
        description="Origins permitted to access the API",
    )
    allow_credentials: bool = Field(default=True, description="Whether credentialed requests are accepted")
    allow_methods: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        description="HTTP methods permitted by CORS responses",
    )
    allow_headers: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["Content-Type", "Authorization", "X-Requested-With", "X-Correlation-ID"],
        description="Request headers permitted by CORS responses",
    )

    @field_validator("allow_origins", mode="before")
    @classmethod
    def parse_allow_origins(cls, value: object) -> list[str]:
        origins = _parse_env_list(value)
        if not origins:
            raise ValueError("At least one CORS origin must be provided")
        return origins

    @field_validator("allow_methods", mode="before")
    @classmethod
    def parse_allow_methods(cls, value: object) -> list[str]:
        return [method.upper() for method in _parse_env_list(value)]

    @field_validator("allow_headers", mode="before")
    @classmethod
    def parse_allow_headers(cls, value: object) -> list[str]:
        return _parse_env_list(value)

    model_config = {"env_prefix": "CORS_", "case_sensitive": False, "extra": "ignore", "populate_by_name": True}


class LoggingConfig(BaseSettings):
    """Logging configuration."""

    environment: str = Field(default="local", description="Logging environment")
    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="json", description="Log format")
    log_base: str = Field(default="logs", description="Base log directory")
    rotation_max_size: str = Field(default="10MB", description="Log rotation max size")
    rotation_backup_count: int = Field(default=5, description="Number of backup log files")
    file_logging: bool = Field(default=True, description="Write logs to a rotating file")
    disable_logging: bool = Field(default=False, description="Disable all logging")

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate logging environment."""
        valid_environments = ["local", "unit_test", "production"]
        if v not in valid_environments:
            logger.error("Invalid logging environment", environment=v, valid_environments=valid_environments)
            raise ValueError(f"Environment must be one of {valid_environments}, got '{v}'")
        return v

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}, got '{v}'")
        return v_upper

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        """Validate log format."""
        valid_formats = ["json", "human"]
        if v not in valid_formats:
            raise ValueError(f"Log format must be one of {valid_formats}, got '{v}'")
        return v

    model_config = {"env_prefix": "LOGGING_", "case_sensitive": False, "extra": "ignore"}

    def to_logging_dict(self) -> dict:
        """Dict shape consumed by setup_enhanced_logging()."""
        return {
            "environment": self.environment,
            "level": self.level,
            "format": self.format,
            "log_base": self.log_base,
            "rotation": {
                "max_size": self.rotation_max_size,
                "backup_count": self.rotation_backup_count,
            },
            "file_logging": self.file_logging,
            "disable_logging": self.disable_logging,
        }


class AppConfig(BaseSettings):
    """
    Composite application configuration.

    Aggregates every section. Access via get_config().
    """

    server: ServerConfig = Field(default_factory=ServerConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)  # type: ignore[arg-type]
    auth: AuthConfig = Field(default_factory=AuthConfig)  # type: ignore[arg-type]
    realtime: RealtimeConfig = Field(default_factory=RealtimeConfig)
    email: EmailConfig = Field(default_factory=EmailConfig)
    cors: CORSConfig = Field(default_factory=CORSConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "case_sensitive": False, "extra": "ignore"}

    @property
    def is_production(self) -> bool:
        return self.logging.environment == "production"

    def to_logging_dict(self) -> dict:
        """Configuration dict for setup_enhanced_logging()."""
        return {"logging": self.logging.to_logging_dict()}
