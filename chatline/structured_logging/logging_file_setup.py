"""
Handler setup for the structured logging system.

structlog renders each entry to a string and hands it to the standard
library, so the sinks configured here are ordinary stdlib handlers: one
console handler on stderr and one size-rotated file per environment.
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

import structlog

logger = structlog.get_logger(__name__)

VALID_ENVIRONMENTS = ["local", "unit_test", "production"]

_HANDLER_MARKER = "_chatline_handler"


def detect_environment() -> str:
    """
    Detect the current environment.

    Returns:
        Environment name: "unit_test", "local", or "production"
    """
    if "pytest" in sys.modules:
        return "unit_test"

    logging_env = os.getenv("LOGGING_ENVIRONMENT", "")
    if logging_env in VALID_ENVIRONMENTS:
        return logging_env

    return "local"


def resolve_log_base(log_base: str) -> Path:
    """
    Resolve log_base to an absolute path relative to the project root.

    The project root is the nearest directory (from the working directory
    upwards) holding a pyproject.toml; the working directory otherwise.
    """
    log_path = Path(log_base)
    if log_path.is_absolute():
        return log_path

    current_dir = Path.cwd()
    for parent in [current_dir, *current_dir.parents]:
        if (parent / "pyproject.toml").exists():
            return parent / log_path
    return current_dir / log_path


def convert_max_size_to_bytes(max_size: str | int) -> int:
    """Convert sizes such as "10MB" or "512KB" to a byte count."""
    if isinstance(max_size, int):
        return max_size
    text = max_size.strip().upper()
    for suffix, factor in (("GB", 1024**3), ("MB", 1024**2), ("KB", 1024), ("B", 1)):
        if text.endswith(suffix):
            return int(float(text[: -len(suffix)]) * factor)
    return int(text)


def _remove_existing_handlers(root_logger: logging.Logger) -> None:
    for handler in list(root_logger.handlers):
        if getattr(handler, _HANDLER_MARKER, False):
            root_logger.removeHandler(handler)
            handler.close()


def setup_file_logging(environment: str, log_config: dict[str, Any], log_level: str) -> list[logging.Handler]:
    """
    Attach console and rotating file handlers to the root logger.

    Calling this again replaces the handlers installed by a previous call,
    leaving foreign handlers (pytest's caplog, for instance) untouched.

    Args:
        environment: Environment name, used as the log sub-directory
        log_config: Logging section as produced by LoggingConfig.to_logging_dict()
        log_level: Minimum level for the root logger

    Returns:
        The handlers that were installed
    """
    root_logger = logging.getLogger()
    _remove_existing_handlers(root_logger)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    formatter = logging.Formatter("%(message)s")
    handlers: list[logging.Handler] = []

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    handlers.append(console_handler)

    if log_config.get("file_logging", True):
        env_log_dir = resolve_log_base(log_config.get("log_base", "logs")) / environment
        try:
            env_log_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.warning(
                "Failed to create log directory, file logging disabled",
                directory=str(env_log_dir),
                error=str(e),
                error_type=type(e).__name__,
            )
        else:
            rotation = log_config.get("rotation", {})
            file_handler = RotatingFileHandler(
                env_log_dir / "chatline.log",
                maxBytes=convert_max_size_to_bytes(rotation.get("max_size", "10MB")),
                backupCount=int(rotation.get("backup_count", 5)),
                encoding="utf-8",
            )
            file_handler.setFormatter(formatter)
            handlers.append(file_handler)

    for handler in handlers:
        setattr(handler, _HANDLER_MARKER, True)
        root_logger.addHandler(handler)

    return handlers
