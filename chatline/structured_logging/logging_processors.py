"""
Logging processors for structlog event processing.

This module provides processors for sanitizing sensitive data and adding
correlation IDs and request context to every log entry.
"""

import re
import uuid
from typing import Any

# Patterns match whole words or specific suffixes of event-dict keys
SENSITIVE_PATTERNS = [
    r"\bpassword\b",
    r"\bhashed_password\b",
    r"\bplaintext\b",
    r"\btoken\b",
    r"\bauth_token\b",
    r"\bsecret\b",
    r"\bjwt_secret\b",
    r"_key\b",  # api_key, resend_api_key, ...
    r"^key$",
    r"\bcredential\b",
    r"\bjwt\b",
    r"\bbearer\b",
    r"\bauthorization\b",
    r"\bcookie\b",
    r"\bcookie_header\b",
]

_COMPILED_PATTERNS = [re.compile(pattern) for pattern in SENSITIVE_PATTERNS]

REDACTED = "[REDACTED]"


def _is_sensitive(key: str) -> bool:
    key_lower = key.lower()
    return any(pattern.search(key_lower) for pattern in _COMPILED_PATTERNS)


def sanitize_sensitive_data(_logger: Any, _name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Remove sensitive data from log entries.

    Redacts passwords, tokens, secrets and credential headers so they never
    reach a log sink, including inside nested dictionaries.

    Args:
        _logger: Logger instance (unused)
        _name: Logger name (unused)
        event_dict: Event dictionary to sanitize

    Returns:
        Sanitized event dictionary
    """

    def sanitize_dict(d: dict[str, Any]) -> dict[str, Any]:
        sanitized: dict[str, Any] = {}
        for key, value in d.items():
            if isinstance(key, str) and _is_sensitive(key):
                sanitized[key] = REDACTED
            elif isinstance(value, dict):
                sanitized[key] = sanitize_dict(value)
            else:
                sanitized[key] = value
        return sanitized

    return sanitize_dict(event_dict)


def add_correlation_id(_logger: Any, _name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Add correlation ID to log entries if not already present.

    Entries emitted inside a request already carry the bound correlation id
    once contextvars are merged; everything else gets a fresh one.
    """
    if "correlation_id" not in event_dict:
        event_dict["correlation_id"] = str(uuid.uuid4())

    return event_dict


def add_request_context(_logger: Any, _name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Add the logger name for traceability when structlog did not set one."""
    if "logger_name" not in event_dict:
        event_dict["logger_name"] = _name

    return event_dict
