"""
API module for Chatline.

This module provides the REST and websocket endpoints for the server.
"""

from .health import health_router
from .messages import messages_router
from .real_time import realtime_router

__all__ = [
    "health_router",
    "messages_router",
    "realtime_router",
]
