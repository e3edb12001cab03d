"""ORM models. Importing this package registers every table on the shared metadata."""

from .base import Base
from .message import Message
from .user import User

__all__ = ["Base", "Message", "User"]
