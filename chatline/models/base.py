"""
Shared SQLAlchemy DeclarativeBase for all models.

All models must inherit from this Base so string references in
relationships resolve through one registry.
"""

from sqlalchemy.orm import DeclarativeBase

from ..metadata import metadata


class Base(DeclarativeBase):
    """Shared declarative base for all chatline models."""

    metadata = metadata
