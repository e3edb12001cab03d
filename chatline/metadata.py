"""
Shared SQLAlchemy metadata for chatline models.

Lives outside database.py so models can import it without a cycle.
"""

from sqlalchemy import MetaData

metadata = MetaData()
