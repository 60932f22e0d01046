"""
SQLAlchemy models for the session store
"""

from sqlalchemy import Column, DateTime, String, JSON
from sqlalchemy.sql import func

from admin.database import Base


class SessionEntry(Base):
    """
    One key/value pair of the session repository
    (user registry, logged-in users, popup dismissal flags)
    """
    __tablename__ = "session_entries"

    key = Column(String, primary_key=True, index=True)

    # Arbitrary JSON payload
    value = Column(JSON, nullable=True)

    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<SessionEntry(key='{self.key}')>"
