"""
Database setup for the session store
SQLite (by default) configuration and session management
"""

from sqlalchemy import create_engine
from sqlalchemy.ext.declarative import declarative_base
from sqlalchemy.orm import sessionmaker

from utils.config import Config

# Base class for models
Base = declarative_base()


def create_session_factory(database_url: str):
    """
    Create an engine for ``database_url``, make sure the tables exist and
    return a sessionmaker bound to it
    """
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False  # Needed for SQLite

    engine = create_engine(database_url, connect_args=connect_args)

    from admin.models import SessionEntry  # noqa: F401  Import here to avoid circular imports
    Base.metadata.create_all(bind=engine)

    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


_session_factory = None


def get_session_factory():
    """Lazily create the session factory for the configured database"""
    global _session_factory
    if _session_factory is None:
        _session_factory = create_session_factory(Config.SESSION_DATABASE_URL)
    return _session_factory
