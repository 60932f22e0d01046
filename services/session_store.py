"""
Session Store Module
Small key/value repository standing in for browser local storage:
user registry, logged-in users and per-client popup dismissal.
"""

import copy
import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, Optional

logger = logging.getLogger("SessionStore")


class SessionRepository(ABC):
    """get / set / clear over JSON-serializable values"""

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        ...

    @abstractmethod
    def set(self, key: str, value: Any):
        ...

    @abstractmethod
    def clear(self, key: str):
        ...


class InMemorySessionRepository(SessionRepository):

    def __init__(self):
        self._data = {}
        self._lock = threading.Lock()

    def get(self, key, default=None):
        with self._lock:
            if key not in self._data:
                return default
            return copy.deepcopy(self._data[key])

    def set(self, key, value):
        with self._lock:
            self._data[key] = copy.deepcopy(value)

    def clear(self, key):
        with self._lock:
            self._data.pop(key, None)


class SqlSessionRepository(SessionRepository):
    """SQLAlchemy-backed repository (table ``session_entries``)"""

    def __init__(self, session_factory=None, database_url: Optional[str] = None):
        from admin.database import create_session_factory, get_session_factory

        if session_factory is None:
            session_factory = create_session_factory(database_url) if database_url else get_session_factory()
        self.session_factory = session_factory

    def get(self, key, default=None):
        from admin.models import SessionEntry

        db = self.session_factory()
        try:
            entry = db.get(SessionEntry, key)
            return copy.deepcopy(entry.value) if entry is not None else default
        finally:
            db.close()

    def set(self, key, value):
        from admin.models import SessionEntry

        db = self.session_factory()
        try:
            entry = db.get(SessionEntry, key)
            if entry is None:
                db.add(SessionEntry(key=key, value=value))
            else:
                entry.value = value
            db.commit()
        except Exception:
            db.rollback()
            logger.exception(f"[SESSION] Failed to store '{key}'")
            raise
        finally:
            db.close()

    def clear(self, key):
        from admin.models import SessionEntry

        db = self.session_factory()
        try:
            entry = db.get(SessionEntry, key)
            if entry is not None:
                db.delete(entry)
                db.commit()
        finally:
            db.close()


def build_session_repository(backend: str, database_url: Optional[str] = None) -> SessionRepository:
    if backend == "memory":
        return InMemorySessionRepository()
    logger.info(f"[SESSION] Using SQL session store at {database_url}")
    return SqlSessionRepository(database_url=database_url)
