"""
Store module.
Contains the store protocol and its SQL and in-memory implementations.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from jobqueue.config import Settings, get_settings
from jobqueue.db.connection import get_session_factory
from jobqueue.store.base import JobStore
from jobqueue.store.memory import MemoryJobStore
from jobqueue.store.sql import SQLAlchemyJobStore

logger = logging.getLogger(__name__)


def create_store(
    settings: Settings | None = None,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
) -> JobStore:
    """
    Build the store selected by the store_backend setting.

    Args:
        settings: Application settings; defaults to the cached settings.
        session_factory: Session factory for the SQL store; defaults to the one
            created by init_db().

    Returns:
        The configured job store.
    """
    settings = settings or get_settings()

    store: JobStore
    if settings.store_backend == "memory":
        store = MemoryJobStore()
    else:
        store = SQLAlchemyJobStore(session_factory or get_session_factory())

    logger.info("Job store initialized", extra={"backend": store.name})
    return store


__all__ = ["JobStore", "MemoryJobStore", "SQLAlchemyJobStore", "create_store"]
