"""
Database module.
Contains database connection management and the jobs table model.
"""

from jobqueue.db.connection import (
    close_db,
    get_engine,
    get_session_factory,
    init_db,
)
from jobqueue.db.models import Base, JobModel

__all__ = [
    "get_session_factory",
    "get_engine",
    "init_db",
    "close_db",
    "JobModel",
    "Base",
]
