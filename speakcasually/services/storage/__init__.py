"""
Storage module - Database and object storage operations.
"""

from speakcasually.services.storage.database import (
    Base,
    close_db,
    get_engine,
    get_session,
    init_db,
    reset_engine,
)
from speakcasually.services.storage.models_db import Task
from speakcasually.services.storage.object_store import ObjectStore, get_object_store
from speakcasually.services.storage.repository import TaskRepository

__all__ = [
    "Base",
    "ObjectStore",
    "Task",
    "TaskRepository",
    "close_db",
    "get_engine",
    "get_object_store",
    "get_session",
    "init_db",
    "reset_engine",
]
