"""
repositories/ - Data Access Layer
==================================
One interface (LabRepository) with two interchangeable backends:
PostgresRepository for durable storage and MemoryRepository for tests and
local runs. Callers above this layer only ever talk to LabRepository.
"""

from typing import Optional

from config import STORAGE_BACKEND
from repositories.base import LabRepository
from repositories.memory_repo import MemoryRepository
from repositories.postgres_repo import PostgresRepository
from repositories.search import SearchResults
from utils.logger import get_logger

logger = get_logger(__name__)

__all__ = [
    "LabRepository",
    "MemoryRepository",
    "PostgresRepository",
    "SearchResults",
    "create_repository",
]


def create_repository(backend: Optional[str] = None) -> LabRepository:
    """
    Build the configured storage backend.

    Args:
        backend: 'postgres' or 'memory'; defaults to STORAGE_BACKEND.

    Returns:
        A ready-to-use LabRepository. For postgres the connection pool is
        initialized (and the schema created) on first use.

    Raises:
        ValueError: For an unknown backend name.
        StorageUnavailable: If the database cannot be reached.
    """
    name = (backend or STORAGE_BACKEND).strip().lower()
    if name == "memory":
        logger.info("Using in-memory storage backend.")
        return MemoryRepository()
    if name == "postgres":
        from db.connection import init_pool
        from db.init_db import create_tables

        init_pool()
        create_tables()
        logger.info("Using PostgreSQL storage backend.")
        return PostgresRepository()
    raise ValueError(f"Unknown storage backend: {name!r}")
