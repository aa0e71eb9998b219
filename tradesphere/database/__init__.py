# tradesphere/database/__init__.py
"""Storage backends"""
from .database import Database
from .memory import MemoryDatabase

MEMORY_SCHEME = "memory://"


def create_database(url: str):
    """Pick the backend from the DATABASE_URL scheme"""
    if url.startswith(MEMORY_SCHEME):
        return MemoryDatabase()
    return Database(url)


__all__ = [
    'Database',
    'MemoryDatabase',
    'create_database',
]
