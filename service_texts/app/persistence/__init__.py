"""
Persistence package for Texts Service.

Stores users and their texts. PostgreSQL is the production backend; the
in-memory backend serves local runs and tests.
"""

from .base import Persistence
from .memory import InMemoryPersistence
from .postgres import PostgreSQLPersistence

__all__ = ["Persistence", "InMemoryPersistence", "PostgreSQLPersistence"]
