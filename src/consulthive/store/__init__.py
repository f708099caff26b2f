"""SQLite persistence for the marketplace lifecycle.

Provides the per-unit-of-work :class:`Database`, the schema DDL and the
repositories bound to each transaction.
"""

from consulthive.store.database import Database, UnitOfWork
from consulthive.store.rows import new_id, utcnow
from consulthive.store.schema import init_marketplace_schema

__all__ = [
    "Database",
    "UnitOfWork",
    "init_marketplace_schema",
    "new_id",
    "utcnow",
]
