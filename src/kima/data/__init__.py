"""Async database access for kima.

SQL in, dataclasses out. Not an ORM.

Basic usage::

    from kima.data import Database

    db = Database("sqlite:///app.db")
    users = await db.fetch(User, "SELECT * FROM users WHERE active = ?", True)

SQLite works out of the box; PostgreSQL needs ``asyncpg``::

    pip install kima[data-pg]
"""

from kima.data.database import Database, FetchResult, get_db
from kima.data.errors import BindValueError, DataError, DriverNotInstalledError, QueryError

__all__ = [
    "BindValueError",
    "DataError",
    "Database",
    "DriverNotInstalledError",
    "FetchResult",
    "QueryError",
    "get_db",
]
