"""Persistent application log records.

``log()`` stores one row per call in the ``log`` table (or a table named
after the record type)::

    await log({"user": "ana", "action": "login"})
    await log("cache cleared", type="maintenance")

Every row carries ``log_level`` and ``log_timestamp`` (Unix seconds).
Mappings and dataclasses contribute one column per field; any other value
is stored in a ``content`` column. The table must already exist.
"""

from __future__ import annotations

import dataclasses
import re
import time
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from kima.data.database import get_db
from kima.data.errors import QueryError

if TYPE_CHECKING:
    from kima.data.database import Database

LOG_TABLE = "log"
INFO = "information"
LOG_LEVELS = frozenset({INFO})

_IDENTIFIER_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


def log_fields(content: Any, level: str | None = None) -> dict[str, Any]:
    """Build the column/value mapping for one log record."""
    fields: dict[str, Any] = {
        "log_level": level if level in LOG_LEVELS else INFO,
        "log_timestamp": int(time.time()),
    }
    if isinstance(content, Mapping):
        fields.update(content)
    elif dataclasses.is_dataclass(content) and not isinstance(content, type):
        fields.update(dataclasses.asdict(content))
    else:
        fields["content"] = content
    return fields


def _identifier(name: Any) -> str:
    if not isinstance(name, str) or not _IDENTIFIER_RE.fullmatch(name):
        msg = f"Invalid log table or column name: {name!r}"
        raise QueryError(msg)
    return name


async def log(
    content: Any,
    type: str | None = None,  # noqa: A002
    level: str | None = None,
    *,
    db: Database | None = None,
) -> None:
    """Insert a log record through *db*, or the app database by default."""
    database = db or get_db()
    table = _identifier(type or LOG_TABLE)
    fields = log_fields(content, level)
    columns = ", ".join(_identifier(name) for name in fields)
    if database.driver == "sqlite":
        placeholders = ", ".join("?" for _ in fields)
    else:
        placeholders = ", ".join(f"${i}" for i in range(1, len(fields) + 1))
    await database.execute(
        f"INSERT INTO {table} ({columns}) VALUES ({placeholders})",  # noqa: S608
        *fields.values(),
    )
