"""SQLite connection for ``kima.data``: stdlib sqlite3 run on anyio worker threads.

Each statement runs together with its row fetch in one worker-thread call,
and rows come back as plain dicts. The connection starts in autocommit mode;
``begin()`` switches to manual commits until ``end()``.
"""

import sqlite3
from collections.abc import Sequence
from typing import Any

import anyio


def _dict_row(cursor: sqlite3.Cursor, row: tuple[Any, ...]) -> dict[str, Any]:
    return {desc[0]: value for desc, value in zip(cursor.description, row, strict=True)}


class SQLiteConnection:
    """One shared ``sqlite3.Connection``, usable from any worker thread."""

    __slots__ = ("_conn",)

    def __init__(self, conn: sqlite3.Connection) -> None:
        conn.row_factory = _dict_row
        self._conn = conn

    async def fetch_all(self, sql: str, params: Sequence[Any]) -> list[dict[str, Any]]:
        def run() -> list[dict[str, Any]]:
            return self._conn.execute(sql, params).fetchall()

        return await anyio.to_thread.run_sync(run)

    async def fetch_one(self, sql: str, params: Sequence[Any]) -> dict[str, Any] | None:
        def run() -> dict[str, Any] | None:
            return self._conn.execute(sql, params).fetchone()

        return await anyio.to_thread.run_sync(run)

    async def execute(self, sql: str, params: Sequence[Any] = ()) -> int:
        """Run one statement; returns the affected row count."""

        def run() -> int:
            return self._conn.execute(sql, params).rowcount

        return await anyio.to_thread.run_sync(run)

    async def script(self, sql: str) -> None:
        # executescript commits any pending transaction first
        await anyio.to_thread.run_sync(self._conn.executescript, sql)

    def begin(self) -> None:
        self._conn.autocommit = False

    def end(self) -> None:
        self._conn.autocommit = True

    async def commit(self) -> None:
        await anyio.to_thread.run_sync(self._conn.commit)

    async def rollback(self) -> None:
        await anyio.to_thread.run_sync(self._conn.rollback)

    async def close(self) -> None:
        await anyio.to_thread.run_sync(self._conn.close)


async def open_sqlite(path: str) -> SQLiteConnection:
    """Open *path* with foreign keys enforced."""

    def run() -> sqlite3.Connection:
        # check_same_thread=False: consecutive calls may land on different threads
        conn = sqlite3.connect(path, autocommit=True, check_same_thread=False)
        conn.execute("PRAGMA foreign_keys=ON")
        return conn

    return SQLiteConnection(await anyio.to_thread.run_sync(run))
