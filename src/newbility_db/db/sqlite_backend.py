"""SQLite backend on aiosqlite.

SQLite has no server-side pool, so the provider keeps a list of idle
connections, opening new ones lazily up to ``pool.max`` (the bound itself
is enforced by the provider's semaphore). Connections run with
``isolation_level=None`` so the explicit ``BEGIN``/``COMMIT`` issued by the
client are the only transaction boundaries.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import aiosqlite

from newbility_db.db.backend import BaseDialect, clamp_rowcount
from newbility_db.db.provider import DatabaseProvider
from newbility_db.errors import ExecutionError
from newbility_db.models.options import DatabaseOptions
from newbility_db.models.result import ExecuteResult


class SQLiteDialect(BaseDialect):
    """aiosqlite connection adapter."""

    name = "sqlite"

    def placeholder_for(self, name: str, index: int) -> str:
        """Return ``?``."""
        return "?"

    async def raw_execute(self, sql: str, args: Sequence[Any] = ()) -> ExecuteResult:
        """Run ``sql`` and collect rows or the affected row count."""
        conn: aiosqlite.Connection = self.conn
        try:
            async with conn.execute(sql, tuple(args)) as cursor:
                if cursor.description:
                    rows = [dict(row) for row in await cursor.fetchall()]
                    return ExecuteResult(row_count=len(rows), rows=rows)
                return ExecuteResult(row_count=clamp_rowcount(cursor.rowcount))
        except sqlite3.Error as exc:
            raise ExecutionError(sql, exc) from exc


class SQLiteProvider(DatabaseProvider):
    """Provider over a file-backed SQLite database."""

    def __init__(
        self,
        options: DatabaseOptions,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize; connections are opened on first use."""
        super().__init__("sqlite", options, logger=logger)
        self._path = options.database
        self._idle: list[aiosqlite.Connection] = []
        self._open: set[aiosqlite.Connection] = set()

    @classmethod
    async def create(
        cls, options: DatabaseOptions, *, logger: logging.Logger | None = None
    ) -> SQLiteProvider:
        """Create a provider, making sure the database directory exists."""
        if options.database != ":memory:":
            Path(options.database).expanduser().parent.mkdir(parents=True, exist_ok=True)
        provider = cls(options, logger=logger)
        provider._logger.info(
            "Opened sqlite pool on %s (max %d)", options.database, options.pool.max
        )
        return provider

    @property
    def open_connections(self) -> int:
        """Number of SQLite connections currently open (idle or borrowed)."""
        return len(self._open)

    async def _connect(self) -> aiosqlite.Connection:
        path = self._path if self._path == ":memory:" else str(Path(self._path).expanduser())
        conn = await aiosqlite.connect(path, isolation_level=None)
        conn.row_factory = aiosqlite.Row
        await conn.execute("PRAGMA foreign_keys=ON")
        self._open.add(conn)
        return conn

    async def _acquire_connection(self) -> Any:
        if self._idle:
            return self._idle.pop()
        return await self._connect()

    async def _release_connection(self, conn: Any) -> None:
        if conn.in_transaction:
            # Never hand a connection with a dangling transaction to the next borrower
            try:
                await conn.rollback()
            except Exception:
                self._open.discard(conn)
                await conn.close()
                raise
        self._idle.append(conn)

    def _create_dialect(self, conn: Any) -> BaseDialect:
        return SQLiteDialect(conn)

    async def _close_pool(self) -> None:
        while self._idle:
            conn = self._idle.pop()
            self._open.discard(conn)
            await conn.close()
