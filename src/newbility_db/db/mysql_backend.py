"""MySQL backend on aiomysql.

aiomysql (through PyMySQL) binds with ``%s`` and interpolates the whole
statement with ``%``, so literal percent signs in translated SQL are doubled.
Statements without arguments are sent as written.
The pool runs in autocommit mode; explicit ``BEGIN`` opens a transaction.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from newbility_db.db.backend import BaseDialect, clamp_rowcount
from newbility_db.db.provider import DatabaseProvider
from newbility_db.errors import ExecutionError
from newbility_db.models.options import DatabaseOptions
from newbility_db.models.result import ExecuteResult

if TYPE_CHECKING:
    import aiomysql

DEFAULT_PORT = 3306


class MySQLDialect(BaseDialect):
    """aiomysql connection adapter."""

    name = "mysql"
    backslash_escapes = True

    def placeholder_for(self, name: str, index: int) -> str:
        """Return ``%s``."""
        return "%s"

    def escape_text(self, text: str) -> str:
        """Double ``%`` so PyMySQL's interpolation leaves it literal."""
        return text.replace("%", "%%")

    async def raw_execute(self, sql: str, args: Sequence[Any] = ()) -> ExecuteResult:
        """Run ``sql`` on a DictCursor and collect rows or the affected count."""
        import aiomysql as _aiomysql

        conn: aiomysql.Connection = self.conn
        try:
            async with conn.cursor(_aiomysql.DictCursor) as cur:
                await cur.execute(sql, tuple(args) or None)
                if cur.description:
                    rows = [dict(row) for row in await cur.fetchall()]
                    return ExecuteResult(row_count=len(rows), rows=rows)
                return ExecuteResult(row_count=clamp_rowcount(cur.rowcount))
        except _aiomysql.Error as exc:
            raise ExecutionError(sql, exc) from exc


class MySQLProvider(DatabaseProvider):
    """Provider over an ``aiomysql.Pool`` sized to ``options.pool.max``."""

    def __init__(
        self,
        pool: aiomysql.Pool,
        options: DatabaseOptions,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize with an already-created aiomysql pool."""
        super().__init__("mysql", options, logger=logger)
        self._pool = pool

    @classmethod
    async def create(
        cls, options: DatabaseOptions, *, logger: logging.Logger | None = None
    ) -> MySQLProvider:
        """Create the aiomysql pool and wrap it in a provider."""
        import aiomysql as _aiomysql

        pool = await _aiomysql.create_pool(
            host=options.address,
            port=options.port or DEFAULT_PORT,
            db=options.database,
            user=options.user_name or "",
            password=options.password or "",
            minsize=1,
            maxsize=options.pool.max,
            autocommit=True,
        )
        provider = cls(pool, options, logger=logger)
        provider._logger.info(
            "Opened mysql pool to %s:%s/%s (max %d)",
            options.address,
            options.port or DEFAULT_PORT,
            options.database,
            options.pool.max,
        )
        return provider

    async def _acquire_connection(self) -> Any:
        return await self._pool.acquire()

    async def _release_connection(self, conn: Any) -> None:
        await self._pool.release(conn)

    def _create_dialect(self, conn: Any) -> BaseDialect:
        return MySQLDialect(conn)

    async def _close_pool(self) -> None:
        self._pool.close()
        await self._pool.wait_closed()
