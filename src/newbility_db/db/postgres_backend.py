"""PostgreSQL backend on asyncpg.

Placeholders are ``$1, $2, ...``. Every statement goes through a prepared
statement so row-returning queries and DML share one code path; the row
count of DML is parsed from the command status string.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from newbility_db.db.backend import BaseDialect
from newbility_db.db.provider import DatabaseProvider
from newbility_db.errors import ExecutionError
from newbility_db.models.options import DatabaseOptions
from newbility_db.models.result import ExecuteResult

if TYPE_CHECKING:
    import asyncpg

DEFAULT_PORT = 5432


def parse_rowcount(status: str | None) -> int:
    """Parse the affected row count from an asyncpg status string.

    Examples: "INSERT 0 1" → 1, "UPDATE 3" → 3, "DELETE 0" → 0, "BEGIN" → 0.
    """
    if not status:
        return 0
    parts = status.split()
    if len(parts) >= 2:
        try:
            return max(int(parts[-1]), 0)
        except ValueError:
            pass
    return 0


class PostgresDialect(BaseDialect):
    """asyncpg connection adapter."""

    name = "postgres"

    def placeholder_for(self, name: str, index: int) -> str:
        """Return ``$N`` (1-based)."""
        return f"${index + 1}"

    async def raw_execute(self, sql: str, args: Sequence[Any] = ()) -> ExecuteResult:
        """Prepare and run ``sql``, returning rows or the affected row count."""
        import asyncpg as _asyncpg

        conn: asyncpg.Connection = self.conn
        try:
            stmt = await conn.prepare(sql)
            records = await stmt.fetch(*args)
        except _asyncpg.PostgresError as exc:
            raise ExecutionError(sql, exc) from exc

        if stmt.get_attributes():
            rows = [dict(record) for record in records]
            return ExecuteResult(row_count=len(rows), rows=rows)
        return ExecuteResult(row_count=parse_rowcount(stmt.get_statusmsg()))


class PostgresProvider(DatabaseProvider):
    """Provider over an ``asyncpg.Pool`` sized to ``options.pool.max``."""

    def __init__(
        self,
        pool: asyncpg.Pool,
        options: DatabaseOptions,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize with an already-created asyncpg pool."""
        super().__init__("postgres", options, logger=logger)
        self._pool = pool

    @classmethod
    async def create(
        cls, options: DatabaseOptions, *, logger: logging.Logger | None = None
    ) -> PostgresProvider:
        """Create the asyncpg pool and wrap it in a provider."""
        import asyncpg as _asyncpg

        pool = await _asyncpg.create_pool(
            host=options.address,
            port=options.port or DEFAULT_PORT,
            database=options.database,
            user=options.user_name,
            password=options.password,
            min_size=min(2, options.pool.max),
            max_size=options.pool.max,
        )
        provider = cls(pool, options, logger=logger)
        provider._logger.info(
            "Opened postgres pool to %s:%s/%s (max %d)",
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
        return PostgresDialect(conn)

    async def _close_pool(self) -> None:
        await self._pool.close()
