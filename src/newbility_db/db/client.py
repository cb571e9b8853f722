"""Scoped database client: one borrowed connection plus its transaction state.

A client is handed out by a provider, used by exactly one task, and given
back with ``release()``. Placeholder syntax and raw execution are delegated to
the dialect; everything else (named-argument translation, paging, the
transaction state machine) lives here.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Awaitable, Callable, Mapping
from enum import StrEnum
from types import TracebackType
from typing import Any

from newbility_db.db.backend import BaseDialect
from newbility_db.db.params import translate
from newbility_db.errors import ClientReleasedError, InvalidTransactionStateError
from newbility_db.models.result import ExecuteResult

logger = logging.getLogger(__name__)

_TERMINATOR_RE = re.compile(r";$")


class TransactionState(StrEnum):
    """Transaction state of a single client."""

    IDLE = "idle"
    IN_TRANSACTION = "in_transaction"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


def strip_terminator(sql: str) -> str:
    """Drop trailing whitespace and a single trailing ``;``."""
    return _TERMINATOR_RE.sub("", sql.rstrip(), count=1)


class DatabaseClient:
    """A single borrowed connection.

    ``release`` is the callback that hands the connection back to its pool;
    it is invoked at most once.
    """

    _logger: logging.Logger = logger

    def __init__(
        self,
        dialect: BaseDialect,
        *,
        release: Callable[[], Awaitable[None]],
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize with a dialect-wrapped connection and its release callback."""
        self._dialect = dialect
        self._release = release
        if logger is not None:
            self._logger = logger
        self._state = TransactionState.IDLE
        self._rollback_attempted = False
        self._released = False

    @property
    def dialect(self) -> BaseDialect:
        """The dialect adapter wrapping this client's connection."""
        return self._dialect

    @property
    def state(self) -> TransactionState:
        """Current transaction state."""
        return self._state

    @property
    def in_transaction(self) -> bool:
        """True between a successful begin and the matching commit/rollback."""
        return self._state is TransactionState.IN_TRANSACTION

    @property
    def rollback_attempted(self) -> bool:
        """True once ROLLBACK was sent for the current transaction, even if it failed."""
        return self._rollback_attempted

    @property
    def released(self) -> bool:
        """True once the connection has been handed back to the pool."""
        return self._released

    # -- Statements --

    async def execute(self, sql: str, *args: Any) -> ExecuteResult:
        """Execute SQL written with the dialect's native positional placeholders."""
        self._check_usable()
        self._logger.debug("execute (%d positional args): %s", len(args), sql)
        return await self._dialect.raw_execute(sql, args)

    async def execute_named(self, sql: str, params: Mapping[str, Any]) -> ExecuteResult:
        """Execute SQL written with ``:name`` parameters."""
        self._check_usable()
        native_sql, args = translate(
            sql,
            params,
            self._dialect.placeholder_for,
            escape_text=self._dialect.escape_text,
            backslash_escapes=self._dialect.backslash_escapes,
        )
        self._logger.debug("execute (%d named args): %s", len(args), native_sql)
        return await self._dialect.raw_execute(native_sql, args)

    async def query_page(self, sql: str, params: Mapping[str, Any]) -> ExecuteResult:
        """Run a query with optional ``limit``/``offset`` taken from ``params``.

        Without either key the full result set is returned.
        """
        page_sql = strip_terminator(sql)
        if params.get("limit") is not None:
            page_sql = f"{page_sql} LIMIT :limit"
        if params.get("offset") is not None:
            page_sql = f"{page_sql} OFFSET :offset"
        return await self.execute_named(page_sql, params)

    async def query_one(self, sql: str, *args: Any) -> dict[str, Any] | None:
        """Return the first row of a positional query, or None."""
        result = await self.execute(f"{strip_terminator(sql)} LIMIT 1", *args)
        return result.first if result.row_count > 0 else None

    async def query_one_named(
        self, sql: str, params: Mapping[str, Any]
    ) -> dict[str, Any] | None:
        """Return the first row of a named-parameter query, or None."""
        result = await self.execute_named(f"{strip_terminator(sql)} LIMIT 1", params)
        return result.first if result.row_count > 0 else None

    # -- Transactions --

    async def begin_transaction(self) -> None:
        """Start a transaction. Invalid while one is already open."""
        self._check_usable()
        if self._state is TransactionState.IN_TRANSACTION:
            raise InvalidTransactionStateError("begin", self._state)
        await self._dialect.raw_execute(self._dialect.begin_sql)
        self._state = TransactionState.IN_TRANSACTION
        self._rollback_attempted = False

    async def commit(self) -> None:
        """Commit the open transaction."""
        self._check_usable()
        if self._state is not TransactionState.IN_TRANSACTION:
            raise InvalidTransactionStateError("commit", self._state)
        await self._dialect.raw_execute(self._dialect.commit_sql)
        self._state = TransactionState.COMMITTED

    async def rollback(self) -> None:
        """Roll back the open transaction."""
        self._check_usable()
        if self._state is not TransactionState.IN_TRANSACTION:
            raise InvalidTransactionStateError("rollback", self._state)
        self._rollback_attempted = True
        await self._dialect.raw_execute(self._dialect.rollback_sql)
        self._state = TransactionState.ROLLED_BACK

    # -- Lifecycle --

    async def release(self) -> None:
        """Hand the connection back to its pool. Later calls are no-ops."""
        if self._released:
            self._logger.warning("Client already released, ignoring second release")
            return
        self._released = True
        await self._release()

    async def __aenter__(self) -> DatabaseClient:
        """Use the client as a scope that releases on exit."""
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        """Roll back an unfinished transaction, then release."""
        try:
            if self.in_transaction and not self._rollback_attempted and not self._released:
                try:
                    await self.rollback()
                except Exception:
                    self._logger.error("Rollback on scope exit failed", exc_info=True)
        finally:
            await self.release()

    def _check_usable(self) -> None:
        if self._released:
            raise ClientReleasedError("Client has already been released to the pool")
