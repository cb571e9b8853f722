"""Pooled database provider: lends scoped clients and runs transactional callbacks.

Each backend supplies the pool primitives (acquire, release, close) and a
dialect factory; borrowing discipline, the concurrency bound and the
transaction callback pattern are shared here.

Every operation borrows a client inside ``client()``, which guarantees the
client goes back to the pool exactly once on every exit path, including
task cancellation. An open transaction is rolled back before release.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Awaitable, Callable, Mapping
from contextlib import asynccontextmanager
from types import TracebackType
from typing import Any, TypeVar

from newbility_db.db.backend import BaseDialect
from newbility_db.db.client import DatabaseClient
from newbility_db.errors import ConnectionAcquisitionError, ReleaseError
from newbility_db.models.options import DatabaseOptions
from newbility_db.models.result import ExecuteResult

logger = logging.getLogger(__name__)

T = TypeVar("T")


class DatabaseProvider(ABC):
    """Owns a bounded connection pool for one database."""

    _logger: logging.Logger = logger

    def __init__(
        self,
        name: str,
        options: DatabaseOptions,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize with a dialect name, connection options and optional logger."""
        self._name = name
        self._options = options
        if logger is not None:
            self._logger = logger
        self._slots = asyncio.Semaphore(options.pool.max)
        self._in_use = 0

    @property
    def name(self) -> str:
        """Dialect name this provider serves."""
        return self._name

    @property
    def options(self) -> DatabaseOptions:
        """Connection options the provider was created with."""
        return self._options

    @property
    def pool_max(self) -> int:
        """Maximum number of concurrently borrowed clients."""
        return self._options.pool.max

    @property
    def acquire_timeout(self) -> float | None:
        """Seconds to wait for a free connection, or None to wait forever."""
        return self._options.pool.acquire_timeout

    @property
    def in_use(self) -> int:
        """Number of clients currently borrowed."""
        return self._in_use

    # -- Backend hooks --

    @abstractmethod
    async def _acquire_connection(self) -> Any:
        """Take a raw connection from the underlying pool."""

    @abstractmethod
    async def _release_connection(self, conn: Any) -> None:
        """Give a raw connection back to the underlying pool."""

    @abstractmethod
    def _create_dialect(self, conn: Any) -> BaseDialect:
        """Wrap a raw connection in this backend's dialect adapter."""

    @abstractmethod
    async def _close_pool(self) -> None:
        """Shut down the underlying pool."""

    # -- Borrowing --

    async def acquire(self) -> DatabaseClient:
        """Borrow a client. The caller must ``release()`` it.

        Blocks while ``pool_max`` clients are out. Raises
        ConnectionAcquisitionError when ``acquire_timeout`` elapses or the
        driver fails to produce a connection.
        """
        try:
            await asyncio.wait_for(self._slots.acquire(), timeout=self.acquire_timeout)
        except TimeoutError as exc:
            raise ConnectionAcquisitionError(
                f"Timed out waiting {self.acquire_timeout}s for a {self._name} connection",
                context={"pool_max": self.pool_max},
            ) from exc

        try:
            conn = await self._acquire_connection()
        except Exception as exc:
            self._slots.release()
            raise ConnectionAcquisitionError(
                f"Could not acquire a {self._name} connection: {exc}"
            ) from exc
        except BaseException:
            self._slots.release()
            raise

        self._in_use += 1
        return DatabaseClient(
            self._create_dialect(conn),
            release=lambda: self._give_back(conn),
            logger=self._logger,
        )

    async def _give_back(self, conn: Any) -> None:
        try:
            await self._release_connection(conn)
        finally:
            self._in_use -= 1
            self._slots.release()

    @asynccontextmanager
    async def client(self) -> AsyncIterator[DatabaseClient]:
        """Borrow a client for the duration of the ``async with`` block.

        An open transaction is rolled back on exit, then the client is
        released exactly once. A release failure raises ReleaseError only if
        the block itself succeeded; otherwise it is logged and noted on the
        block's exception.
        """
        client = await self.acquire()
        try:
            yield client
        except BaseException as exc:
            await self._rollback_if_open(client, exc)
            try:
                await client.release()
            except Exception as release_exc:
                self._logger.error("Releasing %s connection failed", self._name, exc_info=True)
                exc.add_note(f"Releasing the connection also failed: {release_exc!r}")
            raise
        else:
            await self._rollback_if_open(client, None)
            try:
                await client.release()
            except Exception as release_exc:
                raise ReleaseError(
                    f"Releasing {self._name} connection failed: {release_exc}"
                ) from release_exc

    async def _rollback_if_open(self, client: DatabaseClient, exc: BaseException | None) -> None:
        if not client.in_transaction or client.rollback_attempted:
            return
        self._logger.warning("Rolling back unfinished transaction before release")
        try:
            await client.rollback()
        except Exception as rollback_exc:
            self._logger.error("Rollback before release failed", exc_info=True)
            if exc is not None:
                exc.add_note(f"Rollback before release also failed: {rollback_exc!r}")

    # -- Operations --

    async def execute(self, sql: str, *args: Any) -> ExecuteResult:
        """Execute SQL with native positional placeholders on a pooled client."""
        async with self.client() as client:
            return await client.execute(sql, *args)

    async def execute_named(self, sql: str, params: Mapping[str, Any]) -> ExecuteResult:
        """Execute SQL with ``:name`` parameters on a pooled client."""
        async with self.client() as client:
            return await client.execute_named(sql, params)

    async def query_page(self, sql: str, params: Mapping[str, Any]) -> ExecuteResult:
        """Run a paged query (``limit``/``offset`` in ``params``) on a pooled client."""
        async with self.client() as client:
            return await client.query_page(sql, params)

    async def query_one(self, sql: str, *args: Any) -> dict[str, Any] | None:
        """Return the first row of a positional query, or None."""
        async with self.client() as client:
            return await client.query_one(sql, *args)

    async def query_one_named(
        self, sql: str, params: Mapping[str, Any]
    ) -> dict[str, Any] | None:
        """Return the first row of a named-parameter query, or None."""
        async with self.client() as client:
            return await client.query_one_named(sql, params)

    async def use_transaction(self, fn: Callable[[DatabaseClient], Awaitable[T]]) -> T:
        """Run ``fn(client)`` inside a transaction.

        Commits and returns the callback's result on success. On any
        exception the transaction is rolled back and the original exception
        re-raised; a rollback failure is logged and attached as a note.
        """
        async with self.client() as client:
            await client.begin_transaction()
            try:
                result = await fn(client)
            except BaseException as exc:
                self._logger.warning(
                    "Transaction callback failed, rolling back: %s", type(exc).__name__
                )
                try:
                    await client.rollback()
                except Exception as rollback_exc:
                    self._logger.error("Rollback failed", exc_info=True)
                    exc.add_note(f"Rollback also failed: {rollback_exc!r}")
                raise
            await client.commit()
            return result

    # -- Lifecycle --

    async def close(self) -> None:
        """Close the connection pool."""
        await self._close_pool()
        self._logger.info("Closed %s connection pool", self._name)

    async def __aenter__(self) -> DatabaseProvider:
        """Use the provider as a scope that closes the pool on exit."""
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        """Close the pool."""
        await self.close()
