"""Shared test fixtures."""

import asyncio
from collections.abc import Sequence
from typing import Any

import pytest

from newbility_db.db.backend import BaseDialect
from newbility_db.db.client import DatabaseClient
from newbility_db.db.provider import DatabaseProvider
from newbility_db.errors import ExecutionError
from newbility_db.models.options import DatabaseOptions, PoolOptions
from newbility_db.models.result import ExecuteResult


class FakeStoreError(Exception):
    """Stand-in for a driver exception."""


class FakeConnection:
    """Records every statement it is asked to run.

    ``rows`` are returned for SELECT statements. ``fail_on`` maps an SQL
    prefix to the driver exception raised for statements starting with it.
    """

    def __init__(
        self,
        rows: list[dict[str, Any]] | None = None,
        fail_on: dict[str, Exception] | None = None,
    ):
        self.rows = rows if rows is not None else []
        self.fail_on = fail_on if fail_on is not None else {}
        self.executed: list[tuple[str, list[Any]]] = []

    @property
    def statements(self) -> list[str]:
        return [sql for sql, _ in self.executed]


class FakeDialect(BaseDialect):
    """Dialect over a FakeConnection using ``$N`` or ``?`` placeholders."""

    name = "fake"

    def __init__(self, conn: FakeConnection, *, numbered: bool = True):
        super().__init__(conn)
        self.numbered = numbered

    def placeholder_for(self, name: str, index: int) -> str:
        return f"${index + 1}" if self.numbered else "?"

    async def raw_execute(self, sql: str, args: Sequence[Any] = ()) -> ExecuteResult:
        await asyncio.sleep(0)
        self.conn.executed.append((sql, list(args)))
        for prefix, exc in self.conn.fail_on.items():
            if sql.startswith(prefix):
                raise ExecutionError(sql, exc) from exc
        if sql.lstrip().upper().startswith("SELECT"):
            return ExecuteResult(row_count=len(self.conn.rows), rows=self.conn.rows)
        if sql in (self.begin_sql, self.commit_sql, self.rollback_sql):
            return ExecuteResult()
        return ExecuteResult(row_count=1)


class FakeProvider(DatabaseProvider):
    """In-memory provider handing out FakeConnections."""

    def __init__(
        self,
        *,
        pool_max: int = 5,
        acquire_timeout: float | None = None,
        rows: list[dict[str, Any]] | None = None,
        fail_on: dict[str, Exception] | None = None,
        acquire_error: Exception | None = None,
        release_error: Exception | None = None,
    ):
        super().__init__(
            "fake",
            DatabaseOptions(
                database="fake",
                pool=PoolOptions(max=pool_max, acquire_timeout=acquire_timeout),
            ),
        )
        self.rows = rows
        self.fail_on = fail_on
        self.acquire_error = acquire_error
        self.release_error = release_error
        self.acquired: list[FakeConnection] = []
        self.released: list[FakeConnection] = []
        self.closed = False

    async def _acquire_connection(self) -> Any:
        await asyncio.sleep(0)
        if self.acquire_error is not None:
            raise self.acquire_error
        conn = FakeConnection(rows=self.rows, fail_on=self.fail_on)
        self.acquired.append(conn)
        return conn

    async def _release_connection(self, conn: Any) -> None:
        if self.release_error is not None:
            raise self.release_error
        self.released.append(conn)

    def _create_dialect(self, conn: Any) -> BaseDialect:
        return FakeDialect(conn)

    async def _close_pool(self) -> None:
        self.closed = True


async def settle(rounds: int = 20) -> None:
    """Let other tasks on the loop run until they block."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def fake_conn():
    """Fake connection returning two rows for SELECTs."""
    return FakeConnection(rows=[{"id": 1, "name": "a"}, {"id": 2, "name": "b"}])


@pytest.fixture
def release_calls():
    """List that collects one entry per release callback invocation."""
    return []


@pytest.fixture
def client(fake_conn, release_calls):
    """Client over a fake connection with a recording release callback."""

    async def _release() -> None:
        release_calls.append(fake_conn)

    return DatabaseClient(FakeDialect(fake_conn), release=_release)


@pytest.fixture
def provider():
    """Fake provider with a pool of five connections."""
    return FakeProvider(rows=[{"id": 1, "name": "a"}])
