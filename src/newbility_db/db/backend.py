"""Dialect adapter base: the per-backend capability interface.

A dialect wraps one raw driver connection and supplies exactly two things:
its native placeholder and a raw execute call. Translation, paging and the
transaction state machine are written once against this interface in
``DatabaseClient``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any

from newbility_db.models.result import ExecuteResult


class BaseDialect(ABC):
    """One borrowed driver connection, seen through its dialect."""

    name: str = "base"

    # Transaction control statements, sent through raw_execute
    begin_sql: str = "BEGIN"
    commit_sql: str = "COMMIT"
    rollback_sql: str = "ROLLBACK"

    # Whether a backslash inside a quoted literal escapes the next character
    backslash_escapes: bool = False

    def __init__(self, conn: Any) -> None:
        """Initialize with the raw driver connection."""
        self.conn = conn

    @abstractmethod
    def placeholder_for(self, name: str, index: int) -> str:
        """Return the native placeholder for the ``index``-th (0-based) bound value."""

    @abstractmethod
    async def raw_execute(self, sql: str, args: Sequence[Any] = ()) -> ExecuteResult:
        """Run ``sql`` with positional ``args`` against the connection.

        Driver errors are raised as ExecutionError with the driver exception
        kept as ``original``.
        """

    def escape_text(self, text: str) -> str:
        """Escape literal SQL text that surrounds generated placeholders."""
        return text


def clamp_rowcount(rowcount: int | None) -> int:
    """Normalize a driver row count (None or -1 when unknown) to >= 0."""
    if rowcount is None or rowcount < 0:
        return 0
    return rowcount
