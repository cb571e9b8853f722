"""Statement execution result."""

from typing import Any

from pydantic import BaseModel, Field


class ExecuteResult(BaseModel):
    """Rows returned by a statement plus its row count.

    For row-returning statements ``row_count == len(rows)``; for DML it is
    the number of affected rows reported by the driver.
    """

    row_count: int = Field(default=0, ge=0)
    rows: list[dict[str, Any]] = Field(default_factory=list)

    @property
    def first(self) -> dict[str, Any] | None:
        """The first row, or None when there are no rows."""
        return self.rows[0] if self.rows else None
