"""Exception hierarchy for the database layer.

Every error carries a message plus an optional ``context`` dict that is
rendered into ``str()`` so log lines show what went wrong and where.
"""

from __future__ import annotations

from typing import Any


class DatabaseError(RuntimeError):
    """Base class for all newbility-db errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        """Initialize with a message and optional context."""
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        """Return the message, with context appended when present."""
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} (context: {context_str})"
        return self.message


class MissingParameterError(DatabaseError):
    """A ``:name`` token in the SQL has no matching key in the arguments."""

    def __init__(self, name: str) -> None:
        """Initialize with the missing parameter name."""
        super().__init__(f"Missing value for parameter {name}", context={"parameter": name})
        self.name = name


class InvalidTransactionStateError(DatabaseError):
    """Begin/commit/rollback issued out of sequence."""

    def __init__(self, operation: str, state: str) -> None:
        """Initialize with the attempted operation and the current state."""
        super().__init__(
            f"Cannot {operation} while transaction state is {state}",
            context={"operation": operation, "state": state},
        )
        self.operation = operation
        self.state = state


class ClientReleasedError(DatabaseError):
    """A client was used after its connection went back to the pool."""


class ConnectionAcquisitionError(DatabaseError):
    """The pool could not hand out a connection (timeout or driver failure)."""


class ExecutionError(DatabaseError):
    """The store rejected a statement.

    The driver's exception is kept untouched as ``original`` (and as
    ``__cause__`` when raised with ``from``).
    """

    def __init__(self, sql: str, original: BaseException) -> None:
        """Initialize with the failing SQL and the driver exception."""
        super().__init__(str(original) or type(original).__name__, context={"sql": sql})
        self.sql = sql
        self.original = original


class ReleaseError(DatabaseError):
    """Returning a connection to its pool failed."""


class UnsupportedDialectError(DatabaseError):
    """No provider is registered (or installed) for a dialect name."""

    def __init__(self, dialect: str) -> None:
        """Initialize with the requested dialect name."""
        super().__init__(f"Unsupported database dialect: {dialect}", context={"dialect": dialect})
        self.dialect = dialect
