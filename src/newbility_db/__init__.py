"""Async SQL access with named parameters over pluggable, pooled backends."""

from newbility_db.db import (
    DatabaseClient,
    DatabaseProvider,
    TransactionState,
    create_provider,
    create_provider_from_url,
)
from newbility_db.errors import (
    ClientReleasedError,
    ConnectionAcquisitionError,
    DatabaseError,
    ExecutionError,
    InvalidTransactionStateError,
    MissingParameterError,
    ReleaseError,
    UnsupportedDialectError,
)
from newbility_db.models import DatabaseOptions, ExecuteResult, PoolOptions

__all__ = [
    "ClientReleasedError",
    "ConnectionAcquisitionError",
    "DatabaseClient",
    "DatabaseError",
    "DatabaseOptions",
    "DatabaseProvider",
    "ExecuteResult",
    "ExecutionError",
    "InvalidTransactionStateError",
    "MissingParameterError",
    "PoolOptions",
    "ReleaseError",
    "TransactionState",
    "UnsupportedDialectError",
    "create_provider",
    "create_provider_from_url",
]
