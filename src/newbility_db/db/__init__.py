"""Database clients, providers and dialect backends."""

from newbility_db.db.backend import BaseDialect
from newbility_db.db.client import DatabaseClient, TransactionState
from newbility_db.db.connection import (
    PROVIDERS,
    create_provider,
    create_provider_from_url,
    parse_database_url,
)
from newbility_db.db.mysql_backend import MySQLDialect, MySQLProvider
from newbility_db.db.params import find_parameters, translate
from newbility_db.db.postgres_backend import PostgresDialect, PostgresProvider
from newbility_db.db.provider import DatabaseProvider
from newbility_db.db.sqlite_backend import SQLiteDialect, SQLiteProvider

__all__ = [
    "PROVIDERS",
    "BaseDialect",
    "DatabaseClient",
    "DatabaseProvider",
    "MySQLDialect",
    "MySQLProvider",
    "PostgresDialect",
    "PostgresProvider",
    "SQLiteDialect",
    "SQLiteProvider",
    "TransactionState",
    "create_provider",
    "create_provider_from_url",
    "find_parameters",
    "parse_database_url",
    "translate",
]
