"""Data models for options and results."""

from newbility_db.models.options import DatabaseOptions, PoolOptions
from newbility_db.models.result import ExecuteResult

__all__ = ["DatabaseOptions", "ExecuteResult", "PoolOptions"]
