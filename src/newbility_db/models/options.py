"""Connection options passed to a provider constructor."""

from pydantic import BaseModel, Field


class PoolOptions(BaseModel):
    """Connection pool sizing."""

    max: int = Field(default=20, ge=1)
    acquire_timeout: float | None = Field(default=None, gt=0)


class DatabaseOptions(BaseModel):
    """Where and how to connect.

    ``port=None`` means the dialect's default port. For SQLite, ``database``
    is the file path and the network fields are ignored.
    """

    address: str = "localhost"
    port: int | None = None
    database: str
    user_name: str | None = None
    password: str | None = None
    pool: PoolOptions = Field(default_factory=PoolOptions)
