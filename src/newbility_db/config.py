"""Environment-variable-based configuration.

Only the CLI and URL helpers consult these; providers always receive their
options explicitly.
"""

import os


def get_database_url() -> str:
    """Return the database URL from DB_DATABASE_URL."""
    return os.environ.get(
        "DB_DATABASE_URL", "sqlite:///~/.local/share/newbility_db/default.db"
    )


def get_pool_max() -> int:
    """Return the maximum number of pooled connections from DB_POOL_MAX."""
    return int(os.environ.get("DB_POOL_MAX", "20"))


def get_acquire_timeout() -> float | None:
    """Return the connection acquisition timeout in seconds from DB_ACQUIRE_TIMEOUT."""
    raw = os.environ.get("DB_ACQUIRE_TIMEOUT", "")
    if not raw:
        return None
    return float(raw)


def get_log_level() -> str:
    """Return the logging level from DB_LOG_LEVEL."""
    return os.environ.get("DB_LOG_LEVEL", "WARNING")
