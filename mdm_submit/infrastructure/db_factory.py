"""
Database connection factory utilities for MDM Submit.

Provides the DSN composition and the connections used by the resource store
(reads inside explicit transactions) and the outbox channel (autocommit
writes, independent of any read transaction).

Includes retry logic for transient connection failures using tenacity.
Only establishing a connection is retried; queries and publishes are not.
"""

from __future__ import annotations

from typing import Optional

import psycopg
from psycopg import Connection
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from mdm_submit.config import Settings, get_settings


def build_dsn(settings: Optional[Settings] = None) -> str:
    """Compose a DSN string from settings."""
    settings = settings or get_settings()
    return (
        f"postgresql://{settings.db_user}:{settings.db_password}"
        f"@{settings.db_host}:{settings.db_port}/{settings.db_name}"
    )


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type((psycopg.OperationalError, psycopg.InterfaceError)),
    reraise=True,
)
def get_sync_connection(dsn: Optional[str] = None, autocommit: bool = True) -> Connection:
    """
    Acquire a dedicated synchronous connection with automatic retry.

    Retries up to 3 times with exponential backoff for transient connection errors.
    Connections default to autocommit; reads that need a consistent snapshot open
    an explicit transaction through `TransactionScope`.

    Parameters
    ----------
    dsn : str | None
        Connection string override. Defaults to the DSN built from settings.
    autocommit : bool
        Whether each statement commits on its own.

    Returns
    -------
    Connection
        A new psycopg connection instance.

    Raises
    ------
    psycopg.OperationalError
        If connection fails after all retry attempts.
    """
    return psycopg.connect(dsn or build_dsn(), autocommit=autocommit)


def apply_statement_timeout(cursor: psycopg.Cursor, timeout_ms: int) -> None:
    """
    Bound statement execution time for the current session. Zero disables it.
    """
    if timeout_ms > 0:
        cursor.execute(f"SET statement_timeout = {int(timeout_ms)}")


__all__ = [
    "apply_statement_timeout",
    "build_dsn",
    "get_sync_connection",
]
