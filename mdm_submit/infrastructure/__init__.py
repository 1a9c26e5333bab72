"""
Infrastructure package for MDM Submit.

Centralizes database connectivity concerns (connection factory, transaction
scoping). Keep this layer focused on I/O and resource management, decoupled
from the submission logic.
"""

from mdm_submit.infrastructure.db_factory import (
    apply_statement_timeout,
    build_dsn,
    get_sync_connection,
)
from mdm_submit.infrastructure.transactions import TransactionScope

__all__ = [
    "TransactionScope",
    "apply_statement_timeout",
    "build_dsn",
    "get_sync_connection",
]
