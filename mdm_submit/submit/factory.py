"""
Wiring of a MdmSubmitService from settings.

Opens two connections: the store connection carries the read transactions
and the server-side cursors, the channel connection carries outbox inserts
in autocommit mode. Both are closed when the context exits.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Generator, Optional

import psycopg

from mdm_submit.channel.publisher import (
    ChannelPublisher,
    InMemoryChannelPublisher,
    OutboxChannelPublisher,
)
from mdm_submit.config import Settings, get_settings
from mdm_submit.errors import StoreError
from mdm_submit.infrastructure.db_factory import build_dsn, get_sync_connection
from mdm_submit.infrastructure.transactions import TransactionScope
from mdm_submit.store.dao import DaoRegistry
from mdm_submit.submit.service import MdmSubmitService


def _connect(dsn: str) -> psycopg.Connection:
    try:
        return get_sync_connection(dsn)
    except psycopg.Error as exc:
        raise StoreError("Could not connect to the resource store") from exc


@contextmanager
def open_submit_service(
    settings: Optional[Settings] = None,
    dsn_override: Optional[str] = None,
    dry_run: bool = False,
) -> Generator[MdmSubmitService, None, None]:
    """
    Yield a ready MdmSubmitService and close its connections afterwards.

    With `dry_run`, resources are collected in memory instead of being
    written to the channel outbox.
    """
    settings = settings or get_settings()
    dsn = dsn_override or build_dsn(settings)

    store_conn = _connect(dsn)
    channel_conn = None
    try:
        publisher: ChannelPublisher
        if dry_run:
            publisher = InMemoryChannelPublisher()
        else:
            channel_conn = _connect(dsn)
            publisher = OutboxChannelPublisher(channel_conn)

        yield MdmSubmitService(
            mdm_types=settings.mdm_types,
            daos=DaoRegistry.for_connection(
                store_conn, settings.mdm_types, settings.db_statement_timeout_ms
            ),
            publisher=publisher,
            transactions=TransactionScope(store_conn),
            page_size=settings.mdm_submit_page_size,
            transaction_mode=settings.mdm_transaction_mode,
        )
    finally:
        if channel_conn is not None:
            channel_conn.close()
        store_conn.close()


__all__ = ["open_submit_service"]
