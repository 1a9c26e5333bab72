"""
Channel publishers: hand resources to the downstream MDM pipeline.

The submission service depends on the ChannelPublisher protocol only. The
Postgres outbox publisher writes one message row per resource over its own
autocommit connection, so publishing is never part of the store's read
transaction: rolling that transaction back does not retract a message.
"""

from __future__ import annotations

from typing import List, Protocol, runtime_checkable

import psycopg
from psycopg import sql
from psycopg.types.json import Jsonb

from mdm_submit.domain.models import ChannelMessage, Resource
from mdm_submit.errors import PublishError
from mdm_submit.store.queries import OUTBOX_TABLE
from mdm_submit.utils.logging import get_logger

log = get_logger(__name__)


@runtime_checkable
class ChannelPublisher(Protocol):
    """Synchronous, one resource at a time, no acknowledgement."""

    def publish(self, resource: Resource) -> None:
        ...


class OutboxChannelPublisher:
    """
    Publish by inserting into the `mdm_channel_outbox` table.

    The connection must be in autocommit mode and must not be the store
    connection.
    """

    _INSERT = sql.SQL(
        "INSERT INTO {table} "
        "(resource_type, resource_id, operation_type, transaction_id, message) "
        "VALUES (%s, %s, %s, %s, %s)"
    ).format(table=sql.Identifier(OUTBOX_TABLE))

    def __init__(self, connection: psycopg.Connection) -> None:
        if not connection.autocommit:
            raise ValueError("Outbox publisher needs an autocommit connection")
        self._connection = connection
        self.published = 0

    def publish(self, resource: Resource) -> None:
        message = ChannelMessage.for_resource(resource)
        try:
            with self._connection.cursor() as cur:
                cur.execute(
                    self._INSERT,
                    (
                        message.resource_type,
                        message.resource_id,
                        message.operation_type,
                        message.transaction_id,
                        Jsonb(message.model_dump(mode="json")),
                    ),
                )
        except psycopg.Error as exc:
            raise PublishError(
                f"Failed to submit {resource.typed_id} to the MDM channel"
            ) from exc
        self.published += 1
        log.debug(
            f"Submitted {resource.typed_id} to the MDM channel",
            extra={"transaction_id": message.transaction_id},
        )


class InMemoryChannelPublisher:
    """
    Collects messages instead of sending them. Used for dry runs.
    """

    def __init__(self) -> None:
        self.messages: List[ChannelMessage] = []

    @property
    def published(self) -> int:
        return len(self.messages)

    def publish(self, resource: Resource) -> None:
        self.messages.append(ChannelMessage.for_resource(resource))


__all__ = ["ChannelPublisher", "InMemoryChannelPublisher", "OutboxChannelPublisher"]
