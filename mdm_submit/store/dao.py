"""
Per-type data access for the resource store.

Each MDM resource type gets a ResourceDao exposing the three capabilities a
submission needs: open a paginated search, resolve a batch of pids into
resources, and read one resource by id. The DaoRegistry maps type names to
DAOs so any record type can be submitted without type-specific code.
"""

from __future__ import annotations

from typing import Dict, Iterable, Iterator, List, Optional, Protocol, Sequence

import psycopg
from psycopg.rows import dict_row

from mdm_submit.domain.models import QuerySpec, Resource, ResourceId
from mdm_submit.errors import LoadError, QueryError, RecordNotFoundError, ValidationError
from mdm_submit.store.cursor import PaginatedQueryCursor, ResultCursor
from mdm_submit.store.queries import load_batch_query, read_query
from mdm_submit.utils.logging import get_logger

log = get_logger(__name__)


class ResourceDao(Protocol):
    """Capabilities of one resource type's store."""

    resource_type: str

    def search(self, spec: QuerySpec) -> ResultCursor:
        ...

    def load_batch(self, pids: Sequence[int]) -> List[Resource]:
        ...

    def read(self, resource_id: ResourceId) -> Resource:
        ...


class PostgresResourceDao:
    """
    ResourceDao backed by the `mdm_resources` table.

    Searches must run inside a transaction on `connection`; the paginated
    cursor is a server-side cursor and lives only as long as that transaction.
    """

    def __init__(
        self,
        connection: psycopg.Connection,
        resource_type: str,
        statement_timeout_ms: int = 0,
    ) -> None:
        self._connection = connection
        self.resource_type = resource_type
        self._statement_timeout_ms = statement_timeout_ms

    def search(self, spec: QuerySpec) -> PaginatedQueryCursor:
        if spec.resource_type != self.resource_type:
            raise QueryError(
                f"{self.resource_type} DAO cannot search {spec.resource_type} resources"
            )
        return PaginatedQueryCursor.open(
            self._connection, spec, statement_timeout_ms=self._statement_timeout_ms
        )

    def load_batch(self, pids: Sequence[int]) -> List[Resource]:
        """
        Resolve pids to live resources, in pid order.

        Pids whose rows were deleted after the search ran resolve to nothing.
        """
        if not pids:
            return []
        query, params = load_batch_query(self.resource_type, pids)
        try:
            with self._connection.cursor(row_factory=dict_row) as cur:
                cur.execute(query, params)
                rows = cur.fetchall()
        except psycopg.Error as exc:
            raise LoadError(
                f"Failed to load {len(pids)} {self.resource_type} resources"
            ) from exc
        return [Resource(**row) for row in rows]

    def read(self, resource_id: ResourceId) -> Resource:
        query, params = read_query(resource_id)
        try:
            with self._connection.cursor(row_factory=dict_row) as cur:
                cur.execute(query, params)
                row = cur.fetchone()
        except psycopg.Error as exc:
            raise LoadError(f"Failed to read {resource_id}") from exc
        if row is None:
            raise RecordNotFoundError(str(resource_id))
        if row.pop("deleted"):
            raise RecordNotFoundError(str(resource_id), deleted=True)
        return Resource(**row)


class DaoRegistry:
    """
    Maps resource type names to their DAOs.
    """

    def __init__(self, daos: Optional[Iterable[ResourceDao]] = None) -> None:
        self._daos: Dict[str, ResourceDao] = {}
        for dao in daos or ():
            self.register(dao)

    @classmethod
    def for_connection(
        cls,
        connection: psycopg.Connection,
        resource_types: Iterable[str],
        statement_timeout_ms: int = 0,
    ) -> "DaoRegistry":
        """Register a PostgresResourceDao for every type on one connection."""
        return cls(
            PostgresResourceDao(connection, resource_type, statement_timeout_ms)
            for resource_type in resource_types
        )

    def register(self, dao: ResourceDao) -> None:
        if dao.resource_type in self._daos:
            log.debug(f"Replacing DAO for {dao.resource_type}")
        self._daos[dao.resource_type] = dao

    def get(self, resource_type: str) -> ResourceDao:
        """
        Return the DAO for `resource_type`.

        Raises ValidationError when none is registered, the same answer a FHIR
        server gives for a type it cannot serve. This includes an allow-listed
        type whose DAO was never registered, which is a deployment fault.
        """
        try:
            return self._daos[resource_type]
        except KeyError:
            raise ValidationError(f"No resource DAO registered for type {resource_type}") from None

    def __contains__(self, resource_type: object) -> bool:
        return resource_type in self._daos

    def __iter__(self) -> Iterator[str]:
        return iter(self._daos)


__all__ = ["DaoRegistry", "PostgresResourceDao", "ResourceDao"]
