"""
Paginated query cursor over the resource store.

Wraps a psycopg server-side (named) cursor so matching pids stream from the
server in bounded batches instead of materialising the whole result set.
One row is always read ahead, which lets `has_more()` answer without an
extra round trip: N matching rows take exactly ceil(N / page_size) calls to
`next_batch`, and an empty result takes none.

The cursor closes itself when the result is exhausted or a store error
occurs, and it is a context manager so callers never have to remember to
close it.
"""

from __future__ import annotations

from types import TracebackType
from typing import List, Optional, Protocol, Type, runtime_checkable
from uuid import uuid4

import psycopg

from mdm_submit.domain.models import QuerySpec
from mdm_submit.errors import QueryError
from mdm_submit.infrastructure.db_factory import apply_statement_timeout
from mdm_submit.store.queries import search_pids_query
from mdm_submit.utils.logging import get_logger

log = get_logger(__name__)


@runtime_checkable
class ResultCursor(Protocol):
    """
    Pull interface the submission pipeline drives.
    """

    def next_batch(self, max_size: int) -> List[int]:
        ...

    def has_more(self) -> bool:
        ...

    def close(self) -> None:
        ...

    def __enter__(self) -> "ResultCursor":
        ...

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> Optional[bool]:
        ...


class PaginatedQueryCursor:
    """
    Server-side cursor yielding batches of pids for one QuerySpec.

    Must be opened inside a transaction on `connection` (see TransactionScope).
    """

    def __init__(self, cursor: psycopg.Cursor, spec: QuerySpec) -> None:
        self._cursor = cursor
        self.spec = spec
        self.advances = 0
        self._pending: Optional[int] = None
        self._exhausted = False
        self._closed = False

    @classmethod
    def open(
        cls,
        connection: psycopg.Connection,
        spec: QuerySpec,
        statement_timeout_ms: int = 0,
    ) -> "PaginatedQueryCursor":
        """
        Declare the cursor, execute the search and read ahead the first row.

        Raises
        ------
        QueryError
            If the store cannot begin execution.
        """
        query, params = search_pids_query(spec)
        try:
            if statement_timeout_ms:
                with connection.cursor() as setup:
                    apply_statement_timeout(setup, statement_timeout_ms)
            # A name makes psycopg declare a server-side cursor.
            raw = connection.cursor(name=f"mdm_submit_{uuid4().hex[:16]}")
        except psycopg.Error as exc:
            raise QueryError(f"Failed to open query for {spec.resource_type}") from exc

        cursor = cls(raw, spec)
        try:
            raw.execute(query, params)
            cursor._read_ahead()
        except psycopg.Error as exc:
            cursor.close()
            raise QueryError(f"Failed to open query for {spec.resource_type}") from exc
        return cursor

    def _read_ahead(self) -> None:
        row = self._cursor.fetchone()
        if row is None:
            self._exhausted = True
            self.close()
        else:
            self._pending = row[0]

    @property
    def closed(self) -> bool:
        return self._closed

    def has_more(self) -> bool:
        return self._pending is not None

    def next_batch(self, max_size: int) -> List[int]:
        """
        Return up to `max_size` pids in store order; fewer only on the last batch.

        Raises
        ------
        QueryError
            If the store fails while fetching; the cursor is closed first.
        """
        if max_size <= 0:
            raise ValueError("max_size must be positive")
        if self._exhausted:
            return []
        if self._closed:
            raise QueryError("Cursor is closed")

        batch: List[int] = []
        if self._pending is not None:
            batch.append(self._pending)
            self._pending = None
        try:
            if len(batch) < max_size:
                batch.extend(row[0] for row in self._cursor.fetchmany(max_size - len(batch)))
            self._read_ahead()
        except psycopg.Error as exc:
            self.close()
            raise QueryError(
                f"Failure while attempting to query resources for {self.spec.resource_type}"
            ) from exc
        self.advances += 1
        return batch

    def close(self) -> None:
        """Release the server-side cursor. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        self._pending = None
        try:
            self._cursor.close()
        except psycopg.Error:
            # The enclosing transaction may already be aborted; the server
            # drops the cursor with it.
            log.warning("Failed to close query cursor", exc_info=True)

    def __enter__(self) -> "PaginatedQueryCursor":
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self.close()


__all__ = ["PaginatedQueryCursor", "ResultCursor"]
