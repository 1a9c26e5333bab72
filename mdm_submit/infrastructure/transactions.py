"""
Explicit transaction scoping for submission runs.

A TransactionScope wraps a unit of work in one database transaction on the
store connection. Nested scopes join the outermost transaction instead of
opening a savepoint, so a `submit_all` running in shared mode reads every
type from the same transaction, while per-type mode gives each `submit_type`
its own.

The scope governs read consistency of the paginated cursor only. Resources
handed to the channel publisher are outside of it: a rollback after a
partial run does not retract messages that were already published.
"""

from __future__ import annotations

import contextlib
from typing import Any, Callable, ContextManager, Generator, Protocol, TypeVar

import psycopg

from mdm_submit.errors import StoreError

T = TypeVar("T")


class SupportsTransaction(Protocol):
    """The part of a psycopg Connection a scope needs."""

    def transaction(self) -> ContextManager[Any]:
        ...


class TransactionScope:
    """
    Reentrant transaction boundary bound to one store connection.
    """

    def __init__(self, connection: SupportsTransaction) -> None:
        self._connection = connection
        self._depth = 0

    @property
    def active(self) -> bool:
        return self._depth > 0

    @contextlib.contextmanager
    def scope(self) -> Generator[None, None, None]:
        """
        Enter the transaction, or join it when one is already open.
        """
        if self._depth:
            self._depth += 1
            try:
                yield
            finally:
                self._depth -= 1
            return

        try:
            with self._connection.transaction():
                self._depth = 1
                try:
                    yield
                finally:
                    self._depth = 0
        except psycopg.Error as exc:
            raise StoreError("Store transaction failed") from exc

    def run(self, unit_of_work: Callable[[], T]) -> T:
        """
        Execute `unit_of_work` inside the scope and return its result.

        An exception rolls the transaction back and propagates unchanged, except
        that driver errors escaping the transaction surface as StoreError.
        """
        with self.scope():
            return unit_of_work()


__all__ = ["SupportsTransaction", "TransactionScope"]
