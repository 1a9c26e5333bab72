"""
SQL for the resource store, composed with psycopg.sql.

The schema lives in `db/init.sql`. Search queries select only pids, ordered
by pid, so the paginated cursor never holds resource bodies; bodies are
loaded per batch.
"""

from __future__ import annotations

from typing import Any, List, Sequence, Tuple

from psycopg import sql

from mdm_submit.domain.models import Comparator, QuerySpec, ResourceId, SearchFilter
from mdm_submit.search.criteria import PARAM_ID, PARAM_LAST_UPDATED

RESOURCE_TABLE = "mdm_resources"
OUTBOX_TABLE = "mdm_channel_outbox"

RESOURCE_COLUMNS = ("pid", "resource_type", "resource_id", "version", "last_updated", "payload")

_OPERATORS = {
    Comparator.EQ: "=",
    Comparator.NE: "<>",
    Comparator.GT: ">",
    Comparator.GE: ">=",
    Comparator.LT: "<",
    Comparator.LE: "<=",
}


def _columns() -> sql.Composed:
    return sql.SQL(", ").join(sql.Identifier(name) for name in RESOURCE_COLUMNS)


def _filter_clause(search_filter: SearchFilter) -> Tuple[sql.Composable, List[Any]]:
    if search_filter.param == PARAM_ID:
        return sql.SQL("resource_id = ANY(%s)"), [list(search_filter.values)]
    if search_filter.param == PARAM_LAST_UPDATED:
        operator = sql.SQL(_OPERATORS[search_filter.comparator])
        clause = sql.SQL("last_updated {} %s::timestamptz").format(operator)
        return clause, [search_filter.values[0]]
    return sql.SQL("payload ->> %s = ANY(%s)"), [search_filter.param, list(search_filter.values)]


def search_pids_query(spec: QuerySpec) -> Tuple[sql.Composed, List[Any]]:
    """
    Compile a QuerySpec into a SELECT of matching live pids in store order.
    """
    clauses: List[sql.Composable] = [
        sql.SQL("resource_type = %s"),
        sql.SQL("deleted_at IS NULL"),
    ]
    params: List[Any] = [spec.resource_type]
    for search_filter in spec.filters:
        clause, values = _filter_clause(search_filter)
        clauses.append(clause)
        params.extend(values)

    query = sql.SQL("SELECT pid FROM {table} WHERE {where} ORDER BY pid").format(
        table=sql.Identifier(RESOURCE_TABLE),
        where=sql.SQL(" AND ").join(clauses),
    )
    return query, params


def load_batch_query(resource_type: str, pids: Sequence[int]) -> Tuple[sql.Composed, List[Any]]:
    query = sql.SQL(
        "SELECT {columns} FROM {table} "
        "WHERE pid = ANY(%s) AND resource_type = %s AND deleted_at IS NULL ORDER BY pid"
    ).format(columns=_columns(), table=sql.Identifier(RESOURCE_TABLE))
    return query, [list(pids), resource_type]


def read_query(resource_id: ResourceId) -> Tuple[sql.Composed, List[Any]]:
    query = sql.SQL(
        "SELECT {columns}, deleted_at IS NOT NULL AS deleted FROM {table} "
        "WHERE resource_type = %s AND resource_id = %s"
    ).format(columns=_columns(), table=sql.Identifier(RESOURCE_TABLE))
    return query, [resource_id.resource_type, resource_id.id_part]


__all__ = [
    "OUTBOX_TABLE",
    "RESOURCE_COLUMNS",
    "RESOURCE_TABLE",
    "load_batch_query",
    "read_query",
    "search_pids_query",
]
