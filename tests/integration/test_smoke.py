"""
Integration tests for MDM Submit against a real PostgreSQL instance.

These tests verify that:
1. Bulk submission streams every live resource of a type into the outbox
2. Criteria, deletes and single-resource submission behave against real SQL
3. A failure part way through leaves earlier outbox rows in place

Run with: RUN_INTEGRATION_TESTS=1 pytest tests/integration/
"""

from __future__ import annotations

import os
from typing import Dict

import psycopg
import pytest

from mdm_submit.channel.publisher import OutboxChannelPublisher
from mdm_submit.config import Settings, TransactionMode
from mdm_submit.domain.models import Resource
from mdm_submit.errors import PublishError, RecordNotFoundError
from mdm_submit.infrastructure.db_factory import get_sync_connection
from mdm_submit.infrastructure.transactions import TransactionScope
from mdm_submit.store.dao import DaoRegistry
from mdm_submit.store.cursor import PaginatedQueryCursor
from mdm_submit.search.criteria import build_query_spec
from mdm_submit.submit.factory import open_submit_service
from mdm_submit.submit.service import MdmSubmitService

SMALL_PAGE_SIZE = 7
FAIL_AFTER = 10

pytestmark = pytest.mark.skipif(
    os.getenv("RUN_INTEGRATION_TESTS", "0") != "1",
    reason="Integration tests require RUN_INTEGRATION_TESTS=1 and reachable Postgres",
)


def _outbox_count(conn: psycopg.Connection, resource_type: str | None = None) -> int:
    with conn.cursor() as cur:
        if resource_type is None:
            cur.execute("SELECT COUNT(*) FROM public.mdm_channel_outbox;")
        else:
            cur.execute(
                "SELECT COUNT(*) FROM public.mdm_channel_outbox WHERE resource_type = %s;",
                (resource_type,),
            )
        count = cur.fetchone()[0]
    conn.commit()
    return count


def _small_pages(settings: Settings) -> Settings:
    return settings.model_copy(update={"mdm_submit_page_size": SMALL_PAGE_SIZE})


class _FailingAfterPublisher:
    def __init__(self, inner: OutboxChannelPublisher, fail_after: int) -> None:
        self._inner = inner
        self._fail_after = fail_after

    def publish(self, resource: Resource) -> None:
        if self._inner.published >= self._fail_after:
            raise PublishError("intentional failure")
        self._inner.publish(resource)


class TestBulkSubmission:
    def test_submit_type_publishes_every_live_resource(
        self,
        seeded_db_small: Dict[str, int],
        db_connection: psycopg.Connection,
        test_settings: Settings,
        test_dsn: str,
    ):
        with open_submit_service(_small_pages(test_settings), dsn_override=test_dsn) as service:
            submitted = service.submit_type("Patient")

        assert submitted == seeded_db_small["Patient"]
        assert _outbox_count(db_connection, "Patient") == submitted

    @pytest.mark.parametrize("mode", list(TransactionMode))
    def test_submit_all_sums_every_type(
        self,
        seeded_db_small: Dict[str, int],
        db_connection: psycopg.Connection,
        test_settings: Settings,
        test_dsn: str,
        mode: TransactionMode,
    ):
        settings = _small_pages(test_settings).model_copy(update={"mdm_transaction_mode": mode})
        with open_submit_service(settings, dsn_override=test_dsn) as service:
            submitted = service.submit_all()

        assert submitted == sum(seeded_db_small.values())
        assert _outbox_count(db_connection) == submitted

    def test_dry_run_leaves_outbox_empty(
        self,
        seeded_db_small: Dict[str, int],
        db_connection: psycopg.Connection,
        test_settings: Settings,
        test_dsn: str,
    ):
        with open_submit_service(test_settings, dsn_override=test_dsn, dry_run=True) as service:
            assert service.submit_type("Practitioner") == seeded_db_small["Practitioner"]

        assert _outbox_count(db_connection) == 0

    def test_criteria_and_deletes_narrow_the_submission(
        self,
        seeded_db_small: Dict[str, int],
        db_connection: psycopg.Connection,
        test_settings: Settings,
        test_dsn: str,
    ):
        with db_connection.cursor() as cur:
            cur.execute(
                "SELECT resource_id FROM public.mdm_resources "
                "WHERE resource_type = 'Patient' ORDER BY pid LIMIT 3;"
            )
            ids = [row[0] for row in cur.fetchall()]
            cur.execute(
                "UPDATE public.mdm_resources SET deleted_at = now() WHERE resource_id = %s;",
                (ids[0],),
            )
        db_connection.commit()

        with open_submit_service(test_settings, dsn_override=test_dsn) as service:
            submitted = service.submit_type("Patient", f"_id={','.join(ids)}")

        assert submitted == 2

    def test_cursor_pages_are_bounded(
        self,
        seeded_db_small: Dict[str, int],
        test_dsn: str,
    ):
        conn = get_sync_connection(test_dsn)
        try:
            with conn.transaction():
                spec = build_query_spec("Patient", page_size=SMALL_PAGE_SIZE)
                with PaginatedQueryCursor.open(conn, spec) as cursor:
                    sizes = []
                    while cursor.has_more():
                        sizes.append(len(cursor.next_batch(SMALL_PAGE_SIZE)))
        finally:
            conn.close()

        assert sum(sizes) == seeded_db_small["Patient"]
        assert max(sizes) <= SMALL_PAGE_SIZE
        assert cursor.closed

    def test_failure_part_way_keeps_published_rows(
        self,
        seeded_db_small: Dict[str, int],
        db_connection: psycopg.Connection,
        test_dsn: str,
    ):
        store_conn = get_sync_connection(test_dsn)
        channel_conn = get_sync_connection(test_dsn)
        try:
            service = MdmSubmitService(
                mdm_types=("Patient",),
                daos=DaoRegistry.for_connection(store_conn, ("Patient",)),
                publisher=_FailingAfterPublisher(OutboxChannelPublisher(channel_conn), FAIL_AFTER),
                transactions=TransactionScope(store_conn),
                page_size=SMALL_PAGE_SIZE,
            )
            with pytest.raises(PublishError):
                service.submit_type("Patient")
        finally:
            channel_conn.close()
            store_conn.close()

        assert _outbox_count(db_connection) == FAIL_AFTER


class TestSingleSubmission:
    def test_submit_one_publishes_exactly_one(
        self,
        seeded_db_small: Dict[str, int],
        db_connection: psycopg.Connection,
        test_settings: Settings,
        test_dsn: str,
    ):
        with db_connection.cursor() as cur:
            cur.execute(
                "SELECT resource_id FROM public.mdm_resources "
                "WHERE resource_type = 'Practitioner' LIMIT 1;"
            )
            resource_id = cur.fetchone()[0]
        db_connection.commit()

        with open_submit_service(test_settings, dsn_override=test_dsn) as service:
            assert service.submit_one(f"Practitioner/{resource_id}") == 1
            with pytest.raises(RecordNotFoundError):
                service.submit_one("Practitioner/does-not-exist")

        assert _outbox_count(db_connection) == 1
