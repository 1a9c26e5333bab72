"""
Pytest configuration for MDM Submit.

Provides fixtures for:
- Settings override for tests
- Database connection management (integration tests only)
- Test data seeding
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Dict, Generator

import psycopg
import pytest

from mdm_submit.config import Settings, get_settings


@pytest.fixture(autouse=True)
def _fresh_settings_cache() -> Generator[None, None, None]:
    """Keep get_settings() from leaking env overrides between tests."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """
    Settings fixture with test-specific overrides.

    Can be overridden via environment variables in CI or local testing.
    """
    return Settings(
        db_host=os.getenv("DB_HOST", "localhost"),
        db_port=int(os.getenv("DB_PORT", "5432")),
        db_user=os.getenv("DB_USER", "postgres"),
        db_password=os.getenv("DB_PASSWORD", "postgres"),
        db_name=os.getenv("DB_NAME", "mdm"),
        log_level="DEBUG",
    )


@pytest.fixture(scope="session")
def test_dsn(test_settings: Settings) -> str:
    """
    Database connection string for tests.
    """
    return (
        f"postgresql://{test_settings.db_user}:{test_settings.db_password}"
        f"@{test_settings.db_host}:{test_settings.db_port}/{test_settings.db_name}"
    )


@pytest.fixture(scope="session")
def db_connection_available(test_dsn: str) -> bool:
    """
    Check if database is reachable.

    Used to conditionally skip integration tests when DB is not available.
    """
    try:
        with psycopg.connect(test_dsn, connect_timeout=5) as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1;")
                cur.fetchone()
        return True
    except psycopg.Error:
        return False


@pytest.fixture(scope="session")
def db_connection(
    test_dsn: str, db_connection_available: bool
) -> Generator[psycopg.Connection, None, None]:
    """
    Provide a session-scoped database connection for integration tests.

    Skips tests if database is not available.
    """
    if not db_connection_available:
        pytest.skip("Database not available for integration tests")

    conn = psycopg.connect(test_dsn)
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture(scope="session")
def db_schema_initialized(db_connection: psycopg.Connection) -> bool:
    """
    Ensure the resource and outbox tables exist.
    """
    init_sql_path = Path(__file__).parent.parent / "db" / "init.sql"
    with db_connection.cursor() as cur:
        cur.execute(init_sql_path.read_text(encoding="utf-8"))
    db_connection.commit()
    return True


@pytest.fixture(scope="function")
def clean_tables(db_connection: psycopg.Connection, db_schema_initialized: bool):
    """
    Empty the resource and outbox tables around each test function.
    """
    truncate = "TRUNCATE TABLE public.mdm_resources, public.mdm_channel_outbox RESTART IDENTITY;"
    with db_connection.cursor() as cur:
        cur.execute(truncate)
    db_connection.commit()
    yield
    with db_connection.cursor() as cur:
        cur.execute(truncate)
    db_connection.commit()


@pytest.fixture(scope="function")
def seeded_db_small(
    db_connection: psycopg.Connection,
    clean_tables,
    test_dsn: str,
) -> Dict[str, int]:
    """
    Seed a small dataset (250 resources) for integration tests.

    Returns the number of live resources per type.
    """
    from scripts.generate_data import _copy_into_db, _generate_rows_csv

    with tempfile.TemporaryDirectory() as tmpdir:
        csv_path = Path(tmpdir) / "resources.csv"
        _generate_rows_csv(csv_path, rows=250, batch_size=50, seed=42)
        _copy_into_db(test_dsn, csv_path)

    with db_connection.cursor() as cur:
        cur.execute(
            "SELECT resource_type, COUNT(*) FROM public.mdm_resources GROUP BY resource_type;"
        )
        counts = {resource_type: count for resource_type, count in cur.fetchall()}
    db_connection.commit()
    return counts
