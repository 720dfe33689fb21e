import os
from collections.abc import Generator
from pathlib import Path

import pytest
from psycopg_pool import ConnectionPool

from docflow.config.settings import Settings
from docflow.database.connection import Database, build_conninfo
from docflow.database.repositories.documents_repository import DocumentsRepository

_DDL_PATH = Path(__file__).resolve().parents[2] / "sql" / "documents.sql"


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "docflow_test")
    return Settings()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def integration_database(test_settings: Settings) -> Generator[Database, None, None]:
    pool = ConnectionPool(build_conninfo(test_settings), min_size=1, max_size=2, open=True)
    try:
        pool.wait(timeout=5.0)
    except Exception as e:
        pool.close()
        pytest.skip(f"PostgreSQL test DB not available: {e}. Set DB_* env to run.")
    database = Database(test_settings, pool=pool)
    with database.connection() as conn:
        conn.execute(_DDL_PATH.read_text(encoding="utf-8"))
        conn.commit()
    try:
        yield database
    finally:
        database.close()


@pytest.fixture
def ledger(integration_database: Database) -> Generator[DocumentsRepository, None, None]:
    yield DocumentsRepository(integration_database)
    with integration_database.connection() as conn:
        conn.execute("DELETE FROM documents WHERE original_filename LIKE 'it-%%'")
        conn.commit()
