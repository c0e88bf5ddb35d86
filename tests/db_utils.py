from __future__ import annotations

import uuid
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine, text
from sqlalchemy.engine import make_url


def _admin_execute(admin_url, statement: str, params: dict | None = None) -> None:
    engine = create_engine(admin_url, isolation_level="AUTOCOMMIT", future=True)
    try:
        with engine.connect() as conn:
            conn.execute(text(statement), params or {})
    finally:
        engine.dispose()


@contextmanager
def postgres_test_database(base_url: str) -> Iterator[str]:
    """Create a throwaway database next to ``base_url`` and drop it afterwards."""
    url = make_url(base_url)
    db_name = f"cuadre_test_{uuid.uuid4().hex}"
    admin_url = url.set(database="postgres")

    _admin_execute(admin_url, f'CREATE DATABASE "{db_name}"')
    try:
        yield url.set(database=db_name).render_as_string(hide_password=False)
    finally:
        _admin_execute(
            admin_url,
            "SELECT pg_terminate_backend(pid) FROM pg_stat_activity WHERE datname = :db_name",
            {"db_name": db_name},
        )
        _admin_execute(admin_url, f'DROP DATABASE IF EXISTS "{db_name}"')
