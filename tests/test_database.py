import logging

import pytest

from internal.database import check_connection, create_backend
from internal.postgresql import normalize_url


def test_health_check_succeeds_on_working_pool(engine, caplog):
    with caplog.at_level(logging.INFO, logger="internal.database"):
        assert check_connection(engine) is True
    assert "Database connection successful" in caplog.text


def test_health_check_reports_failure_without_raising(tmp_path, caplog):
    missing_dir = tmp_path / "does-not-exist" / "db.sqlite"
    backend = create_backend({"backend": "sqlite", "path": str(missing_dir)})
    with caplog.at_level(logging.ERROR, logger="internal.database"):
        assert check_connection(backend["engine"]) is False
    assert "Database connection failed" in caplog.text
    backend["engine"].dispose()


def test_unsupported_backend():
    with pytest.raises(ValueError):
        create_backend({"backend": "oracle"})


def test_postgresql_requires_url_or_fields():
    with pytest.raises(ValueError):
        create_backend({"backend": "postgresql", "host": "localhost"})


def test_postgres_url_selects_psycopg2_driver():
    assert normalize_url("postgres://u:p@db:5432/app") == "postgresql+psycopg2://u:p@db:5432/app"
    assert normalize_url("postgresql://u:p@db/app") == "postgresql+psycopg2://u:p@db/app"
    assert normalize_url("postgresql+psycopg2://u:p@db/app") == "postgresql+psycopg2://u:p@db/app"


def test_backend_handle_exposes_engine_and_connection_helper(backend):
    assert set(backend) == {"backend", "engine", "get_connection"}
    with backend["get_connection"](backend["engine"]) as conn:
        assert conn.exec_driver_sql("SELECT 1").scalar_one() == 1
