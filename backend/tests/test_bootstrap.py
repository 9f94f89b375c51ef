from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from app.db import bootstrap
from app.db.base import Base


def _memory_engine():
    return create_engine("sqlite+pysqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)


def test_missing_schema_parts_reports_absent_tables():
    engine = _memory_engine()
    with engine.connect() as connection:
        missing_tables, missing_columns = bootstrap.missing_schema_parts(connection)
    assert set(missing_tables) == {"practitioners", "base_schedules", "appointments", "blocked_slots"}
    assert missing_columns == {}


def test_missing_schema_parts_is_clean_after_create_all():
    engine = _memory_engine()
    Base.metadata.create_all(bind=engine)
    with engine.connect() as connection:
        assert bootstrap.missing_schema_parts(connection) == ([], {})


def test_runtime_bootstrap_warns_about_incomplete_schema(monkeypatch, caplog):
    monkeypatch.setattr(bootstrap.Base.metadata, "create_all", lambda bind: None)
    monkeypatch.setattr(bootstrap, "missing_schema_parts", lambda connection: (["appointments"], {}))

    with caplog.at_level("WARNING"):
        bootstrap.ensure_runtime_schema_compatibility()

    assert "Calendar schema incomplete" in caplog.text
