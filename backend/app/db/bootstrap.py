from __future__ import annotations

import logging

from sqlalchemy import inspect
from sqlalchemy.engine import Connection

from app.core.config import get_settings
from app.db.base import Base
from app.db.session import engine
import app.models  # noqa: F401

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS: dict[str, set[str]] = {
    "practitioners": {"id", "name"},
    "base_schedules": {"id", "practitioner_id", "location_id", "day_of_week", "start_time", "end_time", "break_times"},
    "appointments": {
        "id",
        "start",
        "end",
        "practitioner_id",
        "resource",
        "location_id",
        "is_simulation",
        "replaces_appointment_id",
    },
    "blocked_slots": {"id", "start", "end", "practitioner_id", "is_simulation", "replaces_blocked_slot_id"},
}


def missing_schema_parts(connection: Connection) -> tuple[list[str], dict[str, list[str]]]:
    inspector = inspect(connection)
    table_names = set(inspector.get_table_names())
    missing_tables: list[str] = []
    missing_columns: dict[str, list[str]] = {}
    for table_name, columns in REQUIRED_COLUMNS.items():
        if table_name not in table_names:
            missing_tables.append(table_name)
            continue
        existing = {item["name"] for item in inspector.get_columns(table_name)}
        missing = sorted(columns - existing)
        if missing:
            missing_columns[table_name] = missing
    return missing_tables, missing_columns


def ensure_runtime_schema_compatibility() -> None:
    if not get_settings().auto_create_schema:
        return
    Base.metadata.create_all(bind=engine)

    with engine.connect() as connection:
        missing_tables, missing_columns = missing_schema_parts(connection)
    if missing_tables or missing_columns:
        logger.warning(
            "Calendar schema incomplete after bootstrap (tables=%s, columns=%s)",
            missing_tables,
            missing_columns,
        )
