from __future__ import annotations

import logging

from sqlalchemy import inspect, text

import app.models  # noqa: F401
from app.db.base import Base
from app.db.session import engine

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS: dict[str, set[str]] = {
    "staff_members": {"id", "position", "name", "subject", "qualified_classes"},
    "timetable_sets": {"id", "payload", "fallback_classes", "generated_at"},
}


def _ensure_staff_position_column() -> None:
    """Add ``position`` to rosters created before ordering was stored, backfilled by age."""
    with engine.begin() as connection:
        inspector = inspect(connection)
        if "staff_members" not in set(inspector.get_table_names()):
            return
        column_names = {item["name"] for item in inspector.get_columns("staff_members")}
        if "position" in column_names:
            return
        connection.execute(text("ALTER TABLE staff_members ADD COLUMN position INTEGER NOT NULL DEFAULT 0"))
        rows = connection.execute(text("SELECT id FROM staff_members ORDER BY created_at, id")).fetchall()
        for index, row in enumerate(rows):
            connection.execute(
                text("UPDATE staff_members SET position = :position WHERE id = :id"),
                {"position": index, "id": row[0]},
            )


def _ensure_timetable_set_columns() -> None:
    with engine.begin() as connection:
        inspector = inspect(connection)
        if "timetable_sets" not in set(inspector.get_table_names()):
            return
        column_names = {item["name"] for item in inspector.get_columns("timetable_sets")}
        if "fallback_classes" not in column_names:
            if connection.dialect.name == "postgresql":
                connection.execute(
                    text(
                        "ALTER TABLE timetable_sets "
                        "ADD COLUMN fallback_classes JSONB NOT NULL DEFAULT '[]'::jsonb"
                    )
                )
            else:
                connection.execute(
                    text("ALTER TABLE timetable_sets ADD COLUMN fallback_classes JSON NOT NULL DEFAULT '[]'")
                )
        if "generated_at" not in column_names:
            connection.execute(text("ALTER TABLE timetable_sets ADD COLUMN generated_at TIMESTAMP"))


def _verify_required_columns() -> None:
    with engine.begin() as connection:
        inspector = inspect(connection)
        table_names = set(inspector.get_table_names())
        problems: list[str] = []
        for table_name, required in REQUIRED_COLUMNS.items():
            if table_name not in table_names:
                problems.append(table_name)
                continue
            existing = {item["name"] for item in inspector.get_columns(table_name)}
            problems.extend(f"{table_name}.{column}" for column in sorted(required - existing))
        if problems:
            raise RuntimeError(f"Database schema is missing: {', '.join(problems)}")


def ensure_runtime_schema_compatibility() -> None:
    try:
        Base.metadata.create_all(bind=engine)
        _ensure_staff_position_column()
        _ensure_timetable_set_columns()
        _verify_required_columns()
    except Exception as exc:  # pragma: no cover - runtime environment dependent
        logger.exception("Runtime schema compatibility bootstrap failed")
        raise RuntimeError("Runtime schema compatibility bootstrap failed") from exc
