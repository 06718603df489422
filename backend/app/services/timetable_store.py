from __future__ import annotations

from datetime import datetime, timezone
from threading import Lock

from sqlalchemy.orm import Session

from app.models.timetable import TimetableSet

TIMETABLE_SET_ID = 1

# Held around every read-modify-write of the stored set.
write_lock = Lock()


def load_timetable_record(db: Session) -> TimetableSet | None:
    return db.get(TimetableSet, TIMETABLE_SET_ID)


def load_timetables(db: Session) -> dict[str, list]:
    record = load_timetable_record(db)
    if record is None or not isinstance(record.payload, dict):
        return {}
    return dict(record.payload)


def save_timetables(
    db: Session,
    timetables: dict[str, list],
    *,
    fallback_classes: list[str] | None = None,
    generated: bool = False,
) -> TimetableSet:
    """Overwrite the stored set as a whole value."""
    record = load_timetable_record(db)
    if record is None:
        record = TimetableSet(id=TIMETABLE_SET_ID, payload={}, fallback_classes=[])
        db.add(record)
    record.payload = dict(timetables)
    if fallback_classes is not None:
        record.fallback_classes = list(fallback_classes)
    if generated:
        record.generated_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(record)
    return record


def clear_timetables(db: Session) -> bool:
    record = load_timetable_record(db)
    if record is None:
        return False
    db.delete(record)
    db.commit()
    return True
