"""Seed a small demo roster so timetable generation has something to work with.

Run:
  PYTHONPATH=backend python scripts/seed_demo_staff.py [--reset]
"""

from __future__ import annotations

import argparse

from sqlalchemy import delete

from app.db.bootstrap import ensure_runtime_schema_compatibility
from app.db.session import SessionLocal
from app.models.staff import StaffMember
from app.models.timetable import TimetableSet
from app.services.staff_registry import list_roster, next_position

DEMO_STAFF = [
    ("Anita Sharma", "English", ["LKG", "UKG", "Class 1"]),
    ("Rahul Verma", "Mathematics", ["Class 1", "Class 2", "Class 3"]),
    ("Priya Nair", "Science", ["Class 2", "Class 3"]),
    ("Suresh Pillai", "Hindi", ["UKG", "Class 1", "Class 2"]),
    ("Kavya Menon", "Art", ["LKG", "UKG"]),
    ("Imran Sheikh", "Physical Education", ["Class 1", "Class 2", "Class 3"]),
]


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--reset", action="store_true", help="remove existing staff and timetables first")
    args = parser.parse_args()

    ensure_runtime_schema_compatibility()
    db = SessionLocal()
    try:
        if args.reset:
            db.execute(delete(TimetableSet))
            db.execute(delete(StaffMember))
            db.commit()

        existing = {member.name for member in list_roster(db)}
        position = next_position(db)
        created = 0
        for name, subject, classes in DEMO_STAFF:
            if name in existing:
                continue
            db.add(
                StaffMember(
                    position=position,
                    name=name,
                    subject=subject,
                    qualified_classes=sorted(classes),
                )
            )
            position += 1
            created += 1
        db.commit()
        print(f"Seeded {created} staff member(s); roster now has {len(list_roster(db))}.")
    finally:
        db.close()


if __name__ == "__main__":
    main()
