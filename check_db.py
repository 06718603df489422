from app.db.session import SessionLocal
from app.models.timetable import TimetableSet
from app.services.staff_registry import list_roster

db = SessionLocal()
try:
    roster = list_roster(db)
    print(f"Staff: {len(roster)}")
    for index, member in enumerate(roster):
        print(f"  [{index}] {member.name} ({member.subject}) -> {', '.join(member.qualified_classes)}")

    stored = db.get(TimetableSet, 1)
    print(f"Timetable set: {'present' if stored else 'None'}")
    if stored:
        print(f"Generated At: {stored.generated_at}")
        print(f"Classes: {', '.join(stored.payload.keys()) or '-'}")
        if stored.fallback_classes:
            print(f"Fallback classes: {', '.join(stored.fallback_classes)}")
finally:
    db.close()
