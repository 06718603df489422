from app.models.staff import StaffMember  # noqa: F401
from app.models.timetable import TimetableSet  # noqa: F401
