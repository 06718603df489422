from __future__ import annotations

from collections.abc import Mapping
import logging
from typing import Sequence

from app.core.exceptions import ClassNotSelectedError, StaleStaffReferenceError
from app.models.staff import StaffMember
from app.services.staff_registry import positional_index_for

logger = logging.getLogger(__name__)


def apply_slot_edit(
    timetables: Mapping[str, list],
    *,
    class_name: str | None,
    day_index: int,
    period_index: int,
    activity_index: int,
    staff_id: str | None,
    roster: Sequence[StaffMember],
) -> dict[str, list]:
    """Return a copy of ``timetables`` with one activity slot assigned or cleared.

    ``staff_id`` is a stable registry id; the grid stores the member's positional index
    in ``roster`` as it is now. Only the touched day and period lists are copied; the
    input mapping and its grids are left untouched. Rows missing up to the addressed
    coordinate are created empty.
    """
    if day_index < 0 or period_index < 0 or activity_index < 0:
        raise ValueError("slot coordinates must be non-negative")
    if not class_name or class_name not in timetables:
        raise ClassNotSelectedError(class_name)

    assignment: dict | None = None
    if staff_id is not None:
        position = positional_index_for(staff_id, roster)
        if position is None:
            logger.warning("Could not find roster position for staff id %s", staff_id)
            raise StaleStaffReferenceError(staff_id)
        assignment = {"staffId": str(position)}

    grid = list(timetables[class_name])
    while len(grid) <= day_index:
        grid.append([])
    day = list(grid[day_index])
    while len(day) <= period_index:
        day.append([])
    period = list(day[period_index])
    while len(period) <= activity_index:
        period.append(None)

    period[activity_index] = assignment
    day[period_index] = period
    grid[day_index] = day

    updated = dict(timetables)
    updated[class_name] = grid
    return updated
