from __future__ import annotations

from typing import Sequence

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.models.staff import StaffMember


def list_roster(db: Session) -> list[StaffMember]:
    """Staff in registry order; list position is the generator's positional index."""
    statement = select(StaffMember).order_by(StaffMember.position, StaffMember.created_at, StaffMember.id)
    return list(db.execute(statement).scalars())


def next_position(db: Session) -> int:
    current = db.execute(select(func.max(StaffMember.position))).scalar_one_or_none()
    return 0 if current is None else current + 1


def positional_index_for(staff_id: str, roster: Sequence[StaffMember]) -> int | None:
    for index, member in enumerate(roster):
        if member.id == staff_id:
            return index
    return None


def resolve_staff_reference(reference: str | None, roster: Sequence[StaffMember]) -> StaffMember | None:
    """Look up a staff member by stable id first, then by positional index.

    Grid cells hold positional indices from the roster at generation or edit time, so a
    reference may resolve to someone else, or to nobody, after the roster changes.
    """
    if not reference:
        return None
    for member in roster:
        if member.id == reference:
            return member
    try:
        index = int(reference, 10)
    except ValueError:
        return None
    if 0 <= index < len(roster):
        return roster[index]
    return None
