from __future__ import annotations

from dataclasses import dataclass
import re
from typing import Iterable, Protocol, Sequence

from app.core.exceptions import EmptyRosterError, NoClassesError
from app.schemas.timetable import GenerationRequest, StaffRosterEntry

CLASS_LEVELS = [
    "LKG",
    "UKG",
    "Class 1",
    "Class 2",
    "Class 3",
    "Class 4",
    "Class 5",
    "Class 6",
    "Class 7",
    "Class 8",
    "Class 9",
    "Class 10",
]

_LEADING_NUMBER = re.compile(r"\s*[+-]?\d+")


class RosterMember(Protocol):
    id: str
    qualified_classes: list[str]


@dataclass(frozen=True)
class BuiltGenerationRequest:
    request: GenerationRequest
    # positional index -> stable staff id, valid only for this request
    index_to_id: tuple[str, ...]

    def staff_id_for(self, positional_index: str | int) -> str | None:
        try:
            index = int(positional_index)
        except (TypeError, ValueError):
            return None
        if 0 <= index < len(self.index_to_id):
            return self.index_to_id[index]
        return None


def class_sort_key(name: str) -> tuple:
    if name == "LKG":
        return (0, 0, name)
    if name == "UKG":
        return (1, 0, name)
    match = _LEADING_NUMBER.match(name.replace("Class ", "", 1))
    if match is None:
        return (2, 0, name.casefold())
    return (3, int(match.group()), name.casefold())


def sort_class_names(names: Iterable[str]) -> list[str]:
    return sorted(set(names), key=class_sort_key)


def classes_with_staff(roster: Iterable[RosterMember]) -> list[str]:
    return sort_class_names(name for member in roster for name in member.qualified_classes if name)


def build_generation_request(
    roster: Sequence[RosterMember],
    *,
    class_names: Iterable[str] | None = None,
    periods_per_day: int,
    days_per_week: int,
    breaks_per_day: int,
) -> BuiltGenerationRequest:
    """Build the generator input from the roster in its stored order.

    ``class_names`` defaults to every class some staff member is qualified for.
    """
    if not roster:
        raise EmptyRosterError()

    if class_names is None:
        targets = classes_with_staff(roster)
    else:
        targets = sort_class_names(name.strip() for name in class_names if name and name.strip())
    if not targets:
        raise NoClassesError()

    entries = [
        StaffRosterEntry(positional_index=index, qualified_classes=list(member.qualified_classes))
        for index, member in enumerate(roster)
    ]
    request = GenerationRequest(
        staff_roster=entries,
        class_names=targets,
        periods_per_day=periods_per_day,
        days_per_week=days_per_week,
        breaks_per_day=breaks_per_day,
    )
    return BuiltGenerationRequest(request=request, index_to_id=tuple(member.id for member in roster))
