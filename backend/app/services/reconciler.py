"""Turn untrusted generator output into a complete, renderable timetable set.

The generator is asked for one grid per class, ``[day][period][activity]`` where each
activity is ``{"staffId": "<positional index>"}`` or ``None``. Nothing about the answer
is trusted: classes can be missing, duplicated, unrequested or shaped wrongly, and the
whole payload can be absent. Reconciliation only guarantees shape. It does not check
that staff indices are in range, that staff are qualified for the class, that nobody is
double-booked or that the break count matches the request.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
import logging
from typing import Any, Union

from app.schemas.timetable import GenerationRequest

logger = logging.getLogger(__name__)

MAX_STAFF_INDEX_DIGITS = 9


@dataclass(frozen=True)
class Absent:
    reason: str = "no output"


@dataclass(frozen=True)
class Malformed:
    reason: str


@dataclass(frozen=True)
class PerClass:
    # (class name, candidate grid) pairs in the order the generator sent them
    entries: tuple[tuple[str, Any], ...]


RawTimetableOutcome = Union[Absent, Malformed, PerClass]


@dataclass
class ReconciliationResult:
    timetables: dict[str, list]
    fallback_classes: list[str] = field(default_factory=list)
    discarded_classes: list[str] = field(default_factory=list)
    total_failure: bool = False

    @property
    def all_fell_back(self) -> bool:
        return bool(self.timetables) and len(self.fallback_classes) == len(self.timetables)


def fallback_grid(days_per_week: int, periods_per_day: int) -> list:
    return [[[None] for _ in range(periods_per_day)] for _ in range(days_per_week)]


def _entries_from_pairs(items: list) -> tuple[tuple[str, Any], ...]:
    entries: list[tuple[str, Any]] = []
    for item in items:
        if not isinstance(item, Mapping) or not isinstance(item.get("className"), str):
            logger.warning("Skipping generator entry without a className: %r", item)
            continue
        grid = item["data"] if "data" in item else item.get("grid")
        entries.append((item["className"], grid))
    return tuple(entries)


def classify_raw_output(raw: Any) -> RawTimetableOutcome:
    if isinstance(raw, (Absent, Malformed, PerClass)):
        return raw
    if raw is None:
        return Absent()
    if isinstance(raw, list):
        return PerClass(_entries_from_pairs(raw))
    if not isinstance(raw, Mapping):
        return Malformed(f"expected an object or array, got {type(raw).__name__}")

    if "allClassTimetables" in raw:
        items = raw["allClassTimetables"]
        if not isinstance(items, list):
            return Malformed("allClassTimetables is not an array")
        return PerClass(_entries_from_pairs(items))
    if "timetablesByClass" in raw:
        by_class = raw["timetablesByClass"]
        if not isinstance(by_class, Mapping):
            return Malformed("timetablesByClass is not an object")
        return PerClass(tuple((str(name), grid) for name, grid in by_class.items()))
    return PerClass(tuple((str(name), grid) for name, grid in raw.items()))


def _normalize_activity(activity: Any) -> tuple[bool, dict | None]:
    if activity is None:
        return True, None
    if not isinstance(activity, Mapping):
        return False, None
    staff_id = activity.get("staffId")
    if isinstance(staff_id, bool):
        return False, None
    if isinstance(staff_id, int):
        staff_id = str(staff_id)
    if not isinstance(staff_id, str):
        return False, None
    staff_id = staff_id.strip()
    if not (staff_id.isascii() and staff_id.isdigit()) or len(staff_id) > MAX_STAFF_INDEX_DIGITS:
        return False, None
    return True, {"staffId": staff_id}


def normalize_grid(value: Any) -> list | None:
    """Return a copy of ``value`` if it is a list of days of periods of activity lists.

    Dimensions are not compared with the request. Returns ``None`` when the shape is wrong.
    """
    if not isinstance(value, list):
        return None
    days: list = []
    for day in value:
        if not isinstance(day, list):
            return None
        periods: list = []
        for period in day:
            if not isinstance(period, list):
                return None
            activities: list = []
            for activity in period:
                ok, normalized = _normalize_activity(activity)
                if not ok:
                    return None
                activities.append(normalized)
            periods.append(activities)
        days.append(periods)
    return days


def reconcile(raw: Any, request: GenerationRequest) -> ReconciliationResult:
    """Map raw generator output onto exactly ``request.class_names``. Never raises."""
    return reconcile_classes(
        raw,
        request.class_names,
        days_per_week=request.days_per_week,
        periods_per_day=request.periods_per_day,
    )


def reconcile_classes(
    raw: Any,
    class_names: list[str],
    *,
    days_per_week: int,
    periods_per_day: int,
) -> ReconciliationResult:
    requested = list(dict.fromkeys(class_names))
    outcome = classify_raw_output(raw)

    if not isinstance(outcome, PerClass):
        logger.error(
            "Generator output unusable (%s); using empty schedules for %d class(es)",
            outcome.reason,
            len(requested),
        )
        return ReconciliationResult(
            timetables={
                name: fallback_grid(days_per_week, periods_per_day) for name in requested
            },
            fallback_classes=requested,
            total_failure=True,
        )

    requested_set = set(requested)
    validated: dict[str, list] = {}
    discarded: list[str] = []
    for class_name, candidate in outcome.entries:
        if class_name not in requested_set:
            logger.info("Dropping timetable for unrequested class %s", class_name)
            continue
        grid = normalize_grid(candidate)
        if grid is None:
            logger.warning("Malformed timetable grid for class %s in generator output; skipping", class_name)
            discarded.append(class_name)
            continue
        # Later entries win, matching a plain key assignment.
        validated[class_name] = grid

    timetables: dict[str, list] = {}
    fallback_classes: list[str] = []
    for class_name in requested:
        grid = validated.get(class_name)
        if grid is None:
            logger.warning("No usable timetable for class %s; using fallback empty schedule", class_name)
            grid = fallback_grid(days_per_week, periods_per_day)
            fallback_classes.append(class_name)
        timetables[class_name] = grid

    return ReconciliationResult(
        timetables=timetables,
        fallback_classes=fallback_classes,
        discarded_classes=[name for name in dict.fromkeys(discarded) if name not in validated],
    )
