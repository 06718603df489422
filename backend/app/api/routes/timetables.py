import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_db, get_schedule_generator
from app.core.config import Settings, get_settings
from app.core.exceptions import ClassNotSelectedError
from app.schemas.timetable import (
    ClassTimetableOut,
    ClassTimetableView,
    GenerateTimetablesRequest,
    GenerateTimetablesResponse,
    SlotEditRequest,
    SlotView,
    TimetableImportRequest,
    TimetableSetOut,
    day_label,
)
from app.services import timetable_store
from app.services.generation import run_generation
from app.services.generator_client import ScheduleGenerator
from app.services.reconciler import reconcile_classes
from app.services.slot_editor import apply_slot_edit
from app.services.staff_registry import list_roster, resolve_staff_reference

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/generate", response_model=GenerateTimetablesResponse)
def generate_timetables(
    payload: GenerateTimetablesRequest | None = None,
    db: Session = Depends(get_db),
    generator: ScheduleGenerator = Depends(get_schedule_generator),
    settings: Settings = Depends(get_settings),
) -> GenerateTimetablesResponse:
    payload = payload or GenerateTimetablesRequest()
    outcome = run_generation(
        db,
        generator,
        class_names=payload.class_names,
        periods_per_day=payload.periods_per_day or settings.periods_per_day,
        days_per_week=payload.days_per_week or settings.days_per_week,
        break_count=payload.break_count or settings.break_count,
    )
    return GenerateTimetablesResponse(
        timetables=outcome.result.timetables,
        fallback_classes=outcome.result.fallback_classes,
        discarded_classes=outcome.result.discarded_classes,
        advisory=outcome.advisory,
        message=outcome.message,
        persisted=outcome.persisted,
    )


@router.get("/", response_model=TimetableSetOut)
def get_timetable_set(db: Session = Depends(get_db)) -> TimetableSetOut:
    record = timetable_store.load_timetable_record(db)
    if record is None:
        return TimetableSetOut()
    return TimetableSetOut(timetables=record.payload or {}, fallback_classes=record.fallback_classes or [])


@router.put("/", response_model=TimetableSetOut)
def import_timetable_set(
    payload: TimetableImportRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> TimetableSetOut:
    result = reconcile_classes(
        payload.timetables,
        list(payload.timetables.keys()),
        days_per_week=payload.days_per_week or settings.days_per_week,
        periods_per_day=payload.periods_per_day or settings.periods_per_day,
    )
    if result.fallback_classes:
        logger.warning("Imported timetables replaced with empty schedules: %s", ", ".join(result.fallback_classes))
    with timetable_store.write_lock:
        record = timetable_store.save_timetables(db, result.timetables, fallback_classes=result.fallback_classes)
    return TimetableSetOut(timetables=record.payload, fallback_classes=record.fallback_classes)


@router.delete("/")
def clear_timetable_set(db: Session = Depends(get_db)) -> dict:
    with timetable_store.write_lock:
        cleared = timetable_store.clear_timetables(db)
    return {"success": True, "cleared": cleared}


@router.get("/{class_name}", response_model=ClassTimetableOut)
def get_class_timetable(class_name: str, db: Session = Depends(get_db)) -> ClassTimetableOut:
    timetables = timetable_store.load_timetables(db)
    if class_name not in timetables:
        raise ClassNotSelectedError(class_name)
    return ClassTimetableOut(class_name=class_name, grid=timetables[class_name])


@router.get("/{class_name}/view", response_model=ClassTimetableView)
def view_class_timetable(
    class_name: str,
    staff_id: str | None = Query(default=None, description="Only show slots taught by this staff member"),
    db: Session = Depends(get_db),
) -> ClassTimetableView:
    timetables = timetable_store.load_timetables(db)
    if class_name not in timetables:
        raise ClassNotSelectedError(class_name)
    roster = list_roster(db)

    grid: list[list[list[SlotView | None]]] = []
    for day in timetables[class_name]:
        periods: list[list[SlotView | None]] = []
        for period in day:
            slots: list[SlotView | None] = []
            for activity in period:
                reference = activity.get("staffId") if isinstance(activity, dict) else None
                if not reference:
                    slots.append(None)
                    continue
                member = resolve_staff_reference(reference, roster)
                if staff_id and (member is None or member.id != staff_id):
                    slots.append(None)
                    continue
                if member is None:
                    slots.append(SlotView(reference=reference, name=reference, resolved=False))
                else:
                    slots.append(
                        SlotView(
                            reference=reference,
                            staff_member_id=member.id,
                            name=member.name,
                            subject=member.subject,
                            resolved=True,
                        )
                    )
            periods.append(slots)
        grid.append(periods)

    return ClassTimetableView(
        class_name=class_name,
        day_labels=[day_label(index) for index in range(len(grid))],
        staff_filter=staff_id,
        grid=grid,
    )


@router.put("/{class_name}/slots", response_model=ClassTimetableOut)
def edit_slot(class_name: str, payload: SlotEditRequest, db: Session = Depends(get_db)) -> ClassTimetableOut:
    with timetable_store.write_lock:
        record = timetable_store.load_timetable_record(db)
        current = dict(record.payload) if record is not None else {}
        updated = apply_slot_edit(
            current,
            class_name=class_name,
            day_index=payload.day_index,
            period_index=payload.period_index,
            activity_index=payload.activity_index,
            staff_id=payload.staff_id,
            roster=list_roster(db),
        )
        timetable_store.save_timetables(db, updated)
    logger.info(
        "Slot %s/%s/%s of %s set to %s",
        payload.day_index,
        payload.period_index,
        payload.activity_index,
        class_name,
        payload.staff_id or "unassigned",
    )
    return ClassTimetableOut(class_name=class_name, grid=updated[class_name])
