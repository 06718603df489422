from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.api.deps import get_db
from app.core.exceptions import ResourceNotFoundError
from app.models.staff import StaffMember
from app.schemas.staff import LegacyStaffRecord, StaffCreate, StaffImportResult, StaffOut, StaffUpdate
from app.services.request_builder import CLASS_LEVELS, classes_with_staff
from app.services.staff_registry import list_roster, next_position

router = APIRouter()


@router.get("/", response_model=list[StaffOut])
def list_staff(db: Session = Depends(get_db)) -> list[StaffOut]:
    return list_roster(db)


@router.get("/classes", response_model=list[str])
def list_staffed_classes(db: Session = Depends(get_db)) -> list[str]:
    return classes_with_staff(list_roster(db))


@router.get("/class-levels", response_model=list[str])
def list_class_levels() -> list[str]:
    return list(CLASS_LEVELS)


@router.post("/", response_model=StaffOut, status_code=status.HTTP_201_CREATED)
def create_staff(payload: StaffCreate, db: Session = Depends(get_db)) -> StaffOut:
    staff = StaffMember(position=next_position(db), **payload.model_dump())
    db.add(staff)
    db.commit()
    db.refresh(staff)
    return staff


@router.post("/import", response_model=StaffImportResult, status_code=status.HTTP_201_CREATED)
def import_staff(records: list[LegacyStaffRecord], db: Session = Depends(get_db)) -> StaffImportResult:
    imported: list[StaffMember] = []
    skipped: list[str] = []
    position = next_position(db)
    for record in records:
        values = record.to_staff_values()
        if db.get(StaffMember, values["id"]) is not None:
            skipped.append(values["id"])
            continue
        staff = StaffMember(position=position, **values)
        db.add(staff)
        db.flush()
        imported.append(staff)
        position += 1
    db.commit()
    for staff in imported:
        db.refresh(staff)
    return StaffImportResult(
        imported=[StaffOut.model_validate(staff) for staff in imported],
        skipped_ids=skipped,
    )


@router.put("/{staff_id}", response_model=StaffOut)
def update_staff(staff_id: str, payload: StaffUpdate, db: Session = Depends(get_db)) -> StaffOut:
    staff = db.get(StaffMember, staff_id)
    if staff is None:
        raise ResourceNotFoundError("Staff member", staff_id)

    for key, value in payload.model_dump(exclude_unset=True).items():
        if value is None:
            continue
        setattr(staff, key, value)
    db.commit()
    db.refresh(staff)
    return staff


@router.delete("/{staff_id}")
def delete_staff(staff_id: str, db: Session = Depends(get_db)) -> dict:
    staff = db.get(StaffMember, staff_id)
    if staff is None:
        raise ResourceNotFoundError("Staff member", staff_id)
    db.delete(staff)
    db.commit()
    return {"success": True, "remaining_staff": len(list_roster(db))}
