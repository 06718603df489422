import uuid

from pydantic import AliasChoices, BaseModel, Field, field_validator


def normalize_class_names(value: list[str]) -> list[str]:
    seen: set[str] = set()
    normalized: list[str] = []
    for item in value:
        name = " ".join(item.split())
        if not name:
            continue
        if len(name) > 50:
            raise ValueError("Class name length cannot exceed 50 characters")
        if name in seen:
            continue
        seen.add(name)
        normalized.append(name)
    return sorted(normalized)


class StaffBase(BaseModel):
    name: str = Field(min_length=2, max_length=200)
    subject: str = Field(min_length=2, max_length=200)
    qualified_classes: list[str] = Field(min_length=1, max_length=50)

    @field_validator("name", "subject")
    @classmethod
    def strip_text(cls, value: str) -> str:
        cleaned = value.strip()
        if len(cleaned) < 2:
            raise ValueError("must be at least 2 characters")
        return cleaned

    @field_validator("qualified_classes")
    @classmethod
    def normalize_qualified_classes(cls, value: list[str]) -> list[str]:
        normalized = normalize_class_names(value)
        if not normalized:
            raise ValueError("Please select at least one class")
        return normalized


class StaffCreate(StaffBase):
    pass


class StaffUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=2, max_length=200)
    subject: str | None = Field(default=None, min_length=2, max_length=200)
    qualified_classes: list[str] | None = Field(default=None, min_length=1, max_length=50)

    @field_validator("name", "subject")
    @classmethod
    def strip_optional_text(cls, value: str | None) -> str | None:
        if value is None:
            return None
        cleaned = value.strip()
        if len(cleaned) < 2:
            raise ValueError("must be at least 2 characters")
        return cleaned

    @field_validator("qualified_classes")
    @classmethod
    def normalize_optional_qualified_classes(cls, value: list[str] | None) -> list[str] | None:
        if value is None:
            return None
        normalized = normalize_class_names(value)
        if not normalized:
            raise ValueError("Please select at least one class")
        return normalized


class StaffOut(BaseModel):
    id: str
    name: str
    subject: str
    qualified_classes: list[str]

    model_config = {"from_attributes": True}


class LegacyStaffRecord(BaseModel):
    """Staff entry as exported from the browser build's local storage."""

    # Stored ids share the 36 character column used for generated uuids.
    id: str | None = Field(default=None, max_length=36)
    name: str | None = Field(default=None, max_length=200)
    subject: str | None = Field(default=None, max_length=200)
    assigned_class: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("assignedClass", "assigned_class", "qualified_classes"),
    )

    @field_validator("assigned_class", mode="before")
    @classmethod
    def coerce_assigned_class(cls, value: list[str] | str | None) -> list[str]:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return value

    @field_validator("assigned_class")
    @classmethod
    def normalize_assigned_class(cls, value: list[str]) -> list[str]:
        return normalize_class_names(value)

    def to_staff_values(self) -> dict:
        return {
            "id": (self.id or "").strip() or str(uuid.uuid4()),
            "name": (self.name or "").strip() or "Unknown",
            "subject": (self.subject or "").strip(),
            "qualified_classes": list(self.assigned_class),
        }


class StaffImportResult(BaseModel):
    imported: list[StaffOut]
    skipped_ids: list[str] = Field(default_factory=list)
