class AppError(Exception):
    """Base class for all application exceptions."""
    def __init__(self, message: str, status_code: int = 500, details: dict = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

class ResourceNotFoundError(AppError):
    """Raised when a requested resource is not found."""
    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(f"{resource_type} with id {resource_id} not found", status_code=404)

class ConfigurationError(AppError):
    """Raised when system configuration is invalid."""
    def __init__(self, message: str):
        super().__init__(message, status_code=500)


class RequestConstructionError(AppError):
    """Raised before any generator call when a generation request cannot be built."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=400, details=details)

class EmptyRosterError(RequestConstructionError):
    def __init__(self):
        super().__init__(
            "Please add at least one staff member.",
            details={"reason": "empty_roster"},
        )

class NoClassesError(RequestConstructionError):
    def __init__(self):
        super().__init__(
            "No staff members are assigned to any classes. Assign staff to classes first.",
            details={"reason": "no_classes"},
        )


class GenerationTransportError(AppError):
    """The external generator failed outright (network, timeout, overload).

    Recovered by the reconciler's fallback path; never rendered to API callers.
    """
    def __init__(self, message: str, *, status: int | None = None):
        self.status = status
        super().__init__(message, status_code=502, details={"upstream_status": status})

class MalformedResponseError(AppError):
    """The generator answered but its body could not be parsed as a timetable payload."""
    def __init__(self, message: str):
        super().__init__(message, status_code=502)


class StaleStaffReferenceError(AppError):
    """A slot edit references a staff id that is no longer in the registry."""
    def __init__(self, staff_id: str):
        super().__init__(
            "Could not map selected staff to a roster position.",
            status_code=409,
            details={"staff_id": staff_id},
        )

class ClassNotSelectedError(AppError):
    """A slot edit targets a class that has no timetable in the current set."""
    def __init__(self, class_name: str | None):
        super().__init__(
            "Select a class with a generated timetable before editing a slot.",
            status_code=404,
            details={"class_name": class_name},
        )

class GenerationInProgressError(AppError):
    def __init__(self, class_names: list[str]):
        super().__init__(
            "A timetable generation for these classes is already running.",
            status_code=409,
            details={"class_names": class_names},
        )
