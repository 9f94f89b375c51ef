class AppError(Exception):
    """Base class for all application exceptions."""
    def __init__(self, message: str, status_code: int = 500, details: dict = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

class SchedulerError(AppError):
    """Raised when the scheduler encounters a logical error or invalid state."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=400, details=details)

class ResourceNotFoundError(AppError):
    """Raised when a requested resource is not found."""
    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(
            f"{resource_type} with id {resource_id} not found",
            status_code=404,
            details={"resource_type": resource_type, "resource_id": resource_id},
        )

class InvalidTimeFormatError(AppError):
    """Raised when a time-of-day string is not a valid HH:MM value."""
    def __init__(self, value: object):
        super().__init__(
            f'Invalid time format: "{value}"',
            status_code=400,
            details={"value": str(value), "expected_format": "HH:MM"},
        )
        self.value = value

class InvalidScheduleRecordError(AppError):
    """Raised for a base schedule entry whose working window cannot be parsed."""
    def __init__(self, practitioner_name: str, start_time: str, end_time: str):
        super().__init__(
            f"Invalid working hours for {practitioner_name}: {start_time}-{end_time}",
            status_code=422,
            details={"practitioner": practitioner_name, "start_time": start_time, "end_time": end_time},
        )

class MissingContextError(AppError):
    """Raised when a booking or fork lacks a required identifier."""
    def __init__(self, field: str, message: str | None = None):
        super().__init__(
            message or f"Missing required context: {field}",
            status_code=422,
            details={"field": field},
        )
        self.field = field

class PersistenceFailureError(AppError):
    """Raised when the calendar store rejects a create, update or delete."""
    def __init__(self, operation: str, message: str):
        super().__init__(
            f"Could not {operation}: {message}",
            status_code=503,
            details={"operation": operation},
        )
        self.operation = operation
