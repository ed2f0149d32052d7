class AppError(Exception):
    """Base class for all application exceptions."""
    def __init__(self, message: str, status_code: int = 500, details: dict = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

class ScheduleRejectedError(AppError):
    """Raised when a proposed weekly schedule fails validation."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=422, details=details)

class EnrollmentConflictError(AppError):
    """Raised when a student would end up in two classes teaching the same subject."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=409, details=details)

class FieldValidationError(AppError):
    """Raised when a class draft references missing or out-of-department records."""
    def __init__(self, errors: dict[str, list[str]]):
        fields = ", ".join(sorted(errors))
        super().__init__(f"Invalid fields: {fields}", status_code=422, details={"errors": errors})
        self.errors = errors

class ResourceNotFoundError(AppError):
    """Raised when a requested resource is not found."""
    def __init__(self, resource_type: str, resource_id):
        super().__init__(f"{resource_type} with id {resource_id} not found", status_code=404)

class RepositoryError(AppError):
    """Raised when the class store fails to persist a change."""
    def __init__(self, message: str, status_code: int = 500):
        super().__init__(message, status_code=status_code)
