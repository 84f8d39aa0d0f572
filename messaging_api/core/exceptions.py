# messaging_api/core/exceptions.py

class AppError(Exception):
    def __init__(self, message: str, *, status_code: int = 400) -> None:
        super().__init__(message)
        self.status_code = status_code


class ValidationError(AppError):
    def __init__(self, message: str = "Invalid request") -> None:
        super().__init__(message, status_code=400)


class NotFoundError(AppError):
    def __init__(self, message: str = "Resource not found") -> None:
        super().__init__(message, status_code=404)


class ConflictError(AppError):
    def __init__(self, message: str = "Conflict") -> None:
        super().__init__(message, status_code=409)


class InvalidStateError(AppError):
    def __init__(self, message: str = "Invalid state") -> None:
        super().__init__(message, status_code=422)


class EditWindowExpiredError(InvalidStateError):
    def __init__(self, minutes: int) -> None:
        super().__init__(f"Cannot edit messages older than {minutes} minutes.")
        self.minutes = minutes


class UnauthorizedError(AppError):
    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message, status_code=401)


class ForbiddenError(AppError):
    def __init__(self, message: str = "Forbidden") -> None:
        super().__init__(message, status_code=403)


class StorageError(AppError):
    def __init__(self, message: str = "Attachment storage failure") -> None:
        super().__init__(message, status_code=500)
