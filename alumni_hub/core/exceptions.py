# alumni_hub/core/exceptions.py
"""Custom exceptions for the AlumniHub application."""


class AlumniHubException(Exception):
    """Base exception for AlumniHub application."""
    def __init__(self, message: str, status_code: int = 500):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class InvalidArgumentError(AlumniHubException):
    """Malformed request or a state rule such as the delete window."""
    def __init__(self, message: str):
        super().__init__(message, 400)


class ForbiddenError(AlumniHubException):
    """Role or relationship rule violation."""
    def __init__(self, message: str = "Permission denied"):
        super().__init__(message, 403)


class NotFoundError(AlumniHubException):
    def __init__(self, message: str):
        super().__init__(message, 404)


class ConflictError(AlumniHubException):
    """Duplicate request, existing relationship or repeated transition."""
    def __init__(self, message: str):
        super().__init__(message, 409)


class InternalError(AlumniHubException):
    def __init__(self, message: str = "Internal server error"):
        super().__init__(message, 500)
