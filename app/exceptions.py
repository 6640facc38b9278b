"""
Assessment domain exceptions

Every error carries an HTTP status code so the exception handlers in
``app.main`` can render it into the standard response envelope.
"""


class AssessmentError(Exception):
    """Base exception for assessment and attempt errors."""

    def __init__(self, message: str = "Assessment error", status_code: int = 400):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class NotFoundError(AssessmentError):
    """Assessment, question or attempt is absent or not accessible."""

    def __init__(self, message: str = "Resource not found"):
        super().__init__(message, status_code=404)


class ForbiddenError(AssessmentError):
    """Caller may not perform the operation."""

    def __init__(self, message: str = "Forbidden"):
        super().__init__(message, status_code=403)


class AssessmentNotOpenError(ForbiddenError):
    """Assessment availability window has not started yet."""

    def __init__(self, message: str = "This assessment has not started yet"):
        super().__init__(message)


class AssessmentClosedError(ForbiddenError):
    """Assessment availability window has ended."""

    def __init__(self, message: str = "This assessment has ended"):
        super().__init__(message)


class AttemptsExhaustedError(ForbiddenError):
    """User has used every attempt the assessment allows."""

    def __init__(self, message: str = "No attempts remaining for this assessment"):
        super().__init__(message)


class ValidationError(AssessmentError):
    """Malformed submission or authoring payload."""

    def __init__(self, message: str = "Invalid request"):
        super().__init__(message, status_code=400)


class InternalError(AssessmentError):
    """Unexpected persistence failure."""

    def __init__(self, message: str = "An unexpected error occurred"):
        super().__init__(message, status_code=500)
