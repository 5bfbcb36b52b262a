"""Exceptions for assessment and grading operations."""


class GradingError(Exception):
    """Error during a submission or grading operation."""

    status_code: int = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(GradingError):
    """Malformed or out-of-range input."""

    status_code = 400


class NotFound(GradingError):
    """Assessment, submission or question is absent."""

    status_code = 404


class Forbidden(GradingError):
    status_code = 403


class AttemptsExceeded(GradingError):
    """The student has used every attempt the assessment allows."""

    status_code = 409


class Conflict(GradingError):
    """Reserved for concurrent grading conflicts."""

    status_code = 409
