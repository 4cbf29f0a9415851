"""Domain error taxonomy.

Services raise these exceptions; the exception handlers registered in
`quiz_api.main` translate them into the `{success, message}` response
envelope using each class's `status_code`.
"""

from typing import Dict, Optional


class QuizAppError(Exception):
    """Base class for errors that map onto a client-facing response."""
    status_code = 400
    default_message = "Bad request"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFoundError(QuizAppError):
    status_code = 404
    default_message = "Not found"


class ForbiddenError(QuizAppError):
    status_code = 403
    default_message = "Not authorized"


class BadRequestError(QuizAppError):
    status_code = 400


class ConflictError(QuizAppError):
    # duplicate submissions are reported as a bad request with a distinct message
    status_code = 400
    default_message = "Conflict"


class ValidationFailed(QuizAppError):
    """Entity-level constraint violation carrying per-field messages."""
    status_code = 422
    default_message = "Validation failed"

    def __init__(self, errors: Dict[str, str], message: Optional[str] = None):
        self.errors = errors
        super().__init__(message or "; ".join(errors.values()) or None)


class QuestionNotFound(NotFoundError):
    default_message = "Question not found"


class NoQuestions(BadRequestError):
    default_message = "This quiz has no questions"


class DuplicateSubmission(ConflictError):
    default_message = "You have already submitted this quiz"
