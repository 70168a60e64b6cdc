# cbt/core/exceptions.py
from typing import Optional


class ExamServiceError(Exception):
    """Base error for exam session operations. Carries a stable code and HTTP status."""

    code = "EXAM_ERROR"
    status_code = 400
    default_message = "Exam request failed"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_detail(self) -> dict:
        return {"error": self.message, "code": self.code}


class InvalidCredentials(ExamServiceError):
    code = "INVALID_CREDENTIALS"
    status_code = 401
    default_message = "Invalid exam code or password"

    def __init__(self, message: Optional[str] = None, reason: Optional[str] = None):
        super().__init__(message)
        # audit-only detail, never sent to the client
        self.reason = reason or self.message


class NotFound(ExamServiceError):
    code = "NOT_FOUND"
    status_code = 404
    default_message = "Not found"


class NoActiveExams(ExamServiceError):
    code = "NO_ACTIVE_EXAMS"
    status_code = 404
    default_message = "No active exams are available for your class"


class NoQuestions(ExamServiceError):
    code = "NO_QUESTIONS"
    status_code = 404
    default_message = "This exam has no questions yet"


class NoSession(ExamServiceError):
    code = "NO_SESSION"
    status_code = 404
    default_message = "No exam session found. Start the exam first"


class AlreadySubmitted(ExamServiceError):
    code = "ALREADY_SUBMITTED"
    status_code = 409
    default_message = "You have already submitted this exam"


class TimeExpired(ExamServiceError):
    code = "TIME_EXPIRED"
    status_code = 403
    default_message = "Time for this exam has expired"


class NoAnswerKey(ExamServiceError):
    code = "NO_ANSWER_KEY"
    status_code = 500
    default_message = "Exam is misconfigured: no answer key available"


class StoreUnavailable(ExamServiceError):
    code = "STORE_UNAVAILABLE"
    status_code = 503
    default_message = "Service temporarily unavailable. Please try again"
