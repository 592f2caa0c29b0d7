# services/errors.py
from typing import Optional


class AssessmentError(Exception):
    """Base class for assessment failures. `status_code` is used by the API layer."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"detail": self.message}


class ValidationError(AssessmentError):
    status_code = 400


class NotFound(AssessmentError):
    status_code = 404


class AlreadySubmitted(AssessmentError):
    status_code = 409

    def __init__(self, message: str = "You have already submitted this assignment", submission_id: Optional[str] = None):
        super().__init__(message)
        self.submission_id = submission_id

    def to_dict(self) -> dict:
        body = super().to_dict()
        if self.submission_id:
            body["submissionId"] = self.submission_id
        return body


class AssignmentLocked(AssessmentError):
    status_code = 409


class InvalidAssignment(AssessmentError):
    status_code = 422


class TransientIO(AssessmentError):
    status_code = 503
