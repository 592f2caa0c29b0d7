# services/client.py
import httpx
import os
from dotenv import load_dotenv
from typing import List, Optional
import logging

from services.errors import (
    AlreadySubmitted,
    AssessmentError,
    InvalidAssignment,
    NotFound,
    TransientIO,
    ValidationError,
)

load_dotenv()
logger = logging.getLogger(__name__)

ASSESSMENT_API_URL = os.getenv("ASSESSMENT_API_URL", "http://127.0.0.1:8000")

STATUS_ERRORS = {
    400: ValidationError,
    404: NotFound,
    422: InvalidAssignment,
}


def _raise_for_status(response: httpx.Response) -> None:
    if response.status_code < 400:
        return
    try:
        body = response.json()
    except ValueError:
        body = {}
    detail = body.get("detail") if isinstance(body, dict) else None
    message = detail if isinstance(detail, str) else response.text or f"HTTP {response.status_code}"
    if response.status_code == 409:
        submission_id = body.get("submissionId") if isinstance(body, dict) else None
        raise AlreadySubmitted(message, submission_id=submission_id)
    if response.status_code >= 500:
        raise TransientIO(message)
    error = STATUS_ERRORS.get(response.status_code, AssessmentError)
    raise error(message)


class AssessmentClient:
    """Talks to the assessment API on behalf of a logged-in student."""

    def __init__(self, token: str, base_url: str = ASSESSMENT_API_URL, timeout: float = 10.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers={"Authorization": f"Bearer {token}"},
            timeout=timeout,
            transport=transport,
        )

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.TransportError as e:
            logger.error(f"{method} {url} failed: {str(e)}")
            raise TransientIO(f"Could not reach the assessment service: {str(e)}") from e
        _raise_for_status(response)
        return response

    async def get_assignment_questions(self, assignment_id: str) -> List[dict]:
        response = await self._request("GET", f"/api/assignments/{assignment_id}/questions")
        return response.json()

    async def submit_assignment(self, assignment_id: str, student_id: str, answers: List[Optional[str]], time_spent: int) -> dict:
        # The server takes the student from the token; student_id is only logged.
        logger.info(f"Submitting assignment {assignment_id} for student {student_id}")
        response = await self._request(
            "POST",
            "/api/submissions/",
            json={"assignmentId": assignment_id, "answers": answers, "timeSpent": time_spent},
        )
        return response.json()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        await self.aclose()
