# routes/submissions.py
from fastapi import APIRouter, HTTPException, Depends
from typing import List
import logging

from database import get_repository
from models.submission import Review, Submission, SubmissionCreate, SubmissionResult
from services.repository import AssessmentRepository
from .auth import STAFF_ROLES, get_current_user, require_student

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/submissions", tags=["submissions"])


@router.post("/", status_code=201, response_model=Submission)
async def submit_assignment(
    payload: SubmissionCreate,
    current_user: dict = Depends(require_student),
    repo: AssessmentRepository = Depends(get_repository),
):
    logger.info(f"Submission attempt: student={current_user['id']} assignment={payload.assignmentId}")
    return await repo.submit_assignment(
        payload.assignmentId, current_user["id"], payload.answers, payload.timeSpent
    )


@router.get("/student/{student_id}", response_model=List[SubmissionResult])
async def get_student_results(
    student_id: str,
    current_user: dict = Depends(get_current_user),
    repo: AssessmentRepository = Depends(get_repository),
):
    if current_user["role"] not in STAFF_ROLES and current_user["id"] != student_id:
        raise HTTPException(403, "Unauthorized access")
    return await repo.student_results(student_id)


@router.get("/{submission_id}/review", response_model=Review)
async def get_review(
    submission_id: str,
    current_user: dict = Depends(get_current_user),
    repo: AssessmentRepository = Depends(get_repository),
):
    return await repo.get_review(submission_id, current_user["role"], current_user["id"])
