# routes/assignments.py
from fastapi import APIRouter, HTTPException, Depends, File, Form, UploadFile, Query
from typing import List, Optional
import logging

from database import get_repository
from models.assignment import Assignment, AssignmentCreate, AssignmentSummary, AssignmentUpdate
from models.submission import Statistics, Submission
from services.csv_import import parse_questions
from services.repository import AssessmentRepository
from .auth import get_current_user, require_staff, require_student

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/assignments", tags=["assignments"])


@router.post("/", status_code=201)
async def create_assignment(
    assignment: AssignmentCreate,
    current_user: dict = Depends(require_staff),
    repo: AssessmentRepository = Depends(get_repository),
):
    created = await repo.create_assignment(assignment, created_by=current_user["id"])
    return {"message": "Assignment created successfully", "assignment": created}


@router.post("/upload-csv", status_code=201)
async def upload_csv(
    csvFile: UploadFile = File(...),
    title: str = Form(...),
    description: str = Form(""),
    timeLimit: int = Form(60),
    current_user: dict = Depends(require_staff),
    repo: AssessmentRepository = Depends(get_repository),
):
    raw = await csvFile.read()
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError:
        raise HTTPException(400, "CSV file must be UTF-8 encoded")

    questions, errors = parse_questions(text)
    if errors:
        logger.warning(f"CSV upload '{title}' rejected with {len(errors)} row errors")
        raise HTTPException(400, {"message": "CSV contains invalid rows", "errors": errors})
    if not questions:
        raise HTTPException(400, "CSV file contains no questions")

    created = await repo.create_assignment(
        AssignmentCreate(title=title, description=description, timeLimit=timeLimit, questions=questions),
        created_by=current_user["id"],
    )
    return {
        "message": f"Assignment created with {created.totalQuestions} questions",
        "assignment": created,
    }


@router.get("/")
async def get_assignments(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: Optional[str] = Query(None, pattern="^(active|inactive)$"),
    current_user: dict = Depends(require_staff),
    repo: AssessmentRepository = Depends(get_repository),
):
    assignments, total = await repo.list_assignments(page=page, limit=limit, status=status)
    total_pages = (total + limit - 1) // limit
    return {
        "assignments": assignments,
        "pagination": {
            "currentPage": page,
            "totalPages": total_pages,
            "totalAssignments": total,
            "hasNext": page < total_pages,
            "hasPrev": page > 1,
        },
    }


@router.get("/student", response_model=List[AssignmentSummary])
async def get_student_assignments(
    current_user: dict = Depends(require_student),
    repo: AssessmentRepository = Depends(get_repository),
):
    return await repo.active_assignments_for_student(current_user["id"])


@router.get("/results/{assignment_id}")
async def get_assignment_results(
    assignment_id: str,
    current_user: dict = Depends(require_staff),
    repo: AssessmentRepository = Depends(get_repository),
):
    statistics = await repo.assignment_statistics(assignment_id)
    results = await repo.submissions_for_assignment(assignment_id)
    return {"results": results, "statistics": statistics}


@router.get("/{assignment_id}/questions")
async def get_assignment_questions(
    assignment_id: str,
    current_user: dict = Depends(get_current_user),
    repo: AssessmentRepository = Depends(get_repository),
):
    return await repo.get_assignment_questions(assignment_id, current_user["role"], current_user["id"])


@router.get("/{assignment_id}/statistics", response_model=Statistics)
async def get_assignment_statistics(
    assignment_id: str,
    current_user: dict = Depends(require_staff),
    repo: AssessmentRepository = Depends(get_repository),
):
    return await repo.assignment_statistics(assignment_id)


@router.get("/{assignment_id}/submissions", response_model=List[Submission])
async def get_submissions_for_assignment(
    assignment_id: str,
    current_user: dict = Depends(require_staff),
    repo: AssessmentRepository = Depends(get_repository),
):
    await repo.get_assignment(assignment_id)
    return await repo.submissions_for_assignment(assignment_id)


@router.get("/{assignment_id}", response_model=Assignment)
async def get_assignment(
    assignment_id: str,
    current_user: dict = Depends(require_staff),
    repo: AssessmentRepository = Depends(get_repository),
):
    return await repo.get_assignment(assignment_id)


@router.put("/{assignment_id}")
async def update_assignment(
    assignment_id: str,
    update: AssignmentUpdate,
    current_user: dict = Depends(require_staff),
    repo: AssessmentRepository = Depends(get_repository),
):
    updated = await repo.update_assignment(assignment_id, update)
    return {"message": "Assignment updated successfully", "assignment": updated}


@router.patch("/{assignment_id}/toggle")
async def toggle_assignment(
    assignment_id: str,
    current_user: dict = Depends(require_staff),
    repo: AssessmentRepository = Depends(get_repository),
):
    updated = await repo.toggle_assignment(assignment_id)
    state = "activated" if updated.isActive else "deactivated"
    logger.info(f"Assignment {assignment_id} {state} by {current_user['id']}")
    return {"message": f"Assignment {state} successfully", "assignment": updated}


@router.delete("/{assignment_id}")
async def delete_assignment(
    assignment_id: str,
    current_user: dict = Depends(require_staff),
    repo: AssessmentRepository = Depends(get_repository),
):
    removed = await repo.delete_assignment(assignment_id)
    return {"message": "Assignment deleted successfully", "deletedSubmissions": removed}
