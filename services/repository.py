# services/repository.py
from datetime import datetime
from functools import wraps
from typing import List, Optional, Tuple
import logging

from bson import ObjectId
from pymongo.errors import DuplicateKeyError, PyMongoError

from models.assignment import (
    Assignment,
    AssignmentCreate,
    AssignmentSummary,
    AssignmentUpdate,
    Question,
    StudentQuestion,
)
from models.submission import Review, Statistics, Submission, SubmissionResult
from services import grading, review, statistics
from services.errors import AlreadySubmitted, AssignmentLocked, NotFound, TransientIO, ValidationError

logger = logging.getLogger(__name__)

NO_ID = {"_id": 0}


def translate_io(func):
    """Surface driver failures as TransientIO so callers can retry."""
    @wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except PyMongoError as e:
            logger.error(f"Database error in {func.__name__}: {str(e)}")
            raise TransientIO("Storage is temporarily unavailable, please retry") from e
    return wrapper


def _indexed(questions: List[Question]) -> List[dict]:
    return [dict(q.dict(), index=i) for i, q in enumerate(questions)]


class AssessmentRepository:
    """Assignment and submission storage over a Motor database."""

    def __init__(self, db):
        self.db = db

    # ---- Assignments ---------------------------------------------------------

    @translate_io
    async def get_assignment(self, assignment_id: str, include_inactive: bool = True) -> Assignment:
        doc = await self.db.assignments.find_one({"id": assignment_id}, NO_ID)
        if not doc or (not include_inactive and not doc.get("isActive", False)):
            raise NotFound("Assignment not found")
        return Assignment(**doc)

    @translate_io
    async def get_assignment_questions(self, assignment_id: str, role: str, student_id: Optional[str] = None):
        """Questions of an assignment. Students get them without the answer key,
        and only for active assignments they have not submitted yet."""
        staff = review.is_staff(role)
        assignment = await self.get_assignment(assignment_id, include_inactive=staff)
        if staff:
            return assignment.questions

        existing = await self.db.submissions.find_one(
            {"assignmentId": assignment_id, "studentId": student_id}, {"_id": 0, "id": 1}
        )
        if existing:
            raise AlreadySubmitted("Assignment already completed", submission_id=existing["id"])
        return [StudentQuestion(**q.dict()) for q in assignment.questions]

    @translate_io
    async def create_assignment(self, data: AssignmentCreate, created_by: str) -> Assignment:
        now = datetime.utcnow()
        assignment = Assignment(
            id=str(ObjectId()),
            title=data.title.strip(),
            description=data.description.strip(),
            timeLimit=data.timeLimit,
            questions=data.questions,
            isActive=data.isActive,
            createdBy=created_by,
            createdAt=now,
            updatedAt=now,
        )
        doc = assignment.dict()
        doc["questions"] = _indexed(assignment.questions)
        doc["totalQuestions"] = assignment.totalQuestions
        await self.db.assignments.insert_one(doc)
        logger.info(f"Assignment {assignment.id} created by {created_by} with {assignment.totalQuestions} questions")
        return Assignment(**doc)

    @translate_io
    async def list_assignments(self, page: int = 1, limit: int = 10, status: Optional[str] = None) -> Tuple[List[Assignment], int]:
        query = {}
        if status == "active":
            query["isActive"] = True
        elif status == "inactive":
            query["isActive"] = False
        total = await self.db.assignments.count_documents(query)
        docs = await self.db.assignments.find(query, NO_ID).sort("createdAt", -1).skip((page - 1) * limit).limit(limit).to_list(None)
        return [Assignment(**d) for d in docs], total

    @translate_io
    async def update_assignment(self, assignment_id: str, update: AssignmentUpdate) -> Assignment:
        await self.get_assignment(assignment_id)
        changes = update.dict(exclude_unset=True, exclude_none=True)
        if "questions" in changes or "timeLimit" in changes:
            submitted = await self.db.submissions.count_documents({"assignmentId": assignment_id})
            if submitted:
                logger.warning(f"Rejected edit of assignment {assignment_id}: {submitted} submissions exist")
                raise AssignmentLocked("Questions and time limit cannot change once students have submitted")
        if "questions" in changes:
            if not update.questions:
                raise ValidationError("At least one question is required")
            changes["questions"] = _indexed(update.questions)
            changes["totalQuestions"] = len(update.questions)
        changes["updatedAt"] = datetime.utcnow()
        await self.db.assignments.update_one({"id": assignment_id}, {"$set": changes})
        logger.info(f"Assignment {assignment_id} updated: {sorted(changes)}")
        return await self.get_assignment(assignment_id)

    @translate_io
    async def toggle_assignment(self, assignment_id: str) -> Assignment:
        assignment = await self.get_assignment(assignment_id)
        await self.db.assignments.update_one(
            {"id": assignment_id},
            {"$set": {"isActive": not assignment.isActive, "updatedAt": datetime.utcnow()}},
        )
        return await self.get_assignment(assignment_id)

    @translate_io
    async def delete_assignment(self, assignment_id: str) -> int:
        result = await self.db.assignments.delete_one({"id": assignment_id})
        if result.deleted_count == 0:
            raise NotFound("Assignment not found")
        removed = await self.db.submissions.delete_many({"assignmentId": assignment_id})
        logger.info(f"Assignment {assignment_id} deleted with {removed.deleted_count} submissions")
        return removed.deleted_count

    @translate_io
    async def active_assignments_for_student(self, student_id: str) -> List[AssignmentSummary]:
        docs = await self.db.assignments.find({"isActive": True}, NO_ID).sort("createdAt", -1).to_list(None)
        submissions = await self.db.submissions.find(
            {"studentId": student_id}, {"_id": 0, "id": 1, "assignmentId": 1}
        ).to_list(None)
        submission_map = {s["assignmentId"]: s["id"] for s in submissions}
        return [
            AssignmentSummary(
                id=d["id"],
                title=d["title"],
                description=d.get("description", ""),
                timeLimit=d["timeLimit"],
                totalQuestions=len(d.get("questions", [])),
                createdAt=d["createdAt"],
                isCompleted=d["id"] in submission_map,
                submissionId=submission_map.get(d["id"]),
            )
            for d in docs
        ]

    # ---- Submissions ---------------------------------------------------------

    @translate_io
    async def submit_assignment(self, assignment_id: str, student_id: str, answers: List[Optional[str]], time_spent: int) -> Submission:
        assignment = await self.get_assignment(assignment_id, include_inactive=False)

        existing = await self.db.submissions.find_one(
            {"assignmentId": assignment_id, "studentId": student_id}, {"_id": 0, "id": 1}
        )
        if existing:
            logger.warning(f"Duplicate submission rejected for student {student_id}, assignment {assignment_id}")
            raise AlreadySubmitted(submission_id=existing["id"])

        result = grading.grade_answers(assignment.questions, answers)
        submission = Submission(
            id=str(ObjectId()),
            studentId=student_id,
            assignmentId=assignment_id,
            timeSpent=time_spent,
            submittedAt=datetime.utcnow(),
            **result,
        )
        try:
            await self.db.submissions.insert_one(submission.dict())
        except DuplicateKeyError:
            # Lost a race with a concurrent attempt from another device or tab.
            logger.warning(f"Concurrent submission rejected for student {student_id}, assignment {assignment_id}")
            winner = await self.db.submissions.find_one(
                {"assignmentId": assignment_id, "studentId": student_id}, {"_id": 0, "id": 1}
            )
            raise AlreadySubmitted(submission_id=winner["id"] if winner else None)
        logger.info(
            f"Submission {submission.id} recorded: student={student_id} assignment={assignment_id} "
            f"{submission.correctAnswers}/{submission.totalQuestions} ({submission.percentage}%, {submission.grade})"
        )
        return submission

    @translate_io
    async def get_submission(self, submission_id: str) -> Submission:
        doc = await self.db.submissions.find_one({"id": submission_id}, NO_ID)
        if not doc:
            raise NotFound("Submission not found")
        return Submission(**doc)

    @translate_io
    async def submissions_for_assignment(self, assignment_id: str) -> List[Submission]:
        docs = await self.db.submissions.find({"assignmentId": assignment_id}, NO_ID).sort("submittedAt", -1).to_list(None)
        return [Submission(**d) for d in docs]

    @translate_io
    async def assignment_statistics(self, assignment_id: str) -> Statistics:
        await self.get_assignment(assignment_id)
        docs = await self.db.submissions.find({"assignmentId": assignment_id}, {"_id": 0, "percentage": 1}).to_list(None)
        return statistics.aggregate_submissions(docs)

    @translate_io
    async def get_review(self, submission_id: str, role: str, viewer_id: Optional[str] = None) -> Review:
        submission = await self.get_submission(submission_id)
        if not review.is_staff(role) and submission.studentId != viewer_id:
            raise NotFound("Submission not found")
        assignment = await self.get_assignment(submission.assignmentId)
        return review.reconstruct(submission, assignment, role, viewer_id)

    @translate_io
    async def student_results(self, student_id: str) -> List[SubmissionResult]:
        docs = await self.db.submissions.find({"studentId": student_id}, NO_ID).sort("submittedAt", -1).to_list(None)
        assignment_ids = list({d["assignmentId"] for d in docs})
        assignments = await self.db.assignments.find(
            {"id": {"$in": assignment_ids}}, {"_id": 0, "id": 1, "title": 1, "description": 1}
        ).to_list(None)
        titles = {a["id"]: a for a in assignments}
        return [
            SubmissionResult(
                id=d["id"],
                assignmentId=d["assignmentId"],
                assignmentTitle=titles.get(d["assignmentId"], {}).get("title", ""),
                assignmentDescription=titles.get(d["assignmentId"], {}).get("description", ""),
                percentage=d["percentage"],
                grade=d["grade"],
                score=d.get("score", d["correctAnswers"]),
                totalQuestions=d["totalQuestions"],
                correctAnswers=d["correctAnswers"],
                timeSpent=d["timeSpent"],
                submittedAt=d["submittedAt"],
            )
            for d in docs
        ]
