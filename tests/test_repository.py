"""
Tests for assignment and submission storage
"""
import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from pymongo.errors import ServerSelectionTimeoutError

from conftest import STAFF_ID, make_assignment, make_question
from models.assignment import AssignmentUpdate
from models.assignment import StudentQuestion
from services.errors import AlreadySubmitted, AssignmentLocked, NotFound, TransientIO, ValidationError
from services.repository import AssessmentRepository


class BlindSubmissions:
    """Submissions collection whose lookups never find anything, so only the
    unique index can stop a second insert."""

    def __init__(self, collection):
        self._collection = collection

    async def find_one(self, *args, **kwargs):
        return None

    def __getattr__(self, name):
        return getattr(self._collection, name)


class RacingDb:
    def __init__(self, database):
        self.assignments = database.assignments
        self.submissions = BlindSubmissions(database.submissions)


@pytest.mark.asyncio
async def test_submit_grades_and_stores(repo, active_assignment):
    submission = await repo.submit_assignment(active_assignment.id, "stu-1", ["A", "B", "C", "D"], 95)
    assert submission.correctAnswers == 4
    assert submission.percentage == 100
    assert submission.grade == "A"

    stored = await repo.get_submission(submission.id)
    assert stored.studentId == "stu-1"
    assert stored.timeSpent == 95
    assert [a.isCorrect for a in stored.answers] == [True] * 4


@pytest.mark.asyncio
async def test_second_submit_is_rejected(repo, active_assignment):
    first = await repo.submit_assignment(active_assignment.id, "stu-1", ["A", "A", "A", "A"], 30)
    assert first.percentage == 25 and first.grade == "F"
    with pytest.raises(AlreadySubmitted) as exc:
        await repo.submit_assignment(active_assignment.id, "stu-1", ["A", "B", "C", "D"], 30)
    assert exc.value.submission_id == first.id
    assert len(await repo.submissions_for_assignment(active_assignment.id)) == 1


@pytest.mark.asyncio
async def test_concurrent_submits_store_one(repo, active_assignment):
    results = await asyncio.gather(
        repo.submit_assignment(active_assignment.id, "stu-1", ["A", "B", "C", "D"], 10),
        repo.submit_assignment(active_assignment.id, "stu-1", ["D", "C", "B", "A"], 12),
        return_exceptions=True,
    )
    assert sum(isinstance(r, AlreadySubmitted) for r in results) == 1
    assert len(await repo.submissions_for_assignment(active_assignment.id)) == 1


@pytest.mark.asyncio
async def test_unique_index_backs_up_lookup(mongo_db, repo, active_assignment):
    racing = AssessmentRepository(RacingDb(mongo_db))
    await racing.submit_assignment(active_assignment.id, "stu-1", ["A", "B", "C", "D"], 10)
    with pytest.raises(AlreadySubmitted):
        await racing.submit_assignment(active_assignment.id, "stu-1", ["A", "B", "C", "D"], 10)
    assert len(await repo.submissions_for_assignment(active_assignment.id)) == 1


@pytest.mark.asyncio
async def test_submit_validation(repo, active_assignment):
    with pytest.raises(ValidationError):
        await repo.submit_assignment(active_assignment.id, "stu-1", ["A", "B"], 10)
    with pytest.raises(ValidationError):
        await repo.submit_assignment(active_assignment.id, "stu-1", ["A", "B", "C", "X"], 10)
    assert await repo.submissions_for_assignment(active_assignment.id) == []


@pytest.mark.asyncio
async def test_unknown_or_inactive_assignment(repo):
    inactive = await repo.create_assignment(make_assignment(active=False), created_by=STAFF_ID)
    with pytest.raises(NotFound):
        await repo.submit_assignment("missing", "stu-1", ["A"], 10)
    with pytest.raises(NotFound):
        await repo.submit_assignment(inactive.id, "stu-1", ["A", "B", "C", "D"], 10)
    with pytest.raises(NotFound):
        await repo.get_assignment_questions(inactive.id, "student", "stu-1")
    staff_view = await repo.get_assignment_questions(inactive.id, "admin", STAFF_ID)
    assert [q.answer for q in staff_view] == ["A", "B", "C", "D"]


@pytest.mark.asyncio
async def test_student_questions_hide_answer_key(repo, active_assignment):
    questions = await repo.get_assignment_questions(active_assignment.id, "student", "stu-1")
    assert all(isinstance(q, StudentQuestion) for q in questions)
    assert [q.index for q in questions] == [0, 1, 2, 3]
    assert "answer" not in questions[0].dict()

    submission = await repo.submit_assignment(active_assignment.id, "stu-1", ["A", "B", "C", "D"], 10)
    with pytest.raises(AlreadySubmitted) as exc:
        await repo.get_assignment_questions(active_assignment.id, "student", "stu-1")
    assert exc.value.submission_id == submission.id


@pytest.mark.asyncio
async def test_statistics(repo, active_assignment):
    empty = await repo.assignment_statistics(active_assignment.id)
    assert empty.totalSubmissions == 0 and empty.averagePercentage == 0

    await repo.submit_assignment(active_assignment.id, "stu-1", ["A", "B", "C", "D"], 10)
    await repo.submit_assignment(active_assignment.id, "stu-2", ["A", "B", "C", "A"], 10)
    await repo.submit_assignment(active_assignment.id, "stu-3", ["A", "A", "A", "A"], 10)
    stats = await repo.assignment_statistics(active_assignment.id)
    assert stats.totalSubmissions == 3
    assert stats.averagePercentage == 66.7
    assert stats.highestScore == 100
    assert stats.lowestScore == 25
    assert stats.gradeDistribution == {"A": 1, "B": 0, "C": 1, "D": 0, "F": 1}

    with pytest.raises(NotFound):
        await repo.assignment_statistics("missing")


@pytest.mark.asyncio
async def test_review_round_trip(repo, active_assignment):
    submission = await repo.submit_assignment(active_assignment.id, "stu-1", ["A", "C", None, "D"], 10)
    review = await repo.get_review(submission.id, "student", "stu-1")
    assert sum(q.isCorrect for q in review.questions) == submission.correctAnswers == 2
    assert review.questions[2].studentLabel is None

    with pytest.raises(NotFound):
        await repo.get_review(submission.id, "student", "stu-2")
    staff = await repo.get_review(submission.id, "tutor", STAFF_ID)
    assert staff.submission["studentId"] == "stu-1"
    with pytest.raises(NotFound):
        await repo.get_review("missing", "tutor", STAFF_ID)


@pytest.mark.asyncio
async def test_student_results(repo, active_assignment):
    other = await repo.create_assignment(make_assignment(answers=("B", "B"), title="Second quiz"), created_by=STAFF_ID)
    await repo.submit_assignment(active_assignment.id, "stu-1", ["A", "B", "C", "D"], 10)
    await repo.submit_assignment(other.id, "stu-1", ["B", "A"], 10)
    await repo.submit_assignment(other.id, "stu-2", ["B", "B"], 10)

    results = await repo.student_results("stu-1")
    assert {r.assignmentTitle for r in results} == {"Unit quiz", "Second quiz"}
    assert {r.percentage for r in results} == {100, 50}
    assert await repo.student_results("nobody") == []


@pytest.mark.asyncio
async def test_student_assignment_list(repo, active_assignment):
    await repo.create_assignment(make_assignment(active=False, title="Hidden"), created_by=STAFF_ID)
    submission = await repo.submit_assignment(active_assignment.id, "stu-1", ["A", "B", "C", "D"], 10)
    listing = await repo.active_assignments_for_student("stu-1")
    assert [a.title for a in listing] == ["Unit quiz"]
    assert listing[0].isCompleted and listing[0].submissionId == submission.id
    assert listing[0].totalQuestions == 4
    fresh = await repo.active_assignments_for_student("stu-2")
    assert not fresh[0].isCompleted


@pytest.mark.asyncio
async def test_questions_locked_after_submission(repo, active_assignment):
    renamed = await repo.update_assignment(active_assignment.id, AssignmentUpdate(title="Renamed"))
    assert renamed.title == "Renamed"
    reworded = await repo.update_assignment(
        active_assignment.id, AssignmentUpdate(questions=[make_question("C"), make_question("D")])
    )
    assert [q.answer for q in reworded.questions] == ["C", "D"]
    assert [q.index for q in reworded.questions] == [0, 1]

    await repo.submit_assignment(active_assignment.id, "stu-1", ["C", "D"], 10)
    with pytest.raises(AssignmentLocked):
        await repo.update_assignment(active_assignment.id, AssignmentUpdate(questions=[make_question("A")]))
    with pytest.raises(AssignmentLocked):
        await repo.update_assignment(active_assignment.id, AssignmentUpdate(timeLimit=5))
    still = await repo.update_assignment(active_assignment.id, AssignmentUpdate(description="Updated"))
    assert still.description == "Updated"


@pytest.mark.asyncio
async def test_toggle_and_list(repo, active_assignment):
    toggled = await repo.toggle_assignment(active_assignment.id)
    assert toggled.isActive is False
    inactive, total = await repo.list_assignments(status="inactive")
    assert total == 1 and inactive[0].id == active_assignment.id
    active, total = await repo.list_assignments(status="active")
    assert total == 0 and active == []


@pytest.mark.asyncio
async def test_delete_removes_submissions(repo, active_assignment):
    await repo.submit_assignment(active_assignment.id, "stu-1", ["A", "B", "C", "D"], 10)
    assert await repo.delete_assignment(active_assignment.id) == 1
    with pytest.raises(NotFound):
        await repo.get_assignment(active_assignment.id)
    assert await repo.student_results("stu-1") == []
    with pytest.raises(NotFound):
        await repo.delete_assignment(active_assignment.id)


@pytest.mark.asyncio
async def test_driver_errors_become_transient():
    database = MagicMock()
    database.assignments.find_one = AsyncMock(side_effect=ServerSelectionTimeoutError("no servers"))
    repo = AssessmentRepository(database)
    with pytest.raises(TransientIO):
        await repo.submit_assignment("asg-1", "stu-1", ["A"], 10)
