# services/review.py
"""Review reconstruction: joins a stored submission with its assignment's questions.

Correctness and points come from the stored submission, never from re-grading,
so the review always agrees with the recorded grade. Students and staff share
this implementation; ``role`` only decides ownership and which fields are shown.
"""
from typing import Optional

from models.assignment import Assignment
from models.submission import Review, ReviewQuestion, Submission
from services.errors import NotFound, ValidationError

STAFF_ROLES = {"tutor", "admin"}


def is_staff(role: str) -> bool:
    return role in STAFF_ROLES


def reconstruct(
    submission: Submission,
    assignment: Assignment,
    role: str,
    viewer_id: Optional[str] = None,
) -> Review:
    if not is_staff(role) and submission.studentId != viewer_id:
        # Same answer as an unknown id so ownership is not leaked.
        raise NotFound("Submission not found")
    if submission.assignmentId != assignment.id:
        raise ValidationError("Submission does not belong to this assignment")

    stored = {a.questionIndex: a for a in submission.answers}
    questions = []
    for index, question in enumerate(assignment.questions):
        answer = stored.get(index)
        questions.append(ReviewQuestion(
            questionIndex=index,
            questionNumber=index + 1,
            questionText=question.question,
            instruction=question.instruction,
            options=question.options(),
            correctLabel=question.answer,
            studentLabel=answer.selectedAnswer if answer else None,
            isCorrect=answer.isCorrect if answer else False,
            pointsEarned=answer.pointsAwarded if answer else 0,
            pointsPossible=question.points,
        ))

    submission_view = {
        "id": submission.id,
        "assignmentId": submission.assignmentId,
        "score": submission.score,
        "totalPoints": submission.totalPoints,
        "percentage": submission.percentage,
        "grade": submission.grade,
        "totalQuestions": submission.totalQuestions,
        "correctAnswers": submission.correctAnswers,
        "timeSpent": submission.timeSpent,
        "submittedAt": submission.submittedAt,
    }
    if is_staff(role):
        submission_view["studentId"] = submission.studentId

    return Review(
        assignment={
            "id": assignment.id,
            "title": assignment.title,
            "description": assignment.description,
            "totalQuestions": assignment.totalQuestions,
            "timeLimit": assignment.timeLimit,
        },
        submission=submission_view,
        questions=questions,
    )
