# services/grading.py
"""Grading engine: pure functions from an answer key and submitted labels to a result.

Unanswered questions are submitted as ``None`` and always count as wrong; they
stay in the denominator.
"""
from typing import Dict, List, Optional, Sequence

from models.assignment import LABELS, Question
from services.errors import InvalidAssignment, ValidationError

GRADE_THRESHOLDS = ((90, "A"), (80, "B"), (70, "C"), (60, "D"))
GRADES = ("A", "B", "C", "D", "F")


def letter_grade(percentage: int) -> str:
    if percentage < 0 or percentage > 100:
        raise ValidationError(f"Percentage must be between 0 and 100, got {percentage}")
    for threshold, grade in GRADE_THRESHOLDS:
        if percentage >= threshold:
            return grade
    return "F"


def round_percentage(correct: int, total: int) -> int:
    """round(100 * correct / total), halves rounded up, without float error."""
    if total <= 0:
        raise InvalidAssignment("Assignment has no questions")
    return (200 * correct + total) // (2 * total)


def validate_answers(questions: Sequence[Question], answers: Sequence[Optional[str]]) -> None:
    if len(answers) != len(questions):
        raise ValidationError("Number of answers does not match number of questions")
    for i, answer in enumerate(answers):
        if answer is not None and answer not in LABELS:
            raise ValidationError(f"Answer {i + 1} must be A, B, C, or D")


def grade_answers(questions: Sequence[Question], answers: Sequence[Optional[str]]) -> Dict:
    """Grade one attempt.

    Returns the derived submission fields: ``answers`` (one entry per question),
    ``correctAnswers``, ``totalQuestions``, ``percentage``, ``grade``, ``score``
    and ``totalPoints``. Raises InvalidAssignment for an empty answer key and
    ValidationError for malformed answers.
    """
    if not questions:
        raise InvalidAssignment("Assignment has no questions")
    validate_answers(questions, answers)

    graded: List[Dict] = []
    correct_answers = 0
    score = 0
    for index, (question, selected) in enumerate(zip(questions, answers)):
        is_correct = selected == question.answer
        points_awarded = question.points if is_correct else 0
        if is_correct:
            correct_answers += 1
        score += points_awarded
        graded.append({
            "questionIndex": index,
            "selectedAnswer": selected,
            "correctAnswer": question.answer,
            "isCorrect": is_correct,
            "pointsAwarded": points_awarded,
            "pointsPossible": question.points,
        })

    total_questions = len(questions)
    percentage = round_percentage(correct_answers, total_questions)
    return {
        "answers": graded,
        "correctAnswers": correct_answers,
        "totalQuestions": total_questions,
        "percentage": percentage,
        "grade": letter_grade(percentage),
        "score": score,
        "totalPoints": sum(q.points for q in questions),
    }
