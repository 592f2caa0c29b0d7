# models/submission.py
from pydantic import BaseModel, Field
from datetime import datetime
from typing import Dict, List, Optional

from models.assignment import Label


class SubmissionCreate(BaseModel):
    assignmentId: str
    answers: List[Optional[str]]  # None is the "no answer" marker
    timeSpent: int = Field(..., ge=0)  # In seconds


class SubmissionAnswer(BaseModel):
    questionIndex: int
    selectedAnswer: Optional[Label] = None
    correctAnswer: Label
    isCorrect: bool
    pointsAwarded: int = 0
    pointsPossible: int = 1


class Submission(BaseModel):
    id: Optional[str] = None
    studentId: str
    assignmentId: str
    answers: List[SubmissionAnswer] = []
    timeSpent: int = 0
    submittedAt: datetime = Field(default_factory=datetime.utcnow)
    correctAnswers: int
    totalQuestions: int
    percentage: int = Field(..., ge=0, le=100)
    grade: str
    score: int = 0
    totalPoints: int = 0


class SubmissionResult(BaseModel):
    """Submission without per-question answers, as listed in a student's results."""
    id: str
    assignmentId: str
    assignmentTitle: str = ""
    assignmentDescription: str = ""
    percentage: int
    grade: str
    score: int
    totalQuestions: int
    correctAnswers: int
    timeSpent: int
    submittedAt: datetime


class Statistics(BaseModel):
    totalSubmissions: int = 0
    averagePercentage: float = 0.0
    highestScore: int = 0
    lowestScore: int = 0
    gradeDistribution: Dict[str, int] = Field(
        default_factory=lambda: {"A": 0, "B": 0, "C": 0, "D": 0, "F": 0}
    )


class ReviewQuestion(BaseModel):
    questionIndex: int
    questionNumber: int
    questionText: str
    instruction: str = ""
    options: Dict[str, str]
    correctLabel: Label
    studentLabel: Optional[Label] = None
    isCorrect: bool
    pointsEarned: int
    pointsPossible: int


class Review(BaseModel):
    assignment: dict
    submission: dict
    questions: List[ReviewQuestion]
