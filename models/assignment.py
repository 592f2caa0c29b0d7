# models/assignment.py
from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from typing import Dict, List, Literal, Optional

LABELS = ("A", "B", "C", "D")
Label = Literal["A", "B", "C", "D"]


class Question(BaseModel):
    index: int = 0  # position in the assignment, reassigned on save
    question: str = Field(..., min_length=1)
    instruction: str = ""
    optionA: str = Field(..., min_length=1)
    optionB: str = Field(..., min_length=1)
    optionC: str = Field(..., min_length=1)
    optionD: str = Field(..., min_length=1)
    answer: Label
    points: int = Field(1, ge=1)

    @field_validator("question", "instruction", "optionA", "optionB", "optionC", "optionD", mode="before")
    @classmethod
    def strip_text(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("answer", mode="before")
    @classmethod
    def normalize_answer(cls, value):
        return value.strip().upper() if isinstance(value, str) else value

    def options(self) -> Dict[str, str]:
        return {label: getattr(self, f"option{label}") for label in LABELS}


class StudentQuestion(BaseModel):
    """Question as shown during an attempt: the answer key and points are left out."""
    index: int
    question: str
    instruction: str = ""
    optionA: str
    optionB: str
    optionC: str
    optionD: str


class Assignment(BaseModel):
    id: Optional[str] = None  # ObjectId as string
    title: str
    description: str = ""
    timeLimit: int = Field(60, ge=1)  # In minutes
    questions: List[Question] = []
    isActive: bool = False
    createdBy: Optional[str] = None
    createdAt: datetime = Field(default_factory=datetime.utcnow)
    updatedAt: datetime = Field(default_factory=datetime.utcnow)

    @property
    def totalQuestions(self) -> int:
        return len(self.questions)


class AssignmentCreate(BaseModel):
    title: str = Field(..., min_length=1)
    description: str = ""
    timeLimit: int = Field(60, ge=1)
    questions: List[Question] = Field(..., min_length=1)
    isActive: bool = False


class AssignmentUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    timeLimit: Optional[int] = Field(None, ge=1)
    questions: Optional[List[Question]] = None
    isActive: Optional[bool] = None


class AssignmentSummary(BaseModel):
    id: str
    title: str
    description: str = ""
    timeLimit: int
    totalQuestions: int
    createdAt: datetime
    isCompleted: bool = False
    submissionId: Optional[str] = None
