# services/csv_import.py
import csv
import io
from typing import List, Tuple

from pydantic import ValidationError as ModelError

from models.assignment import LABELS, Question

# Expected columns: Question, Instruction, Option A, Option B, Option C, Option D, Answer (Points optional)
OPTION_COLUMNS = {"A": "Option A", "B": "Option B", "C": "Option C", "D": "Option D"}


def _cell(row: dict, column: str) -> str:
    return (row.get(column) or "").strip()


def parse_questions(csv_text: str) -> Tuple[List[Question], List[str]]:
    """Parse an uploaded question sheet. Returns the valid questions and one
    message per rejected row; rows are numbered from 1, not counting the header."""
    questions: List[Question] = []
    errors: List[str] = []
    reader = csv.DictReader(io.StringIO(csv_text.lstrip("\ufeff")))
    for row_number, row in enumerate(reader, start=1):
        text = _cell(row, "Question")
        if not text:
            errors.append(f"Row {row_number}: Question is required")
            continue
        options = {label: _cell(row, column) for label, column in OPTION_COLUMNS.items()}
        if not all(options.values()):
            errors.append(f"Row {row_number}: All options (A, B, C, D) are required")
            continue
        answer = _cell(row, "Answer").upper()
        if answer not in LABELS:
            errors.append(f"Row {row_number}: Answer must be A, B, C, or D")
            continue
        points = _cell(row, "Points") or "1"
        try:
            questions.append(Question(
                index=len(questions),
                question=text,
                instruction=_cell(row, "Instruction"),
                optionA=options["A"],
                optionB=options["B"],
                optionC=options["C"],
                optionD=options["D"],
                answer=answer,
                points=int(points),
            ))
        except (ValueError, ModelError):
            errors.append(f"Row {row_number}: Points must be a positive whole number")
    return questions, errors
