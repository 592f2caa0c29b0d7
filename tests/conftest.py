"""
Pytest configuration and fixtures
"""
import asyncio
import sys
from pathlib import Path

import pytest
import pytest_asyncio
from mongomock_motor import AsyncMongoMockClient

# Register pytest-asyncio plugin explicitly
pytest_plugins = ["pytest_asyncio"]

project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from database import init_db  # noqa: E402
from models.assignment import AssignmentCreate, Question  # noqa: E402
from services.repository import AssessmentRepository  # noqa: E402

STAFF_ID = "tutor-1"


def run_sync(coro):
    """Run a coroutine on a private loop so the test loop is left alone."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def make_question(answer: str, points: int = 1, text: str = None) -> Question:
    return Question(
        question=text or f"Which option is {answer}?",
        instruction="Pick one",
        optionA="Alpha",
        optionB="Bravo",
        optionC="Charlie",
        optionD="Delta",
        answer=answer,
        points=points,
    )


def make_assignment(answers=("A", "B", "C", "D"), active=True, time_limit=10, title="Unit quiz") -> AssignmentCreate:
    return AssignmentCreate(
        title=title,
        description="Four questions",
        timeLimit=time_limit,
        questions=[make_question(a) for a in answers],
        isActive=active,
    )


@pytest.fixture
def mongo_db():
    """Fresh in-memory Motor database with the production indexes."""
    database = AsyncMongoMockClient()["assessment_test"]
    run_sync(init_db(database))
    return database


@pytest.fixture
def repo(mongo_db):
    return AssessmentRepository(mongo_db)


@pytest_asyncio.fixture
async def active_assignment(repo):
    return await repo.create_assignment(make_assignment(), created_by=STAFF_ID)
