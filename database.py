# database.py
from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import ASCENDING, DESCENDING
import os
from dotenv import load_dotenv

from services.repository import AssessmentRepository

load_dotenv()

MONGODB_URI = os.getenv("MONGODB_URI", "mongodb://localhost:27017")
MONGODB_DB = os.getenv("MONGODB_DB", "assessment_db")

client = AsyncIOMotorClient(MONGODB_URI)
db = client[MONGODB_DB]


async def init_db(database=db):
    await database.assignments.create_index("id", unique=True)
    await database.assignments.create_index([("isActive", ASCENDING), ("createdAt", DESCENDING)])
    await database.submissions.create_index("id", unique=True)
    # One submission per student per assignment
    await database.submissions.create_index(
        [("studentId", ASCENDING), ("assignmentId", ASCENDING)], unique=True
    )
    await database.submissions.create_index([("assignmentId", ASCENDING), ("submittedAt", DESCENDING)])
    await database.submissions.create_index([("studentId", ASCENDING), ("submittedAt", DESCENDING)])


def get_db():
    return db


def get_repository(database=Depends(get_db)) -> AssessmentRepository:
    return AssessmentRepository(database)
