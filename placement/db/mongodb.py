"""
MongoDB Connection Utility

MongoDB stores every placement document:
- students: one document per roll number
- drives: company recruitment drives with eligibility terms and counters
- enrollments: student <-> drive applications with status history
- users: identity-provider uid -> role/profile
"""
import logging

from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.database import Database

from placement.core.config import get_settings

logger = logging.getLogger(__name__)

# Global client (connection pooling handled internally by pymongo)
_client: MongoClient = None
_db: Database = None


def get_mongo_client() -> MongoClient:
    """Get or create MongoDB client (singleton pattern)"""
    global _client
    if _client is None:
        _client = MongoClient(get_settings().mongodb_uri)
    return _client


def get_mongo_db() -> Database:
    """Get the placement database"""
    global _db
    if _db is None:
        _db = get_mongo_client()[get_settings().mongodb_db]
    return _db


# Collection name constants (avoid typos)
COLLECTIONS = {
    "students": "students",
    "drives": "drives",
    "enrollments": "enrollments",
    "users": "users",
}

# Unique constraints, shared with the in-memory store so both backends agree
UNIQUE_KEYS = {
    COLLECTIONS["enrollments"]: ("studentId", "driveId"),
}


def init_mongo_indexes(db: Database = None):
    """
    Create indexes for better query performance.
    Call this once during app startup.
    """
    db = db if db is not None else get_mongo_db()

    # One enrollment per (student, drive); backstop for concurrent enroll calls
    db[COLLECTIONS["enrollments"]].create_index(
        [("studentId", ASCENDING), ("driveId", ASCENDING)],
        unique=True,
    )
    db[COLLECTIONS["enrollments"]].create_index([("studentId", ASCENDING), ("enrolledAt", DESCENDING)])
    db[COLLECTIONS["enrollments"]].create_index("driveId")

    db[COLLECTIONS["students"]].create_index("userId")
    db[COLLECTIONS["students"]].create_index("email")
    db[COLLECTIONS["students"]].create_index("branch")
    db[COLLECTIONS["drives"]].create_index("status")

    logger.info("MongoDB indexes created successfully")
