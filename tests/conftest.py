"""
Shared fixtures: in-memory store, seeded students/drives and an API client
running with the development auth bypass.
"""

import os

os.environ["ENVIRONMENT"] = "development"
os.environ["DEV_AUTH_BYPASS"] = "true"
os.environ["STORAGE_BACKEND"] = "memory"
os.environ["OPENROUTER_API_KEY"] = ""

import pytest
from fastapi.testclient import TestClient

from placement.core.config import get_settings

get_settings.cache_clear()

from placement.core.rate_limit import RateLimiter, get_rate_limiter  # noqa: E402
from placement.db.mongodb import COLLECTIONS  # noqa: E402
from placement.db.store import InMemoryDocumentStore, get_store  # noqa: E402
from placement.main import app  # noqa: E402

DEV_UID = "dev-user-id"


def make_student(**overrides):
    student = {
        "rollNumber": "21CS001",
        "name": "Asha Rao",
        "email": "asha@example.edu",
        "branch": "CS",
        "year": "4",
        "cgpa": 8.5,
        "activeBacklogs": 0,
        "percentage10th": 90,
        "percentage12th": 85,
        "isPlaced": False,
    }
    student.update(overrides)
    return student


def make_drive(**overrides):
    drive = {
        "companyName": "Acme Systems",
        "role": "Software Engineer",
        "ctc": 12,
        "driveDate": "2025-08-10",
        "minCGPA": 7.0,
        "eligibleBranches": ["CS"],
        "eligibleYears": ["4"],
        "status": "Upcoming",
        "enrolledStudents": 0,
        "placedStudents": 0,
    }
    drive.update(overrides)
    return drive


@pytest.fixture
def store():
    return InMemoryDocumentStore()


@pytest.fixture
def seeded(store):
    """Two students and two drives; returns their ids."""
    store.insert(COLLECTIONS["students"], make_student(), doc_id="21CS001")
    store.insert(
        COLLECTIONS["students"],
        make_student(rollNumber="21CS002", name="Vikram Shah", email="vikram@example.edu", cgpa=6.0),
        doc_id="21CS002",
    )
    acme = store.insert(COLLECTIONS["drives"], make_drive())
    closed = store.insert(COLLECTIONS["drives"], make_drive(companyName="Globex", ctc=8, status="Closed"))
    return {"student": "21CS001", "weak_student": "21CS002", "drive": acme, "closed_drive": closed}


@pytest.fixture
def client(store):
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_rate_limiter] = lambda: RateLimiter(max_requests=1000)
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def student_headers():
    return {"X-Dev-Role": "student"}


@pytest.fixture
def linked_student(store, seeded):
    """Link the seeded student profile to the development user."""
    store.update(COLLECTIONS["students"], seeded["student"], {"$set": {"userId": DEV_UID}})
    return seeded["student"]
