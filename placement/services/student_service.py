"""
Student Service - student directory operations.

Students are keyed by their normalized roll number. Faculty manage the
directory (create, bulk upload, edit, delete); students can only edit an
allow-listed subset of their own profile.
"""

import logging
import re
from typing import Any, Dict, List, Optional

from placement.core.errors import ConflictError, NotFoundError, ValidationError
from placement.db.mongodb import COLLECTIONS
from placement.db.store import DocumentStore
from placement.schemas.schemas import DriveStatus
from placement.services.eligibility_service import get_eligible_drives_for_student, to_float
from placement.services.enrollment_service import EnrollmentService
from placement.utils.dates import now_iso

logger = logging.getLogger(__name__)

# Fields a student may change on their own profile
STUDENT_EDITABLE_FIELDS = [
    "name", "phone", "skills", "projects", "internships",
    "certifications", "achievements", "linkedIn", "github",
    "portfolio", "resume",
]

# Fields owned by the enrollment workflow or by creation metadata
PROTECTED_FIELDS = [
    "id", "createdAt", "createdBy",
    "isPlaced", "placedCompany", "placedCTC", "placementDate",
]


def normalize_roll_number(roll_number: str) -> str:
    """'21 CS 001' -> '21_CS_001'"""
    return re.sub(r"\s+", "_", str(roll_number).strip())


def list_students(
    store: DocumentStore,
    branch: Optional[str] = None,
    year: Optional[str] = None,
    placed: Optional[bool] = None,
    section: Optional[str] = None,
    min_cgpa: Optional[float] = None,
    max_cgpa: Optional[float] = None,
    search: Optional[str] = None,
) -> List[dict]:
    """Students matching the filters. Equality filters go to the store, the rest run in memory."""
    filters: Dict[str, Any] = {}
    if branch:
        filters["branch"] = branch
    if year:
        year = str(year)
        filters["year"] = {"$in": [year, int(year)]} if year.isdigit() else year
    if placed is not None:
        filters["isPlaced"] = placed

    students = store.find(COLLECTIONS["students"], filters)

    if section:
        students = [s for s in students if str(s.get("section") or "").lower() == section.lower()]
    if min_cgpa is not None:
        students = [s for s in students if to_float(s.get("cgpa")) >= min_cgpa]
    if max_cgpa is not None:
        students = [s for s in students if to_float(s.get("cgpa")) <= max_cgpa]
    if search:
        needle = search.lower()
        students = [
            s for s in students
            if any(needle in str(s.get(field) or "").lower() for field in ("name", "rollNumber", "email"))
        ]
    return students


def get_student(store: DocumentStore, student_id: str) -> dict:
    student = store.get(COLLECTIONS["students"], student_id)
    if student is None:
        raise NotFoundError("Student not found")
    return student


def get_student_with_enrollments(store: DocumentStore, student_id: str) -> dict:
    student = get_student(store, student_id)
    enrollments = EnrollmentService(store).get_student_enrollments(student_id)
    return {**student, "enrollments": enrollments["enrollments"]}


def create_student(store: DocumentStore, data: Dict[str, Any], actor_id: str) -> str:
    """Create a student; the roll number becomes the document id."""
    if not data.get("rollNumber") or not data.get("name"):
        raise ValidationError("Roll number and name are required")

    student_id = normalize_roll_number(data["rollNumber"])
    if store.get(COLLECTIONS["students"], student_id) is not None:
        raise ConflictError("Student with this roll number already exists")

    doc = {k: v for k, v in data.items() if k not in PROTECTED_FIELDS}
    doc.update({
        "createdAt": now_iso(),
        "createdBy": actor_id,
        "isPlaced": False,
    })
    store.insert(COLLECTIONS["students"], doc, doc_id=student_id)
    logger.info("Student %s created by %s", student_id, actor_id)
    return student_id


def update_student(store: DocumentStore, student_id: str, data: Dict[str, Any], actor_id: str) -> None:
    changes = {k: v for k, v in data.items() if k not in PROTECTED_FIELDS}
    changes.update({"updatedAt": now_iso(), "updatedBy": actor_id})
    if not store.update(COLLECTIONS["students"], student_id, {"$set": changes}):
        raise NotFoundError("Student not found")


def delete_student(store: DocumentStore, student_id: str) -> None:
    """Delete a student that has no enrollments."""
    def _delete():
        get_student(store, student_id)
        if store.exists(COLLECTIONS["enrollments"], {"studentId": student_id}):
            raise ConflictError(
                "Student has existing enrollments. Please remove enrollments first.",
                error="Cannot delete",
            )
        store.delete(COLLECTIONS["students"], student_id)

    store.run_transaction(_delete)
    logger.info("Student %s deleted", student_id)


def bulk_upload(store: DocumentStore, students: List[Dict[str, Any]], actor_id: str) -> Dict[str, Any]:
    """
    Upsert many students at once (merge into existing documents).

    Rows without roll number or name are counted as failures. Existing
    placement fields are preserved; new students start unplaced.
    """
    if not isinstance(students, list) or not students:
        raise ValidationError("Students array is required", error="Invalid data")

    results = {"success": 0, "failed": 0, "errors": []}

    def _upload():
        # the callback may be retried on a transient conflict
        results.update({"success": 0, "failed": 0, "errors": []})
        for row in students:
            if not isinstance(row, dict) or not row.get("rollNumber") or not row.get("name"):
                results["failed"] += 1
                results["errors"].append("Missing roll number or name for a student")
                continue

            student_id = normalize_roll_number(row["rollNumber"])
            doc = {k: v for k, v in row.items() if k not in PROTECTED_FIELDS}
            doc.update({
                "uploadedAt": now_iso(),
                "uploadedBy": actor_id,
                "uploadSource": "bulk-api",
            })
            if store.get(COLLECTIONS["students"], student_id) is None:
                doc.update({"isPlaced": False, "createdAt": now_iso(), "createdBy": actor_id})
            store.set(COLLECTIONS["students"], student_id, doc, merge=True)
            results["success"] += 1

    store.run_transaction(_upload)
    logger.info("Bulk upload by %s: %d ok, %d failed", actor_id, results["success"], results["failed"])

    return {
        "success": True,
        "message": f"Uploaded {results['success']} students",
        "results": results,
    }


# ============================================================
# SELF-SERVICE (student role)
# ============================================================

def find_student_for_user(store: DocumentStore, user_id: str, email: Optional[str] = None) -> Optional[dict]:
    """Resolve the caller's student document by linked user id, then by email."""
    matches = store.find(COLLECTIONS["students"], {"userId": user_id})
    if not matches and email:
        matches = store.find(COLLECTIONS["students"], {"email": email})
    return matches[0] if matches else None


def require_student_for_user(store: DocumentStore, user: dict) -> dict:
    student = find_student_for_user(store, user["uid"], user.get("email"))
    if student is None:
        raise NotFoundError("Student profile not found. Please contact administrator.", error="Profile not found")
    return student


def update_own_profile(store: DocumentStore, student_id: str, data: Dict[str, Any]) -> None:
    changes = {k: v for k, v in data.items() if k in STUDENT_EDITABLE_FIELDS}
    if not changes:
        raise ValidationError("No fields to update")
    changes["updatedAt"] = now_iso()
    store.update(COLLECTIONS["students"], student_id, {"$set": changes})


def get_student_dashboard(store: DocumentStore, user: dict) -> Dict[str, Any]:
    """Summary for the student home screen."""
    student = find_student_for_user(store, user["uid"], user.get("email"))
    if student is None:
        return {"hasProfile": False, "message": "Please complete your profile"}

    enrollments = EnrollmentService(store).get_student_enrollments(student["id"])
    eligible = get_eligible_drives_for_student(store, student["id"])
    upcoming = store.find(COLLECTIONS["drives"], {"status": DriveStatus.upcoming.value})

    return {
        "hasProfile": True,
        "student": {
            "name": student.get("name"),
            "rollNumber": student.get("rollNumber"),
            "branch": student.get("branch"),
            "cgpa": student.get("cgpa"),
            "isPlaced": bool(student.get("isPlaced")),
            "placedCompany": student.get("placedCompany"),
        },
        "stats": {
            "activeEnrollments": enrollments["activeEnrollments"],
            "totalEnrollments": enrollments["total"],
            "eligibleDrives": len(eligible["eligibleDrives"]),
            "upcomingDrives": len(upcoming),
        },
        "recentEnrollments": enrollments["enrollments"][:5],
    }
