"""
Drive Service - company recruitment drives.

A drive carries its eligibility terms and two counters maintained by the
enrollment workflow (enrolledStudents, placedStudents). Counters are never
written through the generic create/update paths.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from placement.core.errors import ConflictError, NotFoundError, ValidationError
from placement.db.mongodb import COLLECTIONS
from placement.db.store import DocumentStore
from placement.schemas.schemas import ACTIVE_DRIVE_STATUSES, DriveStatus
from placement.services.eligibility_service import check_student_eligibility, update_drive_eligibility_count
from placement.services.enrollment_service import EnrollmentService
from placement.utils.dates import now_iso, parse_datetime

logger = logging.getLogger(__name__)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)

COUNTER_FIELDS = ["enrolledStudents", "placedStudents", "eligibleStudentCount"]
PROTECTED_FIELDS = ["id", "createdAt", "createdBy"] + COUNTER_FIELDS
CRITERIA_FIELDS = [
    "minCGPA", "eligibleBranches", "eligibleYears", "eligibleYear",
    "noBacklogsRequired", "noAlreadyPlaced", "min10thPercentage", "min12thPercentage",
]

# Fields shown on the unauthenticated drive listing
PUBLIC_FIELDS = [
    "companyName", "role", "ctc", "driveDate", "minCGPA",
    "eligibleBranches", "requiredSkills", "status",
]


def list_drives(store: DocumentStore, status: Optional[str] = None) -> List[dict]:
    """All drives, most recent drive date first."""
    drives = store.find(COLLECTIONS["drives"], {"status": status} if status else None)
    dated = [(parse_datetime(d.get("driveDate")), d) for d in drives]
    dated.sort(key=lambda pair: pair[0] or _EPOCH, reverse=True)
    return [d for _, d in dated]


def list_public_drives(store: DocumentStore) -> List[dict]:
    drives = store.find(COLLECTIONS["drives"], {"status": {"$in": ACTIVE_DRIVE_STATUSES}})
    return [{"id": d["id"], **{f: d.get(f) for f in PUBLIC_FIELDS}} for d in drives]


def get_drive(store: DocumentStore, drive_id: str) -> dict:
    drive = store.get(COLLECTIONS["drives"], drive_id)
    if drive is None:
        raise NotFoundError("Drive not found")
    return drive


def create_drive(store: DocumentStore, data: Dict[str, Any], actor_id: str) -> str:
    """Create a drive with zeroed counters, then count the students who qualify."""
    if not data.get("companyName") or not data.get("ctc"):
        raise ValidationError("Company name and CTC are required")

    doc = {k: v for k, v in data.items() if k not in PROTECTED_FIELDS}
    doc.update({
        "createdAt": now_iso(),
        "createdBy": actor_id,
        "enrolledStudents": 0,
        "placedStudents": 0,
        "status": doc.get("status") or DriveStatus.upcoming.value,
    })
    drive_id = store.insert(COLLECTIONS["drives"], doc)
    update_drive_eligibility_count(store, drive_id)
    logger.info("Drive %s (%s) created by %s", drive_id, doc["companyName"], actor_id)
    return drive_id


def update_drive(store: DocumentStore, drive_id: str, data: Dict[str, Any], actor_id: str) -> None:
    changes = {k: v for k, v in data.items() if k not in PROTECTED_FIELDS}
    changes.update({"updatedAt": now_iso(), "updatedBy": actor_id})
    if not store.update(COLLECTIONS["drives"], drive_id, {"$set": changes}):
        raise NotFoundError("Drive not found")

    if any(field in changes for field in CRITERIA_FIELDS):
        update_drive_eligibility_count(store, drive_id)


def delete_drive(store: DocumentStore, drive_id: str) -> None:
    """Delete a drive that has no enrollments."""
    def _delete():
        get_drive(store, drive_id)
        if store.exists(COLLECTIONS["enrollments"], {"driveId": drive_id}):
            raise ConflictError(
                "Drive has existing enrollments. Please remove all enrollments first.",
                error="Cannot delete",
            )
        store.delete(COLLECTIONS["drives"], drive_id)

    store.run_transaction(_delete)
    logger.info("Drive %s deleted", drive_id)


def list_drives_for_student(store: DocumentStore, student: Optional[dict]) -> List[dict]:
    """Active drives annotated with the caller's eligibility and enrollment state."""
    drives = store.find(COLLECTIONS["drives"], {"status": {"$in": ACTIVE_DRIVE_STATUSES}})

    enrolled_drive_ids = set()
    if student is not None:
        enrollments = EnrollmentService(store).get_student_enrollments(student["id"])
        enrolled_drive_ids = {e["driveId"] for e in enrollments["enrollments"]}

    annotated = []
    for drive in drives:
        eligibility = {"eligible": True, "reasons": []}
        if student is not None:
            eligibility = check_student_eligibility(student, drive)
        annotated.append({
            **drive,
            "eligibility": eligibility,
            "isEnrolled": drive["id"] in enrolled_drive_ids,
        })
    return annotated
