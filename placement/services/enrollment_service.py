"""
Enrollment Service

Manages the lifecycle of a student's application to a drive:
- Enrollment creation (eligibility gate + one enrollment per student/drive)
- Status transitions along an explicit lattice
- Round-wise tracking
- Withdrawal and hard delete
- Side effects: drive counters and the student's placement fields

Status lattice (forward moves may skip stages, never go back):

    enrolled -> shortlisted -> round_1_cleared -> round_2_cleared
      -> round_3_cleared -> final_round -> selected -> offer_received
      -> offer_accepted -> joined

    any non-terminal status -> rejected | withdrawn
    (withdrawal is refused once selected, offer_accepted or joined)

Every mutation that touches more than one document runs inside a single
store transaction, so the enrollment, the drive counters and the student
placement flag move together.

Enrollments keep a snapshot of student/drive data taken at enrollment time.
The snapshot is not live-joined; refresh_snapshot() re-copies it on demand.
"""

import logging
from typing import Any, Dict, FrozenSet, List, Optional

from placement.core.errors import (
    ConflictError,
    IneligibilityError,
    InvalidTransitionError,
    NotFoundError,
    PlacementError,
    ValidationError,
)
from placement.db.mongodb import COLLECTIONS
from placement.db.store import DocumentStore
from placement.schemas.schemas import CLOSED_DRIVE_STATUSES, EnrollmentStatus
from placement.services.eligibility_service import check_student_eligibility
from placement.utils.dates import now_iso

logger = logging.getLogger(__name__)

S = EnrollmentStatus

PIPELINE = [
    S.enrolled,
    S.shortlisted,
    S.round_1_cleared,
    S.round_2_cleared,
    S.round_3_cleared,
    S.final_round,
    S.selected,
    S.offer_received,
    S.offer_accepted,
    S.joined,
]

TERMINAL_STATUSES: FrozenSet[EnrollmentStatus] = frozenset({S.joined, S.rejected, S.withdrawn})

# Statuses that count as a placement for the drive and the student
PLACED_STATUSES: FrozenSet[EnrollmentStatus] = frozenset({S.selected, S.offer_accepted})

WITHDRAWAL_BLOCKED: FrozenSet[EnrollmentStatus] = frozenset({S.selected, S.offer_accepted, S.joined})

INACTIVE_STATUSES: FrozenSet[EnrollmentStatus] = frozenset({S.rejected, S.withdrawn})

ROUND_STATUS = {
    1: S.round_1_cleared,
    2: S.round_2_cleared,
    3: S.round_3_cleared,
}


def _build_transitions() -> Dict[EnrollmentStatus, FrozenSet[EnrollmentStatus]]:
    table = {}
    for index, status in enumerate(PIPELINE):
        if status in TERMINAL_STATUSES:
            table[status] = frozenset()
            continue
        allowed = set(PIPELINE[index:]) | {S.rejected}
        if status not in WITHDRAWAL_BLOCKED:
            allowed.add(S.withdrawn)
        table[status] = frozenset(allowed)
    table[S.rejected] = frozenset()
    table[S.withdrawn] = frozenset()
    return table


ALLOWED_TRANSITIONS = _build_transitions()


def parse_status(value: Any) -> EnrollmentStatus:
    """Map a raw status string to the enum; unknown values are an invalid transition."""
    try:
        return EnrollmentStatus(value)
    except ValueError:
        valid = ", ".join(s.value for s in EnrollmentStatus)
        raise InvalidTransitionError(f"Unknown status '{value}'. Valid statuses: {valid}")


def can_transition(current: EnrollmentStatus, new: EnrollmentStatus) -> bool:
    return new in ALLOWED_TRANSITIONS.get(current, frozenset())


def round_status(round_number: int) -> EnrollmentStatus:
    return ROUND_STATUS.get(round_number, S.final_round)


class EnrollmentService:
    """Enrollment operations over a document store."""

    def __init__(self, store: DocumentStore):
        self.store = store

    # ------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------

    def _load(self, collection: str, doc_id: str, label: str) -> dict:
        doc = self.store.get(COLLECTIONS[collection], doc_id)
        if doc is None:
            raise NotFoundError(f"{label} not found")
        return doc

    def get_enrollment(self, enrollment_id: str) -> dict:
        return self._load("enrollments", enrollment_id, "Enrollment")

    # ------------------------------------------------------------
    # Enroll
    # ------------------------------------------------------------

    def enroll(self, student_id: str, drive_id: str, actor_id: str) -> Dict[str, Any]:
        """
        Enroll a student in a drive.

        Order of checks: student/drive exist, drive still open, student
        eligible, no existing enrollment for the pair.
        """
        def _enroll():
            student = self._load("students", student_id, "Student")
            drive = self._load("drives", drive_id, "Drive")

            if drive.get("status") in CLOSED_DRIVE_STATUSES:
                raise ConflictError("Drive is no longer accepting enrollments", error="Enrollment failed")

            eligibility = check_student_eligibility(student, drive)
            if not eligibility["eligible"]:
                raise IneligibilityError(eligibility["reasons"])

            if self.store.exists(COLLECTIONS["enrollments"], {"studentId": student_id, "driveId": drive_id}):
                raise ConflictError("Student is already enrolled in this drive")

            now = now_iso()
            enrollment = {
                "studentId": student_id,
                "driveId": drive_id,
                "studentName": student.get("name"),
                "studentRollNumber": student.get("rollNumber"),
                "studentBranch": student.get("branch"),
                "studentCGPA": student.get("cgpa"),
                "companyName": drive.get("companyName"),
                "ctc": drive.get("ctc"),
                "status": S.enrolled.value,
                "statusHistory": [{
                    "status": S.enrolled.value,
                    "previousStatus": None,
                    "timestamp": now,
                    "updatedBy": actor_id,
                    "remarks": "",
                }],
                "enrolledAt": now,
                "enrolledBy": actor_id,
                "eligibilityScore": eligibility["score"],
                "currentRound": 0,
                "roundsCleared": [],
                "remarks": "",
                "placementCounted": False,
                "createdAt": now,
                "updatedAt": now,
            }

            try:
                enrollment_id = self.store.insert(COLLECTIONS["enrollments"], enrollment)
            except ConflictError:
                raise ConflictError("Student is already enrolled in this drive")

            self.store.update(COLLECTIONS["drives"], drive_id, {
                "$inc": {"enrolledStudents": 1},
                "$set": {"updatedAt": now},
            })
            return enrollment_id, enrollment, drive

        enrollment_id, enrollment, drive = self.store.run_transaction(_enroll)
        logger.info("Student %s enrolled in drive %s (%s)", student_id, drive_id, enrollment_id)

        return {
            "success": True,
            "enrollmentId": enrollment_id,
            "enrollment": {"id": enrollment_id, **enrollment},
            "message": f"Successfully enrolled in {drive.get('companyName')}",
        }

    # ------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------

    def _transition(
        self,
        enrollment_id: str,
        new_status: EnrollmentStatus,
        actor_id: str,
        remarks: str = "",
        extra_set: Optional[dict] = None,
        extra_changes: Optional[dict] = None,
        guard=None,
    ) -> Dict[str, Any]:
        """
        Move one enrollment to new_status inside a transaction and apply the
        side effects. Returns the enrollment as it was before the change.
        """
        def _apply():
            enrollment = self.get_enrollment(enrollment_id)
            current = parse_status(enrollment.get("status"))
            if guard is not None:
                guard(current)

            if not can_transition(current, new_status):
                raise InvalidTransitionError(
                    f"Cannot change status from {current.value} to {new_status.value}"
                )

            now = now_iso()
            fields = {
                "status": new_status.value,
                "remarks": remarks or enrollment.get("remarks", ""),
                "updatedAt": now,
            }
            fields.update(extra_set or {})

            counts_placement = new_status in PLACED_STATUSES and not enrollment.get("placementCounted")
            if counts_placement:
                fields["placementCounted"] = True

            changes = {
                "$set": fields,
                "$push": {"statusHistory": {
                    "status": new_status.value,
                    "previousStatus": current.value,
                    "timestamp": now,
                    "updatedBy": actor_id,
                    "remarks": remarks,
                }},
            }
            for op, values in (extra_changes or {}).items():
                changes.setdefault(op, {}).update(values)
            self.store.update(COLLECTIONS["enrollments"], enrollment_id, changes)

            if counts_placement:
                self.store.update(COLLECTIONS["drives"], enrollment["driveId"], {
                    "$inc": {"placedStudents": 1},
                })
                self.store.update(COLLECTIONS["students"], enrollment["studentId"], {"$set": {
                    "isPlaced": True,
                    "placedCompany": enrollment.get("companyName"),
                    "placedCTC": enrollment.get("ctc"),
                    "placementDate": now,
                }})

            if new_status == S.withdrawn:
                self.store.update(COLLECTIONS["drives"], enrollment["driveId"], {
                    "$inc": {"enrolledStudents": -1},
                })
            return enrollment

        return self.store.run_transaction(_apply)

    def update_status(
        self, enrollment_id: str, new_status: Any, actor_id: str, remarks: str = ""
    ) -> Dict[str, Any]:
        """
        Update enrollment status.

        The first move into selected/offer_accepted marks the student placed
        and increments the drive's placedStudents; later moves within that
        family do not count the placement again.
        """
        status = parse_status(new_status)
        before = self._transition(enrollment_id, status, actor_id, remarks or "")
        previous = before.get("status")
        logger.info("Enrollment %s: %s -> %s by %s", enrollment_id, previous, status.value, actor_id)

        return {
            "success": True,
            "enrollmentId": enrollment_id,
            "previousStatus": previous,
            "newStatus": status.value,
            "message": f"Status updated from {previous} to {status.value}",
        }

    def update_round(
        self, enrollment_id: str, round_number: int, cleared: bool, actor_id: str
    ) -> Dict[str, Any]:
        """Record a round result. Failing any round rejects the enrollment."""
        if isinstance(round_number, bool) or not isinstance(round_number, int) or round_number < 1:
            raise ValidationError("Round number must be a positive integer")

        if cleared:
            new_status = round_status(round_number)
            self._transition(
                enrollment_id,
                new_status,
                actor_id,
                remarks=f"Cleared round {round_number}",
                extra_set={"currentRound": round_number},
                extra_changes={"$addToSet": {"roundsCleared": round_number}},
            )
        else:
            new_status = S.rejected
            self._transition(
                enrollment_id,
                new_status,
                actor_id,
                remarks=f"Rejected at round {round_number}",
            )

        return {
            "success": True,
            "enrollmentId": enrollment_id,
            "roundNumber": round_number,
            "cleared": cleared,
            "newStatus": new_status.value,
        }

    def withdraw(self, enrollment_id: str, actor_id: str, reason: str = "") -> Dict[str, Any]:
        """Withdraw an enrollment and release its seat in the drive count."""
        def _guard(current: EnrollmentStatus):
            if current in WITHDRAWAL_BLOCKED:
                raise ConflictError("Cannot withdraw after selection")

        now = now_iso()
        self._transition(
            enrollment_id,
            S.withdrawn,
            actor_id,
            remarks=reason or "",
            extra_set={"withdrawnAt": now, "withdrawnBy": actor_id, "withdrawalReason": reason or ""},
            guard=_guard,
        )
        logger.info("Enrollment %s withdrawn by %s", enrollment_id, actor_id)
        return {"success": True, "message": "Enrollment withdrawn successfully"}

    def bulk_update_status(
        self, enrollment_ids: List[str], new_status: Any, actor_id: str, remarks: str = ""
    ) -> Dict[str, Any]:
        """Apply one status to many enrollments; failures are tallied per id."""
        if not enrollment_ids:
            raise ValidationError("Enrollment IDs array is required")
        status = parse_status(new_status)

        results = {"success": 0, "failed": 0, "errors": []}
        for enrollment_id in enrollment_ids:
            try:
                self.update_status(enrollment_id, status, actor_id, remarks)
                results["success"] += 1
            except PlacementError as e:
                results["failed"] += 1
                results["errors"].append(f"{enrollment_id}: {e.message}")

        return {
            "success": True,
            "message": f"Updated {results['success']} enrollments",
            "results": results,
        }

    def delete_enrollment(self, enrollment_id: str, actor_id: str) -> Dict[str, Any]:
        """
        Hard delete. The drive count drops unless the enrollment was already
        withdrawn. Enrollments behind a placement cannot be deleted.
        """
        def _delete():
            enrollment = self.get_enrollment(enrollment_id)
            status = parse_status(enrollment.get("status"))
            if status in WITHDRAWAL_BLOCKED or enrollment.get("placementCounted"):
                raise ConflictError("Cannot delete an enrollment after selection", error="Cannot delete")
            self.store.delete(COLLECTIONS["enrollments"], enrollment_id)
            if enrollment.get("status") != S.withdrawn.value:
                self.store.update(COLLECTIONS["drives"], enrollment["driveId"], {
                    "$inc": {"enrolledStudents": -1},
                })

        self.store.run_transaction(_delete)
        logger.warning("Enrollment %s deleted by %s", enrollment_id, actor_id)
        return {"success": True, "message": "Enrollment deleted successfully"}

    def refresh_snapshot(self, enrollment_id: str) -> Dict[str, Any]:
        """Re-copy the student/drive snapshot fields from the live documents."""
        def _refresh():
            enrollment = self.get_enrollment(enrollment_id)
            student = self._load("students", enrollment["studentId"], "Student")
            drive = self._load("drives", enrollment["driveId"], "Drive")
            snapshot = {
                "studentName": student.get("name"),
                "studentRollNumber": student.get("rollNumber"),
                "studentBranch": student.get("branch"),
                "studentCGPA": student.get("cgpa"),
                "companyName": drive.get("companyName"),
                "ctc": drive.get("ctc"),
                "snapshotRefreshedAt": now_iso(),
            }
            self.store.update(COLLECTIONS["enrollments"], enrollment_id, {"$set": snapshot})
            return {**enrollment, **snapshot}

        return self.store.run_transaction(_refresh)

    # ------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------

    def get_drive_enrollments(self, drive_id: str, status: Optional[str] = None) -> Dict[str, Any]:
        """Enrollments of a drive: selected first, then by eligibility score."""
        filters = {"driveId": drive_id}
        if status:
            filters["status"] = parse_status(status).value

        enrollments = self.store.find(COLLECTIONS["enrollments"], filters)
        enrollments.sort(key=lambda e: (
            e.get("status") != S.selected.value,
            -(e.get("eligibilityScore") or 0),
        ))

        status_counts: Dict[str, int] = {}
        for enrollment in enrollments:
            status_counts[enrollment["status"]] = status_counts.get(enrollment["status"], 0) + 1

        return {
            "driveId": drive_id,
            "enrollments": enrollments,
            "total": len(enrollments),
            "statusCounts": status_counts,
            "filters": {"status": status} if status else {},
        }

    def get_student_enrollments(self, student_id: str) -> Dict[str, Any]:
        """A student's enrollments, newest first."""
        enrollments = self.store.find(
            COLLECTIONS["enrollments"],
            {"studentId": student_id},
            sort=[("enrolledAt", -1)],
        )
        inactive = {s.value for s in INACTIVE_STATUSES}
        return {
            "studentId": student_id,
            "enrollments": enrollments,
            "total": len(enrollments),
            "activeEnrollments": len([e for e in enrollments if e.get("status") not in inactive]),
        }
