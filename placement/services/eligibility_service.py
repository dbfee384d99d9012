"""
Eligibility Service

Decides whether a student may enroll in a drive and ranks eligible students.

HOW IT WORKS:
Every student starts at a score of 100. Each drive criterion is an
independent check; a failed check appends a human-readable reason and
subtracts a fixed penalty:

    minCGPA              -30
    eligibleBranches     -40
    eligibleYears        -30
    noBacklogsRequired   -50
    noAlreadyPlaced     -100
    min10thPercentage    -15
    min12thPercentage    -15

The student is eligible only when no reason was produced. The score is a
ranking aid and never overrides a failed criterion.
"""

import logging
import re
from typing import Any, Dict, List

from placement.core.errors import NotFoundError
from placement.db.mongodb import COLLECTIONS
from placement.db.store import DocumentStore
from placement.schemas.schemas import ACTIVE_DRIVE_STATUSES
from placement.utils.dates import now_iso

logger = logging.getLogger(__name__)

CGPA_PENALTY = 30
BRANCH_PENALTY = 40
YEAR_PENALTY = 30
BACKLOG_PENALTY = 50
ALREADY_PLACED_PENALTY = 100
PERCENTAGE_PENALTY = 15

_LEADING_NUMBER = re.compile(r"\s*[-+]?\d+(\.\d+)?")


# ============================================================
# VALUE HELPERS
# ============================================================

def to_float(value: Any) -> float:
    """Lenient number parsing: '8.2', 8.2 and '8.2 CGPA' all give 8.2; junk gives 0."""
    if isinstance(value, bool) or value is None:
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    match = _LEADING_NUMBER.match(str(value))
    return float(match.group(0)) if match else 0.0


def to_int(value: Any) -> int:
    return int(to_float(value))


def format_number(value: Any) -> str:
    """7.0 -> '7', 7.5 -> '7.5', '8' -> '8'."""
    number = to_float(value)
    if number.is_integer():
        return str(int(number))
    return str(number)


def _present(value: Any) -> bool:
    return value not in (None, "", 0, False)


# ============================================================
# CORE CHECK
# ============================================================

def check_student_eligibility(student: Dict[str, Any], drive: Dict[str, Any]) -> Dict[str, Any]:
    """
    Check if a student is eligible for a specific drive.

    Args:
        student: Student document
        drive: Drive document with eligibility criteria

    Returns:
        {"eligible": bool, "reasons": [str], "score": int 0..100}
    """
    reasons: List[str] = []
    score = 100

    # 1. CGPA (boundary inclusive: equal to the minimum passes)
    if _present(drive.get("minCGPA")):
        student_cgpa = to_float(student.get("cgpa"))
        min_cgpa = to_float(drive.get("minCGPA"))
        if student_cgpa < min_cgpa:
            reasons.append(
                f"CGPA {student_cgpa:.2f} is below minimum requirement of {format_number(min_cgpa)}"
            )
            score -= CGPA_PENALTY

    # 2. Branch, case-insensitive substring match in either direction
    eligible_branches = drive.get("eligibleBranches") or []
    if eligible_branches:
        student_branch = str(student.get("branch") or "").lower().strip()
        branches = [str(b).lower().strip() for b in eligible_branches]
        if student_branch and not any(
            branch in student_branch or student_branch in branch for branch in branches
        ):
            reasons.append(f"Branch '{student.get('branch')}' is not eligible for this drive")
            score -= BRANCH_PENALTY

    # 3. Year / batch, compared both as number and as string
    eligible_years = drive.get("eligibleYears")
    if not eligible_years and _present(drive.get("eligibleYear")):
        eligible_years = [drive["eligibleYear"]]
    if eligible_years:
        student_year = to_int(student.get("year"))
        if student_year not in eligible_years and str(student_year) not in eligible_years:
            required = ", ".join(str(y) for y in eligible_years)
            reasons.append(
                f"Year {student.get('year') or 'unspecified'} is not eligible (required: {required})"
            )
            score -= YEAR_PENALTY

    # 4. Backlogs
    if drive.get("noBacklogsRequired") and to_float(student.get("activeBacklogs")) > 0:
        reasons.append(
            f"Active backlogs ({format_number(student.get('activeBacklogs'))}) not allowed for this drive"
        )
        score -= BACKLOG_PENALTY

    # 5. Already placed
    if drive.get("noAlreadyPlaced") and student.get("isPlaced"):
        reasons.append("Already placed students are not eligible for this drive")
        score -= ALREADY_PLACED_PENALTY

    # 6 & 7. School percentages
    for label, student_field, drive_field in (
        ("10th", "percentage10th", "min10thPercentage"),
        ("12th", "percentage12th", "min12thPercentage"),
    ):
        if _present(drive.get(drive_field)):
            percentage = to_float(student.get(student_field))
            if percentage < to_float(drive.get(drive_field)):
                reasons.append(
                    f"{label} percentage {format_number(percentage)}% is below minimum "
                    f"{format_number(drive.get(drive_field))}%"
                )
                score -= PERCENTAGE_PENALTY

    return {
        "eligible": len(reasons) == 0,
        "reasons": reasons,
        "score": max(0, score),
    }


# ============================================================
# STORE-BACKED QUERIES
# ============================================================

def get_eligible_students_for_drive(store: DocumentStore, drive_id: str) -> Dict[str, Any]:
    """All students split into eligible / not eligible for one drive, best fit first."""
    drive = store.get(COLLECTIONS["drives"], drive_id)
    if drive is None:
        raise NotFoundError("Drive not found")

    students = store.find(COLLECTIONS["students"])
    eligible, not_eligible = [], []

    for student in students:
        result = check_student_eligibility(student, drive)
        if result["eligible"]:
            eligible.append({**student, "eligibilityScore": result["score"]})
        else:
            not_eligible.append({
                **student,
                "eligibilityReasons": result["reasons"],
                "eligibilityScore": result["score"],
            })

    eligible.sort(key=lambda s: s["eligibilityScore"], reverse=True)
    total = len(students)

    return {
        "drive": drive,
        "eligible": eligible,
        "notEligible": not_eligible,
        "stats": {
            "totalStudents": total,
            "eligibleCount": len(eligible),
            "notEligibleCount": len(not_eligible),
            "eligibilityRate": f"{(len(eligible) / total) * 100:.2f}" if total else "0.00",
        },
    }


def get_eligible_drives_for_student(store: DocumentStore, student_id: str) -> Dict[str, Any]:
    """Active drives split by whether the student qualifies."""
    student = store.get(COLLECTIONS["students"], student_id)
    if student is None:
        raise NotFoundError("Student not found")

    drives = store.find(COLLECTIONS["drives"], {"status": {"$in": ACTIVE_DRIVE_STATUSES}})
    eligible_drives, not_eligible_drives = [], []

    for drive in drives:
        result = check_student_eligibility(student, drive)
        if result["eligible"]:
            eligible_drives.append({**drive, "eligibilityScore": result["score"]})
        else:
            not_eligible_drives.append({**drive, "eligibilityReasons": result["reasons"]})

    return {
        "student": student,
        "eligibleDrives": eligible_drives,
        "notEligibleDrives": not_eligible_drives,
        "stats": {
            "totalDrives": len(drives),
            "eligibleCount": len(eligible_drives),
        },
    }


def update_drive_eligibility_count(store: DocumentStore, drive_id: str) -> Dict[str, Any]:
    """Recompute and store how many students currently qualify for a drive."""
    result = get_eligible_students_for_drive(store, drive_id)
    count = len(result["eligible"])

    store.update(COLLECTIONS["drives"], drive_id, {
        "$set": {"eligibleStudentCount": count, "eligibilityUpdatedAt": now_iso()}
    })
    logger.info("Drive %s: %d eligible students", drive_id, count)

    return {
        "success": True,
        "eligibleCount": count,
        "message": f"Updated eligibility count for drive: {result['drive'].get('companyName')}",
    }
