"""
Analytics Service

Read-only rollups for the faculty dashboard:
- Dashboard KPIs (placement rate, CTC stats, distributions, company leaderboard)
- Branch-wise placement analytics
- Drive-specific analytics (status histogram, branch split, round clearance)
- Placement trends by month
- Flat exports for reports

Every function scans whole collections and folds them in memory. That is
fine for one institution's placement season; larger deployments would need
rollups maintained on write instead.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from placement.core.errors import NotFoundError, ValidationError
from placement.db.mongodb import COLLECTIONS
from placement.db.store import DocumentStore
from placement.schemas.schemas import ACTIVE_DRIVE_STATUSES, EnrollmentStatus, ExportType
from placement.services.eligibility_service import to_float
from placement.utils.dates import now_iso, parse_datetime

logger = logging.getLogger(__name__)

S = EnrollmentStatus
SELECTED_STATUSES = (S.selected.value, S.offer_accepted.value)
FINAL_ROUND_STATUSES = (S.selected.value, S.offer_accepted.value, S.final_round.value)


def _pct(part: float, whole: float) -> str:
    return f"{(part / whole) * 100:.2f}" if whole else "0.00"


def _avg(total: float, count: int) -> str:
    return f"{total / count:.2f}" if count else "0.00"


# ============================================================
# DASHBOARD
# ============================================================

def get_dashboard_stats(store: DocumentStore) -> Dict[str, Any]:
    """Comprehensive dashboard statistics across all three collections."""
    students = store.find(COLLECTIONS["students"])
    drives = store.find(COLLECTIONS["drives"])
    enrollments = store.find(COLLECTIONS["enrollments"])

    # Students
    total_students = len(students)
    placed_students = 0
    branch_wise: Dict[str, int] = {}
    year_wise: Dict[str, int] = {}

    for student in students:
        if student.get("isPlaced"):
            placed_students += 1
        branch = student.get("branch") or "Unknown"
        branch_wise[branch] = branch_wise.get(branch, 0) + 1
        year = str(student.get("year") or "Unknown")
        year_wise[year] = year_wise.get(year, 0) + 1

    # Drives: CTC is weighted by the number placed in each drive
    active_drives = 0
    total_placements = 0
    total_ctc_offered = 0.0
    highest_ctc = 0.0
    lowest_ctc: Optional[float] = None
    company_wise = []

    for drive in drives:
        if drive.get("status") in ACTIVE_DRIVE_STATUSES:
            active_drives += 1

        placed = drive.get("placedStudents") or 0
        total_placements += placed

        if drive.get("ctc"):
            ctc = to_float(drive["ctc"])
            total_ctc_offered += ctc * placed
            highest_ctc = max(highest_ctc, ctc)
            if ctc > 0 and (lowest_ctc is None or ctc < lowest_ctc):
                lowest_ctc = ctc

        company_wise.append({
            "id": drive["id"],
            "company": drive.get("companyName"),
            "ctc": drive.get("ctc"),
            "enrolled": drive.get("enrolledStudents") or 0,
            "placed": placed,
            "status": drive.get("status"),
        })

    # Enrollments
    status_counts: Dict[str, int] = {}
    for enrollment in enrollments:
        status = enrollment.get("status")
        status_counts[status] = status_counts.get(status, 0) + 1

    avg_ctc = round(total_ctc_offered / total_placements, 2) if total_placements else 0
    placement_rate = round((placed_students / total_students) * 100, 2) if total_students else 0

    return {
        "overview": {
            "totalStudents": total_students,
            "placedStudents": placed_students,
            "unplacedStudents": total_students - placed_students,
            "placementRate": placement_rate,
            "totalDrives": len(drives),
            "activeDrives": active_drives,
            "completedDrives": len(drives) - active_drives,
            "totalPlacements": total_placements,
            "totalEnrollments": len(enrollments),
        },
        "ctcStats": {
            "avgCTC": avg_ctc,
            "highestCTC": highest_ctc,
            "lowestCTC": lowest_ctc or 0,
            "totalOffered": f"{total_ctc_offered:.2f}",
        },
        "distribution": {
            "branchWise": branch_wise,
            "yearWise": year_wise,
            "enrollmentStatus": status_counts,
        },
        "companyWise": sorted(company_wise, key=lambda c: c["placed"], reverse=True),
        "lastUpdated": now_iso(),
    }


# ============================================================
# BRANCH-WISE
# ============================================================

def get_branch_wise_analytics(store: DocumentStore) -> Dict[str, Any]:
    """Per-branch totals, placement rate, average CGPA and CTC among placed."""
    branch_data: Dict[str, Dict[str, float]] = {}

    for student in store.find(COLLECTIONS["students"]):
        branch = student.get("branch") or "Unknown"
        data = branch_data.setdefault(branch, {
            "total": 0, "placed": 0, "totalCGPA": 0.0, "highestCTC": 0.0, "totalCTC": 0.0,
        })
        data["total"] += 1

        if student.get("cgpa"):
            data["totalCGPA"] += to_float(student["cgpa"])

        if student.get("isPlaced"):
            data["placed"] += 1
            if student.get("placedCTC"):
                ctc = to_float(student["placedCTC"])
                data["totalCTC"] += ctc
                data["highestCTC"] = max(data["highestCTC"], ctc)

    analytics = [
        {
            "branch": branch,
            "total": data["total"],
            "placed": data["placed"],
            "unplaced": data["total"] - data["placed"],
            "placementRate": _pct(data["placed"], data["total"]),
            "avgCGPA": _avg(data["totalCGPA"], data["total"]),
            "avgCTC": _avg(data["totalCTC"], data["placed"]),
            "highestCTC": data["highestCTC"],
        }
        for branch, data in branch_data.items()
    ]
    analytics.sort(key=lambda a: a["total"], reverse=True)

    return {
        "branchAnalytics": analytics,
        "totalBranches": len(analytics),
        "lastUpdated": now_iso(),
    }


# ============================================================
# DRIVE-SPECIFIC
# ============================================================

def get_drive_analytics(store: DocumentStore, drive_id: str) -> Dict[str, Any]:
    """Status histogram, branch split and round clearance for one drive."""
    drive = store.get(COLLECTIONS["drives"], drive_id)
    if drive is None:
        raise NotFoundError("Drive not found")

    enrollments = store.find(COLLECTIONS["enrollments"], {"driveId": drive_id})

    status_counts: Dict[str, int] = {}
    branch_wise: Dict[str, Dict[str, int]] = {}
    round_wise = {"round1": 0, "round2": 0, "round3": 0, "final": 0}
    total_cgpa = 0.0

    for enrollment in enrollments:
        status = enrollment.get("status")
        status_counts[status] = status_counts.get(status, 0) + 1

        branch = enrollment.get("studentBranch") or "Unknown"
        counts = branch_wise.setdefault(branch, {"enrolled": 0, "selected": 0})
        counts["enrolled"] += 1
        if status in SELECTED_STATUSES:
            counts["selected"] += 1

        cleared = enrollment.get("roundsCleared") or []
        for number in (1, 2, 3):
            if number in cleared:
                round_wise[f"round{number}"] += 1
        if status in FINAL_ROUND_STATUSES:
            round_wise["final"] += 1

        if enrollment.get("studentCGPA"):
            total_cgpa += to_float(enrollment["studentCGPA"])

    total = len(enrollments)
    selected = sum(status_counts.get(s, 0) for s in SELECTED_STATUSES)

    return {
        "drive": drive,
        "enrollmentStats": {
            "total": total,
            "statusCounts": status_counts,
            "selected": selected,
            "selectionRate": _pct(selected, total),
            "avgCGPA": _avg(total_cgpa, total),
        },
        "branchWise": [
            {**data, "branch": branch, "selectionRate": _pct(data["selected"], data["enrolled"])}
            for branch, data in branch_wise.items()
        ],
        "roundWise": round_wise,
        "lastUpdated": now_iso(),
    }


# ============================================================
# TRENDS
# ============================================================

MAX_TREND_MONTHS = 1200


def _months_before(moment: datetime, months: int) -> datetime:
    month_index = moment.year * 12 + (moment.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    # clamp the day, e.g. 31 March minus one month is 28/29 February
    next_month = datetime(year + (month == 12), month % 12 + 1, 1, tzinfo=moment.tzinfo)
    last_day = (next_month - datetime(year, month, 1, tzinfo=moment.tzinfo)).days
    return moment.replace(year=year, month=month, day=min(moment.day, last_day))


def get_placement_trends(store: DocumentStore, months: int = 12, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Placements per calendar month over the trailing window, oldest first."""
    if months < 1 or months > MAX_TREND_MONTHS:
        raise ValidationError(f"months must be between 1 and {MAX_TREND_MONTHS}")

    now = now or datetime.now(timezone.utc)
    cutoff = _months_before(now, months)

    monthly: Dict[str, Dict[str, float]] = {}
    for student in store.find(COLLECTIONS["students"], {"isPlaced": True}):
        placed_at = parse_datetime(student.get("placementDate"))
        if placed_at is None or placed_at < cutoff:
            continue
        key = f"{placed_at.year}-{placed_at.month:02d}"
        bucket = monthly.setdefault(key, {"count": 0, "totalCTC": 0.0})
        bucket["count"] += 1
        if student.get("placedCTC"):
            bucket["totalCTC"] += to_float(student["placedCTC"])

    trends = [
        {
            "month": month,
            "placementCount": int(data["count"]),
            "avgCTC": _avg(data["totalCTC"], int(data["count"])),
        }
        for month, data in sorted(monthly.items())
    ]

    return {
        "trends": trends,
        "period": f"Last {months} months",
        "lastUpdated": now_iso(),
    }


# ============================================================
# EXPORT
# ============================================================

def export_analytics_data(store: DocumentStore, export_type: str = "all") -> Dict[str, Any]:
    """Flatten collections into report rows. export_type: all|students|drives|enrollments."""
    try:
        kind = ExportType(export_type)
    except ValueError:
        valid = ", ".join(t.value for t in ExportType)
        raise ValidationError(f"Unknown export type '{export_type}'. Valid types: {valid}")

    data: Dict[str, Any] = {"exportedAt": now_iso(), "type": kind.value}

    if kind in (ExportType.all, ExportType.students):
        data["students"] = [
            {
                "rollNumber": s.get("rollNumber"),
                "name": s.get("name"),
                "branch": s.get("branch"),
                "year": s.get("year"),
                "cgpa": s.get("cgpa"),
                "isPlaced": bool(s.get("isPlaced")),
                "placedCompany": s.get("placedCompany") or "",
                "placedCTC": s.get("placedCTC") or "",
            }
            for s in store.find(COLLECTIONS["students"])
        ]

    if kind in (ExportType.all, ExportType.drives):
        data["drives"] = [
            {
                "companyName": d.get("companyName"),
                "ctc": d.get("ctc"),
                "driveDate": d.get("driveDate"),
                "status": d.get("status"),
                "enrolledStudents": d.get("enrolledStudents") or 0,
                "placedStudents": d.get("placedStudents") or 0,
            }
            for d in store.find(COLLECTIONS["drives"])
        ]

    if kind in (ExportType.all, ExportType.enrollments):
        data["enrollments"] = [
            {
                "studentName": e.get("studentName"),
                "rollNumber": e.get("studentRollNumber"),
                "company": e.get("companyName"),
                "status": e.get("status"),
                "enrolledAt": e.get("enrolledAt"),
            }
            for e in store.find(COLLECTIONS["enrollments"])
        ]

    logger.info("Exported analytics data (%s)", kind.value)
    return data
