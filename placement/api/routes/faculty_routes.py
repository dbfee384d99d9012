"""
Faculty Routes (faculty / admin only)

GET    /faculty/dashboard                      - Dashboard statistics
GET    /faculty/analytics                      - Combined analytics
GET    /faculty/analytics/branch               - Branch-wise analytics
GET    /faculty/analytics/trends               - Monthly placement trends
GET    /faculty/analytics/drives/{id}          - Drive analytics
GET    /faculty/export                         - Export report rows
GET    /faculty/students                       - List students (filters)
POST   /faculty/students                       - Create student
POST   /faculty/students/bulk-upload           - Bulk upsert students
GET    /faculty/students/{id}                  - Student with enrollments
PUT    /faculty/students/{id}                  - Update student
DELETE /faculty/students/{id}                  - Delete student
GET    /faculty/drives                         - List drives
POST   /faculty/drives                         - Create drive
GET    /faculty/drives/{id}                    - Drive with analytics
PUT    /faculty/drives/{id}                    - Update drive
DELETE /faculty/drives/{id}                    - Delete drive
GET    /faculty/drives/{id}/eligible-students  - Eligibility split
GET    /faculty/drives/{id}/enrollments        - Drive enrollments
GET    /faculty/enrollments                    - List enrollments
POST   /faculty/enrollments                    - Enroll a student
PUT    /faculty/enrollments/{id}/status        - Update status
PUT    /faculty/enrollments/{id}/round         - Record round result
POST   /faculty/enrollments/{id}/refresh       - Refresh snapshot
POST   /faculty/enrollments/bulk-status        - Bulk status update
DELETE /faculty/enrollments/{id}               - Withdraw (or ?hard=true delete)
GET    /faculty/enrollment-statuses            - Status values
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from placement.core.auth import require_role
from placement.core.rate_limit import rate_limit
from placement.db.mongodb import COLLECTIONS
from placement.db.store import DocumentStore, get_store
from placement.schemas.schemas import (
    BulkStatusUpdate, BulkUploadRequest, DriveCreate, DriveUpdate, EnrollmentCreate,
    EnrollmentStatus, RoundUpdate, StatusUpdate, StudentCreate, StudentUpdate, WithdrawRequest,
)
from placement.services import analytics_service, drive_service, student_service
from placement.services.eligibility_service import get_eligible_students_for_drive
from placement.services.enrollment_service import EnrollmentService, parse_status

faculty_only = require_role("faculty", "admin")

router = APIRouter(
    prefix="/faculty",
    tags=["Faculty"],
    dependencies=[Depends(rate_limit), Depends(faculty_only)],
)


# ============================================================
# DASHBOARD & ANALYTICS
# ============================================================

@router.get("/dashboard")
async def dashboard(store: DocumentStore = Depends(get_store)):
    return {"success": True, "data": analytics_service.get_dashboard_stats(store)}


@router.get("/analytics")
async def analytics(store: DocumentStore = Depends(get_store)):
    """Dashboard, branch analytics and 12-month trends in one payload."""
    stats = analytics_service.get_dashboard_stats(store)
    branch = analytics_service.get_branch_wise_analytics(store)
    trends = analytics_service.get_placement_trends(store, 12)
    return {
        "success": True,
        "data": {
            "overview": stats["overview"],
            "ctcStats": stats["ctcStats"],
            "distribution": stats["distribution"],
            "companyWise": stats["companyWise"],
            "branchAnalytics": branch["branchAnalytics"],
            "trends": trends["trends"],
        },
    }


@router.get("/analytics/branch")
async def branch_analytics(store: DocumentStore = Depends(get_store)):
    return {"success": True, "data": analytics_service.get_branch_wise_analytics(store)}


@router.get("/analytics/trends")
async def placement_trends(
    months: int = Query(12, ge=1, le=analytics_service.MAX_TREND_MONTHS),
    store: DocumentStore = Depends(get_store),
):
    return {"success": True, "data": analytics_service.get_placement_trends(store, months)}


@router.get("/analytics/drives/{drive_id}")
async def drive_analytics(drive_id: str, store: DocumentStore = Depends(get_store)):
    return {"success": True, "data": analytics_service.get_drive_analytics(store, drive_id)}


@router.get("/export")
async def export_data(export_type: str = Query("all", alias="type"), store: DocumentStore = Depends(get_store)):
    return {"success": True, "data": analytics_service.export_analytics_data(store, export_type)}


# ============================================================
# STUDENT MANAGEMENT
# ============================================================

@router.get("/students")
async def list_students(
    branch: Optional[str] = None,
    year: Optional[str] = None,
    section: Optional[str] = None,
    placed: Optional[bool] = None,
    min_cgpa: Optional[float] = Query(None, alias="minCGPA"),
    max_cgpa: Optional[float] = Query(None, alias="maxCGPA"),
    search: Optional[str] = None,
    store: DocumentStore = Depends(get_store),
):
    students = student_service.list_students(
        store, branch=branch, year=year, placed=placed, section=section,
        min_cgpa=min_cgpa, max_cgpa=max_cgpa, search=search,
    )
    return {"success": True, "data": students, "total": len(students)}


@router.post("/students", status_code=201)
async def create_student(
    data: StudentCreate,
    user: dict = Depends(faculty_only),
    store: DocumentStore = Depends(get_store),
):
    student_id = student_service.create_student(store, data.to_document(), user["uid"])
    return {"success": True, "message": "Student created successfully", "studentId": student_id}


@router.post("/students/bulk-upload")
async def bulk_upload(
    data: BulkUploadRequest,
    user: dict = Depends(faculty_only),
    store: DocumentStore = Depends(get_store),
):
    return student_service.bulk_upload(store, data.students, user["uid"])


@router.get("/students/{student_id}")
async def get_student(student_id: str, store: DocumentStore = Depends(get_store)):
    return {"success": True, "data": student_service.get_student_with_enrollments(store, student_id)}


@router.put("/students/{student_id}")
async def update_student(
    student_id: str,
    data: StudentUpdate,
    user: dict = Depends(faculty_only),
    store: DocumentStore = Depends(get_store),
):
    student_service.update_student(store, student_id, data.to_document(), user["uid"])
    return {"success": True, "message": "Student updated successfully"}


@router.delete("/students/{student_id}")
async def delete_student(student_id: str, store: DocumentStore = Depends(get_store)):
    student_service.delete_student(store, student_id)
    return {"success": True, "message": "Student deleted successfully"}


# ============================================================
# DRIVE MANAGEMENT
# ============================================================

@router.get("/drives")
async def list_drives(status: Optional[str] = None, store: DocumentStore = Depends(get_store)):
    drives = drive_service.list_drives(store, status)
    return {"success": True, "data": drives, "total": len(drives)}


@router.post("/drives", status_code=201)
async def create_drive(
    data: DriveCreate,
    user: dict = Depends(faculty_only),
    store: DocumentStore = Depends(get_store),
):
    drive_id = drive_service.create_drive(store, data.to_document(), user["uid"])
    return {"success": True, "message": "Drive created successfully", "driveId": drive_id}


@router.get("/drives/{drive_id}")
async def get_drive(drive_id: str, store: DocumentStore = Depends(get_store)):
    drive = drive_service.get_drive(store, drive_id)
    analytics = analytics_service.get_drive_analytics(store, drive_id)
    return {"success": True, "data": {**drive, "analytics": analytics}}


@router.put("/drives/{drive_id}")
async def update_drive(
    drive_id: str,
    data: DriveUpdate,
    user: dict = Depends(faculty_only),
    store: DocumentStore = Depends(get_store),
):
    drive_service.update_drive(store, drive_id, data.to_document(), user["uid"])
    return {"success": True, "message": "Drive updated successfully"}


@router.delete("/drives/{drive_id}")
async def delete_drive(drive_id: str, store: DocumentStore = Depends(get_store)):
    drive_service.delete_drive(store, drive_id)
    return {"success": True, "message": "Drive deleted successfully"}


@router.get("/drives/{drive_id}/eligible-students")
async def eligible_students(drive_id: str, store: DocumentStore = Depends(get_store)):
    return {"success": True, "data": get_eligible_students_for_drive(store, drive_id)}


@router.get("/drives/{drive_id}/enrollments")
async def drive_enrollments(
    drive_id: str,
    status: Optional[str] = None,
    store: DocumentStore = Depends(get_store),
):
    return {"success": True, "data": EnrollmentService(store).get_drive_enrollments(drive_id, status)}


# ============================================================
# ENROLLMENT MANAGEMENT
# ============================================================

@router.get("/enrollments")
async def list_enrollments(
    drive_id: Optional[str] = Query(None, alias="driveId"),
    student_id: Optional[str] = Query(None, alias="studentId"),
    status: Optional[str] = None,
    store: DocumentStore = Depends(get_store),
):
    filters = {}
    if drive_id:
        filters["driveId"] = drive_id
    if student_id:
        filters["studentId"] = student_id
    if status:
        filters["status"] = parse_status(status).value

    enrollments = store.find(COLLECTIONS["enrollments"], filters)
    return {"success": True, "data": enrollments, "total": len(enrollments)}


@router.post("/enrollments", status_code=201)
async def create_enrollment(
    data: EnrollmentCreate,
    user: dict = Depends(faculty_only),
    store: DocumentStore = Depends(get_store),
):
    return EnrollmentService(store).enroll(data.student_id, data.drive_id, user["uid"])


@router.post("/enrollments/bulk-status")
async def bulk_status(
    data: BulkStatusUpdate,
    user: dict = Depends(faculty_only),
    store: DocumentStore = Depends(get_store),
):
    return EnrollmentService(store).bulk_update_status(data.enrollment_ids, data.status, user["uid"], data.remarks)


@router.put("/enrollments/{enrollment_id}/status")
async def update_status(
    enrollment_id: str,
    data: StatusUpdate,
    user: dict = Depends(faculty_only),
    store: DocumentStore = Depends(get_store),
):
    return EnrollmentService(store).update_status(enrollment_id, data.status, user["uid"], data.remarks)


@router.put("/enrollments/{enrollment_id}/round")
async def update_round(
    enrollment_id: str,
    data: RoundUpdate,
    user: dict = Depends(faculty_only),
    store: DocumentStore = Depends(get_store),
):
    return EnrollmentService(store).update_round(enrollment_id, data.round_number, data.cleared, user["uid"])


@router.post("/enrollments/{enrollment_id}/refresh")
async def refresh_enrollment(enrollment_id: str, store: DocumentStore = Depends(get_store)):
    """Re-copy student and drive details into the enrollment."""
    return {"success": True, "data": EnrollmentService(store).refresh_snapshot(enrollment_id)}


@router.delete("/enrollments/{enrollment_id}")
async def remove_enrollment(
    enrollment_id: str,
    data: Optional[WithdrawRequest] = None,
    hard: bool = False,
    user: dict = Depends(faculty_only),
    store: DocumentStore = Depends(get_store),
):
    """Withdraw by default; hard=true removes the document."""
    service = EnrollmentService(store)
    if hard:
        return service.delete_enrollment(enrollment_id, user["uid"])
    return service.withdraw(enrollment_id, user["uid"], data.reason if data else "")


@router.get("/enrollment-statuses")
async def enrollment_statuses():
    return {"success": True, "data": {s.name.upper(): s.value for s in EnrollmentStatus}}
