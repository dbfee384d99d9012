"""
Student Routes

GET    /student/drives/public     - Active drives (no auth)
GET    /student/profile           - Get own profile
PUT    /student/profile           - Update own profile (allow-listed fields)
GET    /student/drives            - Active drives with eligibility
GET    /student/eligible-drives   - Drives the student qualifies for
POST   /student/enroll            - Enroll in a drive
GET    /student/enrollments       - My enrollments
GET    /student/enrollments/{id}  - One of my enrollments
DELETE /student/enrollments/{id}  - Withdraw from a drive
GET    /student/dashboard         - Dashboard summary
"""

from typing import Optional

from fastapi import APIRouter, Depends

from placement.core.auth import require_role
from placement.core.errors import ForbiddenError, NotFoundError
from placement.core.rate_limit import rate_limit
from placement.db.store import DocumentStore, get_store
from placement.schemas.schemas import StudentEnrollRequest, StudentProfileUpdate, WithdrawRequest
from placement.services import drive_service, student_service
from placement.services.eligibility_service import get_eligible_drives_for_student
from placement.services.enrollment_service import EnrollmentService

student_only = require_role("student")

# Public endpoints (no auth required)
public_router = APIRouter(prefix="/student", tags=["Student"], dependencies=[Depends(rate_limit)])

router = APIRouter(
    prefix="/student",
    tags=["Student"],
    dependencies=[Depends(rate_limit), Depends(student_only)],
)


async def get_current_student(
    user: dict = Depends(student_only),
    store: DocumentStore = Depends(get_store),
) -> dict:
    """Dependency - the caller's student document (404 when none is linked)."""
    return student_service.require_student_for_user(store, user)


def _owned_enrollment(store: DocumentStore, enrollment_id: str, student: dict) -> dict:
    enrollment = EnrollmentService(store).get_enrollment(enrollment_id)
    if enrollment.get("studentId") != student["id"]:
        raise ForbiddenError("Access denied")
    return enrollment


@public_router.get("/drives/public")
async def public_drives(store: DocumentStore = Depends(get_store)):
    return {"success": True, "data": drive_service.list_public_drives(store)}


@router.get("/profile")
async def get_profile(student: dict = Depends(get_current_student)):
    return {"success": True, "data": student}


@router.put("/profile")
async def update_profile(
    data: StudentProfileUpdate,
    student: dict = Depends(get_current_student),
    store: DocumentStore = Depends(get_store),
):
    student_service.update_own_profile(store, student["id"], data.to_document())
    return {"success": True, "message": "Profile updated successfully"}


@router.get("/drives")
async def list_drives(
    user: dict = Depends(student_only),
    store: DocumentStore = Depends(get_store),
):
    """Active drives; eligibility is computed when the caller has a profile."""
    student = student_service.find_student_for_user(store, user["uid"], user.get("email"))
    return {"success": True, "data": drive_service.list_drives_for_student(store, student)}


@router.get("/eligible-drives")
async def eligible_drives(
    student: dict = Depends(get_current_student),
    store: DocumentStore = Depends(get_store),
):
    result = get_eligible_drives_for_student(store, student["id"])
    enrollments = EnrollmentService(store).get_student_enrollments(student["id"])
    enrolled_drive_ids = {e["driveId"] for e in enrollments["enrollments"]}
    result["eligibleDrives"] = [
        {**drive, "isEnrolled": drive["id"] in enrolled_drive_ids}
        for drive in result["eligibleDrives"]
    ]
    return {"success": True, "data": result}


@router.post("/enroll", status_code=201)
async def enroll(
    data: StudentEnrollRequest,
    user: dict = Depends(student_only),
    store: DocumentStore = Depends(get_store),
):
    student = student_service.find_student_for_user(store, user["uid"], user.get("email"))
    if student is None:
        raise NotFoundError("Please complete your profile before enrolling", error="Profile not found")
    return EnrollmentService(store).enroll(student["id"], data.drive_id, user["uid"])


@router.get("/enrollments")
async def my_enrollments(
    student: dict = Depends(get_current_student),
    store: DocumentStore = Depends(get_store),
):
    return {"success": True, "data": EnrollmentService(store).get_student_enrollments(student["id"])}


@router.get("/enrollments/{enrollment_id}")
async def my_enrollment(
    enrollment_id: str,
    student: dict = Depends(get_current_student),
    store: DocumentStore = Depends(get_store),
):
    return {"success": True, "data": _owned_enrollment(store, enrollment_id, student)}


@router.delete("/enrollments/{enrollment_id}")
async def withdraw(
    enrollment_id: str,
    data: Optional[WithdrawRequest] = None,
    user: dict = Depends(student_only),
    student: dict = Depends(get_current_student),
    store: DocumentStore = Depends(get_store),
):
    _owned_enrollment(store, enrollment_id, student)
    return EnrollmentService(store).withdraw(enrollment_id, user["uid"], data.reason if data else "")


@router.get("/dashboard")
async def dashboard(
    user: dict = Depends(student_only),
    store: DocumentStore = Depends(get_store),
):
    return {"success": True, "data": student_service.get_student_dashboard(store, user)}
