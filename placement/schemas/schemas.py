"""
Pydantic Schemas - Request/Response Validation

All API request and response schemas in one file for simplicity.
Wire format is camelCase to match the stored documents; Python attributes
are snake_case.
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel


# ============================================================
# ENUMS
# ============================================================

class UserRole(str, Enum):
    student = "student"
    faculty = "faculty"
    admin = "admin"


class DriveStatus(str, Enum):
    upcoming = "Upcoming"
    ongoing = "Ongoing"
    closed = "Closed"
    results_published = "Results Published"


ACTIVE_DRIVE_STATUSES = [DriveStatus.upcoming.value, DriveStatus.ongoing.value]
CLOSED_DRIVE_STATUSES = [DriveStatus.closed.value, DriveStatus.results_published.value]


class EnrollmentStatus(str, Enum):
    enrolled = "enrolled"
    shortlisted = "shortlisted"
    round_1_cleared = "round_1_cleared"
    round_2_cleared = "round_2_cleared"
    round_3_cleared = "round_3_cleared"
    final_round = "final_round"
    selected = "selected"
    offer_received = "offer_received"
    offer_accepted = "offer_accepted"
    joined = "joined"
    rejected = "rejected"
    withdrawn = "withdrawn"


class ExportType(str, Enum):
    all = "all"
    students = "students"
    drives = "drives"
    enrollments = "enrollments"


Number = Union[float, str]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_document(self) -> Dict[str, Any]:
        """Dump with camelCase keys, dropping fields the caller did not send."""
        return self.model_dump(by_alias=True, exclude_unset=True)


# ============================================================
# STUDENT SCHEMAS
# ============================================================

class StudentCreate(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    roll_number: Optional[str] = None
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    user_id: Optional[str] = None
    branch: Optional[str] = None
    year: Optional[Union[int, str]] = None
    section: Optional[str] = None
    cgpa: Optional[Number] = None
    phone: Optional[str] = None
    active_backlogs: Optional[int] = Field(None, ge=0)
    percentage10th: Optional[Number] = Field(None, alias="percentage10th")
    percentage12th: Optional[Number] = Field(None, alias="percentage12th")
    skills: Optional[Union[str, List[str]]] = None
    projects: Optional[Any] = None
    certifications: Optional[Any] = None


class StudentUpdate(StudentCreate):
    pass


class StudentProfileUpdate(CamelModel):
    """Fields a student may edit on their own profile."""
    name: Optional[str] = None
    phone: Optional[str] = None
    skills: Optional[Union[str, List[str]]] = None
    projects: Optional[Any] = None
    internships: Optional[Any] = None
    certifications: Optional[Any] = None
    achievements: Optional[Any] = None
    linked_in: Optional[str] = Field(None, alias="linkedIn")
    github: Optional[str] = None
    portfolio: Optional[str] = None
    resume: Optional[str] = None


class BulkUploadRequest(BaseModel):
    students: List[Dict[str, Any]]


# ============================================================
# DRIVE SCHEMAS
# ============================================================

class DriveCreate(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    company_name: Optional[str] = None
    role: Optional[str] = None
    ctc: Optional[Number] = None
    drive_date: Optional[str] = None
    registration_deadline: Optional[str] = None
    min_cgpa: Optional[Number] = Field(None, alias="minCGPA")
    eligible_branches: Optional[List[str]] = None
    eligible_years: Optional[List[Union[int, str]]] = None
    no_backlogs_required: Optional[bool] = None
    no_already_placed: Optional[bool] = None
    min10th_percentage: Optional[Number] = Field(None, alias="min10thPercentage")
    min12th_percentage: Optional[Number] = Field(None, alias="min12thPercentage")
    required_skills: Optional[List[str]] = None
    rounds: Optional[List[str]] = None
    status: Optional[DriveStatus] = None

    def to_document(self) -> Dict[str, Any]:
        doc = super().to_document()
        if isinstance(doc.get("status"), DriveStatus):
            doc["status"] = doc["status"].value
        return doc


class DriveUpdate(DriveCreate):
    pass


# ============================================================
# ENROLLMENT SCHEMAS
# ============================================================

class EnrollmentCreate(CamelModel):
    student_id: str
    drive_id: str


class StudentEnrollRequest(CamelModel):
    drive_id: str


class StatusUpdate(BaseModel):
    status: str
    remarks: str = ""


class RoundUpdate(CamelModel):
    round_number: int = Field(..., ge=1)
    cleared: bool


class BulkStatusUpdate(CamelModel):
    enrollment_ids: List[str]
    status: str
    remarks: str = ""


class WithdrawRequest(BaseModel):
    reason: str = ""


# ============================================================
# RESUME SCHEMAS
# ============================================================

class ResumeRequest(CamelModel):
    student_data: Optional[Dict[str, Any]] = None
    drive_data: Optional[Dict[str, Any]] = None
    template: str = "ats-classic"


class ATSScoreRequest(CamelModel):
    resume_text: Optional[str] = None


class ATSScoreResponse(CamelModel):
    success: bool = True
    score: int
    grade: str
    full_analysis: str


# ============================================================
# GENERIC SCHEMAS
# ============================================================

class MessageResponse(BaseModel):
    message: str
    success: bool = True


class ErrorResponse(BaseModel):
    error: str
    message: str
