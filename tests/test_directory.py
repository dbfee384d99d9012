"""
Student and drive directory services.
"""

import pytest

from conftest import make_drive, make_student
from placement.core.errors import ConflictError, NotFoundError, ValidationError
from placement.db.mongodb import COLLECTIONS
from placement.services import drive_service, student_service
from placement.services.enrollment_service import EnrollmentService


# ------------------------------------------------------------
# students
# ------------------------------------------------------------

def test_roll_number_normalization():
    assert student_service.normalize_roll_number(" 21 CS  001 ") == "21_CS_001"


def test_create_student_uses_roll_number_as_id(store):
    student_id = student_service.create_student(
        store, make_student(rollNumber="21 CS 010", isPlaced=True, placedCompany="Fake"), "faculty-1"
    )

    student = store.get(COLLECTIONS["students"], student_id)
    assert student_id == "21_CS_010"
    assert student["isPlaced"] is False
    assert "placedCompany" not in student
    assert student["createdBy"] == "faculty-1"


def test_create_student_validation_and_duplicates(store):
    with pytest.raises(ValidationError, match="Roll number and name are required"):
        student_service.create_student(store, {"name": "No Roll"}, "faculty-1")

    student_service.create_student(store, make_student(), "faculty-1")
    with pytest.raises(ConflictError, match="Student with this roll number already exists"):
        student_service.create_student(store, make_student(), "faculty-1")


def test_list_students_filters(store, seeded):
    store.update(COLLECTIONS["students"], "21CS002", {"$set": {"section": "B", "year": 4}})

    def rolls(**filters):
        return sorted(s["id"] for s in student_service.list_students(store, **filters))

    assert rolls(branch="CS") == ["21CS001", "21CS002"]
    assert rolls(year="4") == ["21CS001", "21CS002"]
    assert rolls(section="b") == ["21CS002"]
    assert rolls(min_cgpa=7) == ["21CS001"]
    assert rolls(max_cgpa=7) == ["21CS002"]
    assert rolls(search="vikram") == ["21CS002"]
    assert rolls(placed=False) == ["21CS001", "21CS002"]


def test_update_student_protects_placement_fields(store, seeded):
    student_service.update_student(store, "21CS001", {"cgpa": 9.0, "isPlaced": True, "id": "x"}, "faculty-1")

    student = store.get(COLLECTIONS["students"], "21CS001")
    assert student["cgpa"] == 9.0
    assert student["isPlaced"] is False
    assert student["updatedBy"] == "faculty-1"

    with pytest.raises(NotFoundError):
        student_service.update_student(store, "missing", {"cgpa": 1}, "faculty-1")


def test_delete_student_with_enrollments_conflicts(store, seeded):
    EnrollmentService(store).enroll("21CS001", seeded["drive"], "faculty-1")

    with pytest.raises(ConflictError) as exc:
        student_service.delete_student(store, "21CS001")
    assert exc.value.error == "Cannot delete"

    student_service.delete_student(store, "21CS002")
    assert store.get(COLLECTIONS["students"], "21CS002") is None


def test_bulk_upload_tallies_and_preserves_placement(store, seeded):
    store.update(COLLECTIONS["students"], "21CS001", {"$set": {"isPlaced": True, "placedCompany": "Acme"}})

    result = student_service.bulk_upload(store, [
        {"rollNumber": "21CS001", "name": "Asha R.", "isPlaced": False},
        {"rollNumber": "21 EE 007", "name": "New Student"},
        {"name": "No roll"},
    ], "faculty-1")

    assert result["message"] == "Uploaded 2 students"
    assert result["results"] == {
        "success": 2,
        "failed": 1,
        "errors": ["Missing roll number or name for a student"],
    }
    existing = store.get(COLLECTIONS["students"], "21CS001")
    assert existing["name"] == "Asha R."
    assert existing["isPlaced"] is True
    assert existing["cgpa"] == 8.5
    assert store.get(COLLECTIONS["students"], "21_EE_007")["isPlaced"] is False


def test_bulk_upload_requires_rows(store):
    with pytest.raises(ValidationError):
        student_service.bulk_upload(store, [], "faculty-1")


def test_find_student_for_user_falls_back_to_email(store, seeded):
    assert student_service.find_student_for_user(store, "uid-x", "asha@example.edu")["id"] == "21CS001"
    assert student_service.find_student_for_user(store, "uid-x", "nobody@example.edu") is None


def test_update_own_profile_only_allowed_fields(store, seeded):
    student_service.update_own_profile(store, "21CS001", {"phone": "123", "cgpa": 10, "isPlaced": True})

    student = store.get(COLLECTIONS["students"], "21CS001")
    assert student["phone"] == "123"
    assert student["cgpa"] == 8.5
    assert student["isPlaced"] is False

    with pytest.raises(ValidationError):
        student_service.update_own_profile(store, "21CS001", {"cgpa": 10})


# ------------------------------------------------------------
# drives
# ------------------------------------------------------------

def test_create_drive_initialises_counters(store, seeded):
    drive_id = drive_service.create_drive(
        store, {"companyName": "Initech", "ctc": 9, "minCGPA": 7, "enrolledStudents": 50}, "faculty-1"
    )

    drive = store.get(COLLECTIONS["drives"], drive_id)
    assert drive["status"] == "Upcoming"
    assert drive["enrolledStudents"] == 0
    assert drive["placedStudents"] == 0
    assert drive["eligibleStudentCount"] == 1


def test_create_drive_requires_company_and_ctc(store):
    with pytest.raises(ValidationError, match="Company name and CTC are required"):
        drive_service.create_drive(store, {"companyName": "Initech"}, "faculty-1")


def test_update_drive_recounts_eligibility_when_criteria_change(store, seeded):
    drive_service.update_drive(store, seeded["drive"], {"minCGPA": 5, "placedStudents": 9}, "faculty-1")

    drive = store.get(COLLECTIONS["drives"], seeded["drive"])
    assert drive["eligibleStudentCount"] == 2
    assert drive["placedStudents"] == 0

    with pytest.raises(NotFoundError):
        drive_service.update_drive(store, "missing", {"role": "x"}, "faculty-1")


def test_delete_drive_with_enrollments_conflicts(store, seeded):
    EnrollmentService(store).enroll("21CS001", seeded["drive"], "faculty-1")

    with pytest.raises(ConflictError):
        drive_service.delete_drive(store, seeded["drive"])

    drive_service.delete_drive(store, seeded["closed_drive"])
    assert store.get(COLLECTIONS["drives"], seeded["closed_drive"]) is None


def test_list_drives_sorted_by_date_desc(store):
    store.insert(COLLECTIONS["drives"], make_drive(companyName="Old", driveDate="2024-01-01"))
    store.insert(COLLECTIONS["drives"], make_drive(companyName="Undated", driveDate=None))
    store.insert(COLLECTIONS["drives"], make_drive(companyName="New", driveDate="2025-09-01"))

    assert [d["companyName"] for d in drive_service.list_drives(store)] == ["New", "Old", "Undated"]


def test_public_drives_are_trimmed(store, seeded):
    drives = drive_service.list_public_drives(store)

    assert len(drives) == 1
    assert set(drives[0]) == {"id"} | set(drive_service.PUBLIC_FIELDS)


def test_drives_for_student_annotated(store, seeded):
    EnrollmentService(store).enroll("21CS001", seeded["drive"], "faculty-1")
    student = store.get(COLLECTIONS["students"], "21CS001")

    drives = drive_service.list_drives_for_student(store, student)

    assert len(drives) == 1
    assert drives[0]["isEnrolled"] is True
    assert drives[0]["eligibility"]["eligible"] is True

    anonymous = drive_service.list_drives_for_student(store, None)
    assert anonymous[0]["isEnrolled"] is False
    assert anonymous[0]["eligibility"] == {"eligible": True, "reasons": []}
