"""
Eligibility checks: reasons, penalties and the store-backed queries.
"""

import pytest

from conftest import make_drive, make_student
from placement.core.errors import NotFoundError
from placement.db.mongodb import COLLECTIONS
from placement.services.eligibility_service import (
    check_student_eligibility,
    format_number,
    get_eligible_drives_for_student,
    get_eligible_students_for_drive,
    to_float,
    update_drive_eligibility_count,
)


def test_cgpa_below_minimum_scenario():
    student = {"cgpa": 6.0, "branch": "CS", "year": "4"}
    drive = {"minCGPA": 7.0, "eligibleBranches": ["CS"], "eligibleYears": ["4"]}

    result = check_student_eligibility(student, drive)

    assert result == {
        "eligible": False,
        "reasons": ["CGPA 6.00 is below minimum requirement of 7"],
        "score": 70,
    }


def test_cgpa_boundary_is_inclusive():
    result = check_student_eligibility(make_student(cgpa=7.0), make_drive(minCGPA=7.0))
    assert result["eligible"] is True
    assert result["score"] == 100


def test_cgpa_as_string_is_parsed():
    result = check_student_eligibility(make_student(cgpa="7.5"), make_drive(minCGPA="7.5"))
    assert result["eligible"] is True


@pytest.mark.parametrize("student_overrides, drive_overrides, penalty", [
    ({"branch": "ME"}, {}, 40),
    ({"year": "3"}, {}, 30),
    ({"activeBacklogs": 2}, {"noBacklogsRequired": True}, 50),
    ({"isPlaced": True}, {"noAlreadyPlaced": True}, 100),
    ({"percentage10th": 60}, {"min10thPercentage": 75}, 15),
    ({"percentage12th": 60}, {"min12thPercentage": 75}, 15),
])
def test_each_rule_applies_its_penalty(student_overrides, drive_overrides, penalty):
    result = check_student_eligibility(make_student(**student_overrides), make_drive(**drive_overrides))
    assert result["eligible"] is False
    assert len(result["reasons"]) == 1
    assert result["score"] == 100 - penalty


def test_score_is_floored_at_zero():
    student = make_student(cgpa=5, branch="ME", year="2", activeBacklogs=3, isPlaced=True)
    drive = make_drive(noBacklogsRequired=True, noAlreadyPlaced=True)

    result = check_student_eligibility(student, drive)

    assert result["score"] == 0
    assert len(result["reasons"]) == 5


def test_eligible_iff_no_reasons():
    students = [make_student(cgpa=c, branch=b) for c in (5, 7, 9) for b in ("CS", "EE")]
    drives = [make_drive(minCGPA=m, eligibleBranches=e) for m in (0, 7) for e in ([], ["CS"])]
    for student in students:
        for drive in drives:
            result = check_student_eligibility(student, drive)
            assert result["eligible"] == (len(result["reasons"]) == 0)


def test_branch_match_is_case_insensitive_substring():
    drive = make_drive(eligibleBranches=["Computer Science"])
    assert check_student_eligibility(make_student(branch="computer science"), drive)["eligible"]
    assert check_student_eligibility(make_student(branch="Computer Science and Engineering"), drive)["eligible"]


def test_missing_branch_passes_branch_check():
    result = check_student_eligibility(make_student(branch=None), make_drive())
    assert result["eligible"] is True


def test_year_matches_number_or_string():
    assert check_student_eligibility(make_student(year=4), make_drive(eligibleYears=["4"]))["eligible"]
    assert check_student_eligibility(make_student(year="4"), make_drive(eligibleYears=[4]))["eligible"]


def test_legacy_single_year_field():
    drive = make_drive(eligibleYears=None, eligibleYear=3)
    result = check_student_eligibility(make_student(year="4"), drive)
    assert result["reasons"] == ["Year 4 is not eligible (required: 3)"]


def test_empty_criteria_mean_open_drive():
    drive = {"companyName": "Open Co"}
    assert check_student_eligibility(make_student(cgpa=0, branch="XYZ"), drive) == {
        "eligible": True, "reasons": [], "score": 100,
    }


def test_number_helpers():
    assert format_number(7.0) == "7"
    assert format_number("7.5") == "7.5"
    assert to_float("8.2 CGPA") == 8.2
    assert to_float("n/a") == 0.0
    assert to_float(None) == 0.0


def test_eligible_students_for_drive(store, seeded):
    result = get_eligible_students_for_drive(store, seeded["drive"])

    assert [s["id"] for s in result["eligible"]] == ["21CS001"]
    assert [s["id"] for s in result["notEligible"]] == ["21CS002"]
    assert result["notEligible"][0]["eligibilityReasons"] == [
        "CGPA 6.00 is below minimum requirement of 7"
    ]
    assert result["stats"] == {
        "totalStudents": 2,
        "eligibleCount": 1,
        "notEligibleCount": 1,
        "eligibilityRate": "50.00",
    }


def test_eligibility_rate_without_students(store):
    drive_id = store.insert(COLLECTIONS["drives"], make_drive())
    assert get_eligible_students_for_drive(store, drive_id)["stats"]["eligibilityRate"] == "0.00"


def test_unknown_drive_raises(store):
    with pytest.raises(NotFoundError):
        get_eligible_students_for_drive(store, "missing")


def test_eligible_drives_only_considers_active_drives(store, seeded):
    result = get_eligible_drives_for_student(store, seeded["student"])

    assert [d["id"] for d in result["eligibleDrives"]] == [seeded["drive"]]
    assert result["stats"] == {"totalDrives": 1, "eligibleCount": 1}


def test_update_drive_eligibility_count(store, seeded):
    result = update_drive_eligibility_count(store, seeded["drive"])

    drive = store.get(COLLECTIONS["drives"], seeded["drive"])
    assert result["eligibleCount"] == 1
    assert drive["eligibleStudentCount"] == 1
    assert drive["eligibilityUpdatedAt"]
