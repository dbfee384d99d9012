#!/usr/bin/env python3
"""
Seed Script

Creates a faculty user, a student user, a handful of students and drives,
then prints Bearer tokens for both users.
Usage: python scripts/seed_data.py
"""
import logging

from placement.core.auth import create_access_token
from placement.db.mongodb import COLLECTIONS
from placement.db.store import get_store
from placement.services import drive_service, student_service
from placement.services.enrollment_service import EnrollmentService

FACULTY_UID = "faculty-seed-uid"
STUDENT_UID = "student-seed-uid"

STUDENTS = [
    {"rollNumber": "21CS001", "name": "Asha Rao", "email": "asha@example.edu", "userId": STUDENT_UID,
     "branch": "CSE", "year": 4, "cgpa": 8.7, "activeBacklogs": 0, "percentage10th": 92, "percentage12th": 88},
    {"rollNumber": "21CS002", "name": "Vikram Shah", "email": "vikram@example.edu",
     "branch": "CSE", "year": 4, "cgpa": 7.2, "activeBacklogs": 1, "percentage10th": 81, "percentage12th": 76},
    {"rollNumber": "21EC014", "name": "Meera Iyer", "email": "meera@example.edu",
     "branch": "ECE", "year": 4, "cgpa": 8.1, "activeBacklogs": 0, "percentage10th": 89, "percentage12th": 85},
    {"rollNumber": "21ME020", "name": "Karan Patel", "email": "karan@example.edu",
     "branch": "ME", "year": 4, "cgpa": 6.4, "activeBacklogs": 0, "percentage10th": 74, "percentage12th": 70},
]

DRIVES = [
    {"companyName": "Acme Systems", "role": "Software Engineer", "ctc": 12, "driveDate": "2025-08-10",
     "minCGPA": 7.5, "eligibleBranches": ["CSE", "ECE"], "eligibleYears": [4], "noBacklogsRequired": True,
     "requiredSkills": ["Python", "SQL"], "rounds": ["Aptitude", "Technical", "HR"], "status": "Upcoming"},
    {"companyName": "Northwind", "role": "Graduate Engineer Trainee", "ctc": 6.5, "driveDate": "2025-07-22",
     "minCGPA": 6, "eligibleBranches": [], "status": "Ongoing"},
]


def main():
    logging.basicConfig(level=logging.INFO)
    store = get_store()
    store.ensure_indexes()

    store.set(COLLECTIONS["users"], FACULTY_UID, {"role": "faculty", "name": "Placement Officer",
                                                 "email": "tpo@example.edu"})
    store.set(COLLECTIONS["users"], STUDENT_UID, {"role": "student", "name": "Asha Rao",
                                                 "email": "asha@example.edu"})

    result = student_service.bulk_upload(store, STUDENTS, FACULTY_UID)
    print(f"Students: {result['message']}")

    drive_ids = [drive_service.create_drive(store, drive, FACULTY_UID) for drive in DRIVES]
    print(f"Drives: created {len(drive_ids)}")

    enrollment = EnrollmentService(store).enroll("21CS001", drive_ids[0], FACULTY_UID)
    print(f"Enrollment: {enrollment['enrollmentId']}")

    print("\nFaculty token:")
    print(create_access_token({"sub": FACULTY_UID, "email": "tpo@example.edu"}))
    print("\nStudent token:")
    print(create_access_token({"sub": STUDENT_UID, "email": "asha@example.edu"}))


if __name__ == "__main__":
    main()
