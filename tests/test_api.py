"""
HTTP surface: routing, role checks, error bodies and the main workflows
driven through the API.
"""

from placement.core.auth import create_access_token
from placement.core.config import get_settings
from placement.db.mongodb import COLLECTIONS
from placement.main import app
from placement.services.ats_client import ATSClient, get_ats_client

RESUME_TEXT = "Asha Rao - Python developer with internships in data engineering and backend APIs."


def _enroll(client, student_id, drive_id):
    return client.post("/api/faculty/enrollments", json={"studentId": student_id, "driveId": drive_id})


# ------------------------------------------------------------
# service endpoints
# ------------------------------------------------------------

def test_health(client):
    response = client.get("/api/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["storage"] == "connected"


def test_docs_summary(client):
    assert "faculty" in client.get("/api/docs").json()["endpoints"]


def test_unknown_route_has_hint(client):
    response = client.get("/api/nowhere")

    assert response.status_code == 404
    assert response.json() == {
        "error": "Not found",
        "message": "Route GET /api/nowhere not found",
        "hint": "Visit /api/docs for available endpoints",
    }


# ------------------------------------------------------------
# faculty
# ------------------------------------------------------------

def test_faculty_dashboard(client, seeded):
    response = client.get("/api/faculty/dashboard")

    assert response.status_code == 200
    assert response.json()["data"]["overview"]["totalStudents"] == 2


def test_create_student_and_duplicate(client):
    payload = {"rollNumber": "22 ME 004", "name": "Ravi Kumar", "branch": "ME", "cgpa": 7.2}

    created = client.post("/api/faculty/students", json=payload)
    duplicate = client.post("/api/faculty/students", json=payload)

    assert created.status_code == 201
    assert created.json()["studentId"] == "22_ME_004"
    assert duplicate.status_code == 409
    assert duplicate.json()["message"] == "Student with this roll number already exists"


def test_list_students_with_filters(client, seeded):
    response = client.get("/api/faculty/students", params={"minCGPA": 7})

    assert response.json()["total"] == 1
    assert response.json()["data"][0]["id"] == "21CS001"


def test_create_drive_counts_eligible_students(client, store, seeded):
    response = client.post("/api/faculty/drives", json={
        "companyName": "Initech", "ctc": 9, "minCGPA": 5, "eligibleBranches": ["CS"],
    })

    assert response.status_code == 201
    drive = store.get(COLLECTIONS["drives"], response.json()["driveId"])
    assert drive["eligibleStudentCount"] == 2
    assert drive["status"] == "Upcoming"


def test_get_drive_includes_analytics(client, seeded):
    response = client.get(f"/api/faculty/drives/{seeded['drive']}")

    assert response.status_code == 200
    assert response.json()["data"]["analytics"]["enrollmentStats"]["total"] == 0


def test_enrollment_workflow(client, store, seeded):
    created = _enroll(client, seeded["student"], seeded["drive"])
    assert created.status_code == 201
    enrollment_id = created.json()["enrollmentId"]

    assert _enroll(client, seeded["student"], seeded["drive"]).status_code == 409
    closed = _enroll(client, seeded["student"], seeded["closed_drive"])
    assert closed.status_code == 409
    assert closed.json()["error"] == "Enrollment failed"

    selected = client.put(f"/api/faculty/enrollments/{enrollment_id}/status", json={"status": "selected"})
    assert selected.status_code == 200
    assert selected.json()["newStatus"] == "selected"

    backwards = client.put(f"/api/faculty/enrollments/{enrollment_id}/status", json={"status": "enrolled"})
    assert backwards.status_code == 400
    assert backwards.json()["error"] == "Invalid status"

    assert store.get(COLLECTIONS["drives"], seeded["drive"])["placedStudents"] == 1
    assert store.get(COLLECTIONS["students"], seeded["student"])["isPlaced"] is True


def test_hard_delete_refused_after_selection(client, store, seeded):
    enrollment_id = _enroll(client, seeded["student"], seeded["drive"]).json()["enrollmentId"]
    client.put(f"/api/faculty/enrollments/{enrollment_id}/status", json={"status": "selected"})

    response = client.delete(f"/api/faculty/enrollments/{enrollment_id}", params={"hard": "true"})

    assert response.status_code == 409
    assert response.json()["error"] == "Cannot delete"
    assert store.get(COLLECTIONS["enrollments"], enrollment_id)["status"] == "selected"


def test_trends_window_is_bounded(client, seeded):
    assert client.get("/api/faculty/analytics/trends", params={"months": 24}).status_code == 200
    assert client.get("/api/faculty/analytics/trends", params={"months": 30000}).status_code == 400
    assert client.get("/api/faculty/analytics/trends", params={"months": 0}).status_code == 400


def test_ineligible_enrollment_lists_reasons(client, seeded):
    response = _enroll(client, seeded["weak_student"], seeded["drive"])

    assert response.status_code == 400
    assert response.json()["error"] == "Not eligible"
    assert response.json()["reasons"]


def test_list_enrollments_rejects_unknown_status(client, seeded):
    response = client.get("/api/faculty/enrollments", params={"status": "hired"})
    assert response.status_code == 400


def test_enrollment_statuses(client):
    data = client.get("/api/faculty/enrollment-statuses").json()["data"]
    assert data["OFFER_ACCEPTED"] == "offer_accepted"


def test_request_validation_error_shape(client):
    response = client.post("/api/faculty/enrollments", json={})

    assert response.status_code == 400
    assert response.json()["error"] == "Validation failed"
    assert "studentId" in response.json()["message"]


def test_export_rejects_unknown_type(client, seeded):
    assert client.get("/api/faculty/export", params={"type": "grades"}).status_code == 400


def test_student_role_cannot_use_faculty_routes(client, student_headers):
    response = client.get("/api/faculty/dashboard", headers=student_headers)

    assert response.status_code == 403
    assert response.json()["message"] == "Access denied. Required role: faculty or admin"


# ------------------------------------------------------------
# students
# ------------------------------------------------------------

def test_public_drives_need_no_role(client, seeded):
    response = client.get("/api/student/drives/public")

    assert response.status_code == 200
    assert [d["companyName"] for d in response.json()["data"]] == ["Acme Systems"]


def test_profile_missing_when_not_linked(client, seeded, student_headers):
    response = client.get("/api/student/profile", headers=student_headers)

    assert response.status_code == 404
    assert response.json()["error"] == "Profile not found"


def test_profile_and_update(client, store, linked_student, student_headers):
    assert client.get("/api/student/profile", headers=student_headers).json()["data"]["id"] == linked_student

    response = client.put("/api/student/profile", headers=student_headers, json={"phone": "98765"})

    assert response.status_code == 200
    assert store.get(COLLECTIONS["students"], linked_student)["phone"] == "98765"


def test_student_enroll_and_withdraw(client, store, seeded, linked_student, student_headers):
    enrolled = client.post("/api/student/enroll", headers=student_headers, json={"driveId": seeded["drive"]})
    assert enrolled.status_code == 201
    enrollment_id = enrolled.json()["enrollmentId"]

    mine = client.get("/api/student/enrollments", headers=student_headers).json()["data"]
    assert mine["total"] == 1

    drives = client.get("/api/student/drives", headers=student_headers).json()["data"]
    assert drives[0]["isEnrolled"] is True

    withdrawn = client.delete(f"/api/student/enrollments/{enrollment_id}", headers=student_headers)
    assert withdrawn.status_code == 200
    assert store.get(COLLECTIONS["enrollments"], enrollment_id)["status"] == "withdrawn"
    assert store.get(COLLECTIONS["drives"], seeded["drive"])["enrolledStudents"] == 0


def test_student_cannot_touch_other_enrollments(client, store, seeded, linked_student, student_headers):
    other = store.insert(COLLECTIONS["enrollments"], {
        "studentId": seeded["weak_student"], "driveId": seeded["drive"], "status": "enrolled",
    })

    assert client.get(f"/api/student/enrollments/{other}", headers=student_headers).status_code == 403
    assert client.delete(f"/api/student/enrollments/{other}", headers=student_headers).status_code == 403


def test_student_dashboard_without_profile(client, seeded, student_headers):
    data = client.get("/api/student/dashboard", headers=student_headers).json()["data"]
    assert data["hasProfile"] is False


# ------------------------------------------------------------
# resume
# ------------------------------------------------------------

def test_templates(client):
    assert len(client.get("/api/templates").json()["templates"]) == 2


def test_generate_resume(client):
    response = client.post("/api/generate-resume", json={"studentData": {"name": "Asha Rao", "cgpa": 8.1}})

    assert response.status_code == 200
    assert response.json()["resumeData"]["contact"]["fullName"] == "Asha Rao"
    assert response.json()["template"] == "ats-classic"


def test_generate_resume_requires_student_data(client):
    response = client.post("/api/generate-resume", json={})

    assert response.status_code == 400
    assert response.json()["error"] == "Student data is required"


def test_ats_score_without_api_key(client):
    app.dependency_overrides[get_ats_client] = lambda: ATSClient(api_key="")

    response = client.post("/api/ats-score", json={"resumeText": RESUME_TEXT})

    assert response.status_code == 500
    assert response.json()["error"] == "API key not configured"


def test_ats_score_returns_parsed_result(client, monkeypatch):
    ats = ATSClient(api_key="k")
    monkeypatch.setattr(ats, "_call_api", lambda *args, **kwargs: "ATS SCORE: 81\nGRADE: B+")
    app.dependency_overrides[get_ats_client] = lambda: ats

    response = client.post("/api/ats-score", json={"resumeText": RESUME_TEXT})

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "score": 81,
        "grade": "B+",
        "fullAnalysis": "ATS SCORE: 81\nGRADE: B+",
    }


def test_ats_upload_rejects_unsupported_file(client):
    app.dependency_overrides[get_ats_client] = lambda: ATSClient(api_key="k")

    response = client.post("/api/ats-score/upload", files={"file": ("photo.png", b"data", "image/png")})

    assert response.status_code == 400


# ------------------------------------------------------------
# authentication without the development bypass
# ------------------------------------------------------------

def test_missing_token_is_rejected(client, monkeypatch):
    monkeypatch.setattr(get_settings(), "dev_auth_bypass", False)

    response = client.get("/api/faculty/dashboard")

    assert response.status_code == 401
    assert response.headers["WWW-Authenticate"] == "Bearer"


def test_invalid_token_is_rejected(client, monkeypatch):
    monkeypatch.setattr(get_settings(), "dev_auth_bypass", False)

    response = client.get("/api/faculty/dashboard", headers={"Authorization": "Bearer not-a-jwt"})

    assert response.status_code == 401
    assert response.json()["message"] == "Invalid or expired token"


def test_token_role_comes_from_users_collection(client, store, monkeypatch):
    monkeypatch.setattr(get_settings(), "dev_auth_bypass", False)
    store.insert(COLLECTIONS["users"], {"email": "prof@example.edu", "role": "faculty"}, doc_id="prof-1")
    store.insert(COLLECTIONS["users"], {"email": "no-role@example.edu"}, doc_id="user-2")

    faculty = {"Authorization": f"Bearer {create_access_token({'sub': 'prof-1'})}"}
    roleless = {"Authorization": f"Bearer {create_access_token({'sub': 'user-2'})}"}

    assert client.get("/api/faculty/dashboard", headers=faculty).status_code == 200
    denied = client.get("/api/faculty/dashboard", headers=roleless)
    assert denied.status_code == 403
    assert denied.json()["message"] == "User role not found"
