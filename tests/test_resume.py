"""
Resume data preparation, ATS response parsing and file text extraction.
"""

import httpx
import pytest
from openai import APIConnectionError

from placement.core.errors import InternalError, UpstreamError, ValidationError
from placement.services.ats_client import MAX_RESUME_CHARS, ATSClient, parse_ats_response
from placement.services.resume_service import TEMPLATES, transform_student_data_to_resume
from placement.utils.file_upload import extract_text, get_file_extension

RESUME_TEXT = "Asha Rao - Python developer with internships in data engineering and backend APIs."


# ------------------------------------------------------------
# resume data
# ------------------------------------------------------------

def test_transform_fills_defaults():
    resume = transform_student_data_to_resume({"name": "Asha Rao", "cgpa": 8.7, "skills": "Python, SQL ,"})

    assert resume["contact"]["fullName"] == "Asha Rao"
    assert resume["summary"] == (
        "Computer Science student with 8.7 academic record, seeking opportunities in software development."
    )
    assert resume["education"] == [{
        "degree": "Bachelor of Technology",
        "field": "Computer Science",
        "institution": "University",
        "location": "",
        "startYear": "2020",
        "endYear": "2024",
        "gpa": "8.7/10.0",
    }]
    assert resume["skills"] == ["Python", "SQL"]
    assert resume["experience"] == []
    assert "targetCompany" not in resume


def test_transform_with_drive_targets_role():
    resume = transform_student_data_to_resume(
        {"name": "Asha Rao", "summary": "Backend engineer.", "skills": ["Go"]},
        {"companyName": "Acme", "role": "SRE", "requiredSkills": ["Linux"]},
    )

    assert resume["summary"] == "Backend engineer."
    assert resume["targetCompany"] == "Acme"
    assert resume["targetRole"] == "SRE"
    assert resume["requiredSkills"] == ["Linux"]


def test_transform_requires_student_data():
    with pytest.raises(ValidationError):
        transform_student_data_to_resume({})


def test_templates_list():
    assert [t["id"] for t in TEMPLATES] == ["ats-classic", "modern-professional"]


# ------------------------------------------------------------
# ATS scoring
# ------------------------------------------------------------

def test_parse_ats_response():
    analysis = "ATS SCORE: 78\n\nGRADE: b+\n\nSTRENGTHS:\n1. Clear layout"
    assert parse_ats_response(analysis) == {"score": 78, "grade": "B+", "fullAnalysis": analysis}


def test_parse_ats_response_without_markers():
    assert parse_ats_response("No idea") == {"score": 0, "grade": "N/A", "fullAnalysis": "No idea"}


def test_score_rejects_short_text():
    with pytest.raises(ValidationError):
        ATSClient(api_key="k").score_resume("too short")


def test_score_requires_api_key():
    with pytest.raises(InternalError) as exc:
        ATSClient(api_key="").score_resume(RESUME_TEXT)
    assert exc.value.error == "API key not configured"


def test_score_truncates_and_parses(monkeypatch):
    client = ATSClient(api_key="k")
    seen = {}

    def fake_call(system_prompt, user_content, max_tokens=1000):
        seen["content"] = user_content
        return "ATS SCORE: 64\nGRADE: C"

    monkeypatch.setattr(client, "_call_api", fake_call)
    result = client.score_resume(RESUME_TEXT + "x" * 20000)

    assert result["score"] == 64
    assert result["grade"] == "C"
    assert "x" * MAX_RESUME_CHARS not in seen["content"]


def test_score_wraps_api_failures(monkeypatch):
    client = ATSClient(api_key="k")

    def failing_call(*args, **kwargs):
        raise APIConnectionError(request=httpx.Request("POST", "https://openrouter.test/chat/completions"))

    monkeypatch.setattr(client, "_call_api", failing_call)
    with pytest.raises(UpstreamError):
        client.score_resume(RESUME_TEXT)


# ------------------------------------------------------------
# file upload
# ------------------------------------------------------------

def test_extract_text_from_txt():
    assert extract_text("resume.TXT", RESUME_TEXT.encode("utf-8")) == RESUME_TEXT


def test_extract_text_rejects_unknown_extension():
    with pytest.raises(ValidationError, match="Unsupported file type '.png'"):
        extract_text("photo.png", b"data")


def test_extract_text_rejects_empty_file():
    with pytest.raises(ValidationError):
        extract_text("blank.txt", b"   ")


def test_extract_text_rejects_corrupt_docx():
    with pytest.raises(ValidationError):
        extract_text("resume.docx", b"not a zip file")


def test_file_extension():
    assert get_file_extension("Resume.Final.PDF") == ".pdf"
    assert get_file_extension("README") == ""
