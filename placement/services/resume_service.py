"""
Resume Service - turn a student profile into template-ready resume data.

PDF rendering happens on the client; the API only prepares the data.
"""

from typing import Any, Dict, List, Optional

from placement.core.errors import ValidationError

TEMPLATES = [
    {
        "id": "ats-classic",
        "name": "ATS Classic",
        "description": "Simple, single-column, black & white ATS-friendly format",
        "recommended": True,
    },
    {
        "id": "modern-professional",
        "name": "Modern Professional",
        "description": "Clean professional template with accent colors",
        "recommended": False,
    },
]


def _as_list(value: Any) -> List:
    return value if isinstance(value, list) else []


def _skills(value: Any) -> List[str]:
    if isinstance(value, list):
        return value
    if value:
        return [s.strip() for s in str(value).split(",") if s.strip()]
    return []


def transform_student_data_to_resume(student_data: Dict[str, Any], drive_data: Optional[Dict[str, Any]] = None) -> dict:
    """Map a student record (and optional target drive) onto the resume layout."""
    if not student_data:
        raise ValidationError("Please provide studentData in the request body", error="Student data is required")

    department = student_data.get("department") or "Computer Science"
    role = (drive_data or {}).get("role") or "software development"
    summary = student_data.get("summary") or student_data.get("about") or (
        f"{department} student with {student_data.get('cgpa') or 'strong'} academic record, "
        f"seeking opportunities in {role}."
    )

    education = _as_list(student_data.get("education"))
    if not education:
        cgpa = student_data.get("cgpa")
        education = [{
            "degree": student_data.get("degree") or "Bachelor of Technology",
            "field": department,
            "institution": student_data.get("college") or "University",
            "location": student_data.get("location") or "",
            "startYear": student_data.get("startYear") or "2020",
            "endYear": student_data.get("graduationYear") or "2024",
            "gpa": f"{cgpa}/10.0" if cgpa else "",
        }]

    resume = {
        "contact": {
            "fullName": student_data.get("name") or "",
            "email": student_data.get("email") or "",
            "phone": student_data.get("phone") or "",
            "location": student_data.get("location") or "",
            "linkedin": student_data.get("linkedin") or student_data.get("linkedIn") or "",
            "github": student_data.get("github") or "",
            "website": student_data.get("portfolio") or "",
        },
        "summary": summary,
        "education": education,
        "experience": _as_list(student_data.get("experience")),
        "projects": _as_list(student_data.get("projects")),
        "skills": _skills(student_data.get("skills")),
        "certifications": _as_list(student_data.get("certifications")),
    }

    # Drive-specific customization
    if drive_data:
        resume.update({
            "targetCompany": drive_data.get("companyName"),
            "targetRole": drive_data.get("role"),
            "requiredSkills": drive_data.get("requiredSkills"),
        })
    return resume


def student_display_name(student_data: Dict[str, Any]) -> Optional[str]:
    return student_data.get("name") or (student_data.get("contact") or {}).get("fullName")
