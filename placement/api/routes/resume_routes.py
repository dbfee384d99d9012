"""
Resume Routes

POST /generate-resume    - Resume data for client-side PDF rendering
POST /prepare-resume     - Same transformation, no template
GET  /templates          - Available templates
POST /ats-score          - Score resume text
POST /ats-score/upload   - Score an uploaded PDF/DOCX/TXT resume
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.concurrency import run_in_threadpool

from placement.core.auth import get_optional_user
from placement.core.errors import ValidationError
from placement.core.rate_limit import rate_limit
from placement.schemas.schemas import ATSScoreRequest, ATSScoreResponse, ResumeRequest
from placement.services.ats_client import ATSClient, get_ats_client
from placement.services.resume_service import TEMPLATES, student_display_name, transform_student_data_to_resume
from placement.utils.file_upload import extract_text_from_file

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Resume"], dependencies=[Depends(rate_limit)])


@router.post("/generate-resume")
async def generate_resume(data: ResumeRequest, user: Optional[dict] = Depends(get_optional_user)):
    if not data.student_data:
        raise ValidationError("Please provide studentData in the request body", error="Student data is required")
    name = student_display_name(data.student_data)
    if not name:
        raise ValidationError("studentData must include a name field", error="Student name is required")

    logger.info("Generating resume for %s", name)
    return {
        "success": True,
        "resumeData": transform_student_data_to_resume(data.student_data, data.drive_data),
        "template": data.template,
        "message": "Resume data prepared. Generate PDF on client side.",
    }


@router.post("/prepare-resume")
async def prepare_resume(data: ResumeRequest, user: Optional[dict] = Depends(get_optional_user)):
    return {
        "success": True,
        "resumeData": transform_student_data_to_resume(data.student_data, data.drive_data),
        "message": "Resume data prepared successfully",
    }


@router.get("/templates")
async def templates():
    return {"templates": TEMPLATES}


@router.post("/ats-score", response_model=ATSScoreResponse, response_model_by_alias=True)
async def ats_score(data: ATSScoreRequest, client: ATSClient = Depends(get_ats_client)):
    # the openai client is synchronous
    result = await run_in_threadpool(client.score_resume, data.resume_text or "")
    return ATSScoreResponse(score=result["score"], grade=result["grade"], full_analysis=result["fullAnalysis"])


@router.post("/ats-score/upload", response_model=ATSScoreResponse, response_model_by_alias=True)
async def ats_score_upload(file: UploadFile = File(...), client: ATSClient = Depends(get_ats_client)):
    """Score a resume file (PDF, DOCX or TXT, max 5MB)."""
    text, filename = await extract_text_from_file(file)
    logger.info("Scoring uploaded resume %s", filename)
    result = await run_in_threadpool(client.score_resume, text)
    return ATSScoreResponse(score=result["score"], grade=result["grade"], full_analysis=result["fullAnalysis"])
