"""
API Routes - Combines all route modules into single router.
"""

from fastapi import APIRouter

from placement.api.routes.faculty_routes import router as faculty_router
from placement.api.routes.resume_routes import router as resume_router
from placement.api.routes.student_routes import public_router as student_public_router
from placement.api.routes.student_routes import router as student_router

# Main API router
api_router = APIRouter()

# Include all sub-routers
api_router.include_router(faculty_router)
api_router.include_router(student_public_router)
api_router.include_router(student_router)
api_router.include_router(resume_router)
