"""
Placement Drive Management System - Main Application

FastAPI backend with:
- MongoDB document store (in-memory store for tests and demos)
- Bearer-token verification with role-based access
- Eligibility engine, enrollment workflow and analytics
- Resume data preparation and ATS scoring

Run: uvicorn placement.main:app --reload
"""

import logging
import time

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from pymongo.errors import PyMongoError

from placement import __version__
from placement.api import api_router
from placement.core.config import get_settings
from placement.core.errors import register_exception_handlers
from placement.db.store import DocumentStore, get_store
from placement.utils.dates import now_iso

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Placement Management API",
    description="""
    Campus placement management.

    ## Features
    - **Faculty**: students, drives, enrollments, analytics and exports
    - **Students**: profile, drive discovery with eligibility, enrollment tracking
    - **Resume**: template-ready resume data and ATS scoring
    """,
    version=__version__,
    docs_url="/swagger",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Dev-Role"],
)

register_exception_handlers(app)

# Include API routes
app.include_router(api_router, prefix="/api")


if not settings.is_production:
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        logger.info(
            "%s %s -> %d (%.1f ms)",
            request.method, request.url.path, response.status_code,
            (time.perf_counter() - started) * 1000,
        )
        return response


# Startup event
@app.on_event("startup")
async def startup_event():
    """Create store indexes on startup."""
    if settings.auth_bypass_enabled:
        logger.warning("Auth bypass enabled: every request runs as the development user")
    try:
        get_store().ensure_indexes()
        logger.info("Store ready (%s)", settings.storage_backend)
    except PyMongoError as e:
        logger.error("MongoDB index initialization failed: %s", e)


@app.get("/api/health", tags=["Health"])
async def health_check(store: DocumentStore = Depends(get_store)):
    return {
        "status": "healthy",
        "service": "Placement Management API",
        "version": __version__,
        "timestamp": now_iso(),
        "storage": "connected" if store.ping() else "disconnected",
        "endpoints": {
            "faculty": "/api/faculty/*",
            "student": "/api/student/*",
            "resume": "/api/generate-resume",
        },
    }


@app.get("/api/docs", tags=["Health"])
async def api_docs():
    """Endpoint summary (interactive docs live at /swagger)."""
    return {
        "title": "Placement Management API",
        "version": __version__,
        "authentication": "Bearer token in Authorization header",
        "endpoints": {
            "faculty": "/api/faculty/* (dashboard, students, drives, enrollments, analytics)",
            "student": "/api/student/* (profile, drives, enrollments)",
            "resume": "/api/generate-resume, /api/prepare-resume, /api/templates, /api/ats-score",
        },
    }
