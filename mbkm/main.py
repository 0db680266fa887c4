"""
MBKM Placement API - Main Application

FastAPI backend with:
- PostgreSQL for all data (plain SQL through SQLAlchemy)
- JWT authentication with role-based permissions
- Report file uploads served from /uploads

Run: uvicorn mbkm.main:app --reload
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
import os

from mbkm.api.routes import api_router
from mbkm.core.config import get_settings
from mbkm.core.errors import register_exception_handlers
from mbkm.core.logging import get_logger
from mbkm.db.postgres import test_postgres_connection

settings = get_settings()
logger = get_logger(__name__)

# Create FastAPI app
app = FastAPI(
    title="MBKM Placement API",
    description="""
    Backend for the MBKM internship program.

    ## Features
    - **Authentication**: JWT-based auth for students, companies, lecturers and staff
    - **Jobs**: Postings with a review workflow
    - **Applications**: Melamar -> Disetujui -> Aktif -> Selesai (or Ditolak)
    - **Reports**: Internship reports, activity logs and multi-role checks
    - **Evaluations**: Company, lecturer and examiner grades combined by program weights
    - **Master data**: Faculties, study programs, courses, partner companies
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# CORS middleware (allow all for development)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Include API routes
app.include_router(api_router, prefix="/api/v1")

# Uploaded report files
os.makedirs(settings.upload_dir, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=settings.upload_dir), name="uploads")


@app.on_event("startup")
async def startup_event():
    logger.info("%s starting (env=%s)", settings.app_name, settings.app_env)


@app.get("/", tags=["Health"])
async def root():
    return {"status": "healthy", "app": "MBKM Placement API"}


@app.get("/health", tags=["Health"])
async def health_check():
    """Detailed health check."""
    return {
        "status": "healthy",
        "postgres": "connected" if test_postgres_connection() else "disconnected",
    }
