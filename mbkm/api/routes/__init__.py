"""
API Routes - Combines all route modules into single router.
"""

from fastapi import APIRouter

from mbkm.api.routes.auth_routes import router as auth_router
from mbkm.api.routes.job_routes import router as job_router, public_router as public_job_router
from mbkm.api.routes.apply_job_routes import router as apply_job_router
from mbkm.api.routes.company_routes import router as company_router
from mbkm.api.routes.master_routes import router as master_router
from mbkm.api.routes.article_routes import router as article_router
from mbkm.api.routes.report_routes import router as report_router
from mbkm.api.routes.activity_routes import router as activity_router
from mbkm.api.routes.evaluation_routes import router as evaluation_router
from mbkm.api.routes.konversi_routes import router as konversi_router
from mbkm.api.routes.settings_routes import router as settings_router
from mbkm.api.routes.import_routes import router as import_router
from mbkm.api.routes.user_routes import router as user_router
from mbkm.api.routes.role_routes import router as role_router
from mbkm.api.routes.dashboard_routes import router as dashboard_router

# Main API router
api_router = APIRouter()

# Include all sub-routers
api_router.include_router(auth_router)
api_router.include_router(public_job_router)
api_router.include_router(job_router)
api_router.include_router(apply_job_router)
api_router.include_router(company_router)
api_router.include_router(master_router)
api_router.include_router(article_router)
api_router.include_router(report_router)
api_router.include_router(activity_router)
api_router.include_router(evaluation_router)
api_router.include_router(konversi_router)
api_router.include_router(settings_router)
api_router.include_router(import_router)
api_router.include_router(user_router)
api_router.include_router(role_router)
api_router.include_router(dashboard_router)
