"""
API Routes - Combines all route modules into single router.
"""

from fastapi import APIRouter

from internmatch.api.routes.admin_routes import router as admin_router
from internmatch.api.routes.application_routes import router as application_router
from internmatch.api.routes.company_routes import router as company_router
from internmatch.api.routes.internship_routes import router as internship_router
from internmatch.api.routes.resume_routes import router as resume_router
from internmatch.api.routes.saved_routes import router as saved_router
from internmatch.api.routes.student_routes import router as student_router

# Main API router
api_router = APIRouter()

# Include all sub-routers
api_router.include_router(student_router)
api_router.include_router(company_router)
api_router.include_router(internship_router)
api_router.include_router(application_router)
api_router.include_router(resume_router)
api_router.include_router(saved_router)
api_router.include_router(admin_router)
