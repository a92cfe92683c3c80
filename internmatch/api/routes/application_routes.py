"""
Application Routes

POST /applications - Submit application (student)
PATCH /applications/{id}/withdraw - Withdraw own application (student)
PATCH /applications/{id}/status - Move application along the pipeline (company)
GET /applications/student - My applications (student)
GET /applications/company - Applicants to my internships (company)
GET /applications/{id} - One application (owning student or company)
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from internmatch.api.deps import get_application_service
from internmatch.core.auth import get_current_company, get_current_student, get_profile_user
from internmatch.schemas.schemas import (
    ApplicationCreate,
    ApplicationListResponse,
    ApplicationMutationResponse,
    ApplicationResponse,
    ApplicationStatus,
    ApplicationStatusUpdate,
)
from internmatch.services.application_service import ApplicationService

router = APIRouter(prefix="/applications", tags=["Applications"])


@router.post("", response_model=ApplicationMutationResponse, status_code=201)
async def submit_application(
    data: ApplicationCreate,
    student: dict = Depends(get_current_student),
    service: ApplicationService = Depends(get_application_service)
):
    """
    Apply to an internship.

    Requires a complete profile, an active internship before its deadline
    and a resume that passed the security scan.
    """
    application, count = service.submit(
        student["student_id"], data.internship_id, data.resume_id, data.cover_letter
    )
    return {"application": application, "applications_count": count}


@router.patch("/{application_id}/withdraw", response_model=ApplicationMutationResponse)
async def withdraw_application(
    application_id: str,
    student: dict = Depends(get_current_student),
    service: ApplicationService = Depends(get_application_service)
):
    """Withdraw a pending, reviewed or shortlisted application."""
    application, count = service.withdraw(student["student_id"], application_id)
    return {"application": application, "applications_count": count}


@router.patch("/{application_id}/status", response_model=ApplicationMutationResponse)
async def update_application_status(
    application_id: str,
    data: ApplicationStatusUpdate,
    company: dict = Depends(get_current_company),
    service: ApplicationService = Depends(get_application_service)
):
    """
    Update application status.

    Status flow: pending -> reviewed -> shortlisted -> accepted/rejected
    """
    application, count = service.update_status(
        company["company_id"], application_id, data.status.value, data.feedback
    )
    return {"application": application, "applications_count": count}


@router.get("/student", response_model=ApplicationListResponse)
async def list_my_applications(
    status: Optional[ApplicationStatus] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    student: dict = Depends(get_current_student),
    service: ApplicationService = Depends(get_application_service)
):
    return service.list_student_applications(
        student["student_id"], status.value if status else None, page, limit
    )


@router.get("/company", response_model=ApplicationListResponse)
async def list_applicants(
    internship_id: Optional[str] = None,
    status: Optional[ApplicationStatus] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    company: dict = Depends(get_current_company),
    service: ApplicationService = Depends(get_application_service)
):
    """Applicants across all my internships, or one internship with ?internship_id=."""
    return service.list_company_applications(
        company["company_id"], internship_id, status.value if status else None, page, limit
    )


@router.get("/{application_id}", response_model=ApplicationResponse)
async def get_application(
    application_id: str,
    user: dict = Depends(get_profile_user),
    service: ApplicationService = Depends(get_application_service)
):
    return service.get_application(user, application_id)
