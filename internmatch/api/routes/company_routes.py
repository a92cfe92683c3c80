"""
Company Routes

POST /companies/profile - Create company profile
GET /companies/profile - Get own profile
PUT /companies/profile - Update profile
GET /companies/internships - Own internships, any status
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from internmatch.api.deps import get_internship_service, get_profile_service
from internmatch.core.auth import get_current_company, get_current_user
from internmatch.schemas.schemas import (
    CompanyProfileCreate,
    CompanyProfileResponse,
    CompanyProfileUpdate,
    InternshipListResponse,
    InternshipStatus,
)
from internmatch.services.internship_service import InternshipService
from internmatch.services.profile_service import ProfileService

router = APIRouter(prefix="/companies", tags=["Companies"])


@router.post("/profile", response_model=CompanyProfileResponse, status_code=201)
async def create_profile(
    data: CompanyProfileCreate,
    user: dict = Depends(get_current_user),
    service: ProfileService = Depends(get_profile_service)
):
    """Create company profile. New companies start unverified."""
    return service.create_company(user, data.model_dump(mode="json"))


@router.get("/profile", response_model=CompanyProfileResponse)
async def get_profile(
    company: dict = Depends(get_current_company),
    service: ProfileService = Depends(get_profile_service)
):
    return service.get_company(company["user_id"])


@router.put("/profile", response_model=CompanyProfileResponse)
async def update_profile(
    data: CompanyProfileUpdate,
    company: dict = Depends(get_current_company),
    service: ProfileService = Depends(get_profile_service)
):
    return service.update_company(company["user_id"], data.model_dump(mode="json", exclude_none=True))


@router.get("/internships", response_model=InternshipListResponse)
async def my_internships(
    status: Optional[InternshipStatus] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    company: dict = Depends(get_current_company),
    service: InternshipService = Depends(get_internship_service)
):
    return service.list_for_company(
        company["company_id"], page, limit, status.value if status else None
    )
