"""
Internship Routes

POST /internships - Post internship (company)
GET /internships - Browse active internships (public; students get is_saved/has_applied)
GET /internships/{id} - Internship details (counts a view)
PUT /internships/{id} - Update own internship (company)
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from internmatch.api.deps import get_internship_service
from internmatch.core.auth import get_current_company, get_optional_user
from internmatch.schemas.schemas import (
    InternshipCreate,
    InternshipListResponse,
    InternshipResponse,
    InternshipUpdate,
)
from internmatch.services.internship_service import InternshipService

router = APIRouter(prefix="/internships", tags=["Internships"])


@router.post("", response_model=InternshipResponse, status_code=201)
async def create_internship(
    data: InternshipCreate,
    company: dict = Depends(get_current_company),
    service: InternshipService = Depends(get_internship_service)
):
    """Post a new internship. Starts as draft unless status is given."""
    fields = data.model_dump()
    fields["status"] = data.status.value
    return service.create(company["company_id"], fields)


@router.get("", response_model=InternshipListResponse)
async def list_internships(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
    location: Optional[str] = None,
    skills: Optional[str] = Query(None, description="Comma-separated skill names"),
    remote: Optional[bool] = None,
    user: Optional[dict] = Depends(get_optional_user),
    service: InternshipService = Depends(get_internship_service)
):
    """
    Search active internships.

    Filters: search (title/description), location, skills (any match), remote
    """
    student_id = user.get("student_id") if user else None
    return service.search(page, limit, search, location, skills, remote, student_id)


@router.get("/{internship_id}", response_model=InternshipResponse)
async def get_internship(
    internship_id: str,
    user: Optional[dict] = Depends(get_optional_user),
    service: InternshipService = Depends(get_internship_service)
):
    return service.get(internship_id, user)


@router.put("/{internship_id}", response_model=InternshipResponse)
async def update_internship(
    internship_id: str,
    data: InternshipUpdate,
    company: dict = Depends(get_current_company),
    service: InternshipService = Depends(get_internship_service)
):
    """Update own internship. Only provided fields change; close with status=closed."""
    fields = data.model_dump(exclude_none=True)
    if "status" in fields:
        fields["status"] = fields["status"].value
    return service.update(company["company_id"], internship_id, fields)
