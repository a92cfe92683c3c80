"""
Saved Internship Routes

POST /saved - Save (bookmark) an internship
DELETE /saved/{internship_id} - Remove bookmark
GET /saved - My saved internships
GET /saved/{internship_id} - Is this internship saved?
"""

from fastapi import APIRouter, Depends, Query

from internmatch.api.deps import get_saved_service
from internmatch.core.auth import get_current_student
from internmatch.schemas.schemas import (
    SavedInternshipResponse,
    SavedListResponse,
    SavedStatusResponse,
    SaveInternshipRequest,
)
from internmatch.services.saved_service import SavedInternshipService

router = APIRouter(prefix="/saved", tags=["Saved Internships"])


@router.post("", response_model=SavedInternshipResponse, status_code=201)
async def save_internship(
    data: SaveInternshipRequest,
    student: dict = Depends(get_current_student),
    service: SavedInternshipService = Depends(get_saved_service)
):
    """Idempotent: saving twice returns the existing bookmark."""
    return service.save(student["student_id"], data.internship_id)


@router.delete("/{internship_id}", response_model=SavedStatusResponse)
async def unsave_internship(
    internship_id: str,
    student: dict = Depends(get_current_student),
    service: SavedInternshipService = Depends(get_saved_service)
):
    return service.unsave(student["student_id"], internship_id)


@router.get("", response_model=SavedListResponse)
async def list_saved(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    student: dict = Depends(get_current_student),
    service: SavedInternshipService = Depends(get_saved_service)
):
    return service.list(student["student_id"], page, limit)


@router.get("/{internship_id}", response_model=SavedStatusResponse)
async def is_saved(
    internship_id: str,
    student: dict = Depends(get_current_student),
    service: SavedInternshipService = Depends(get_saved_service)
):
    return service.is_saved(student["student_id"], internship_id)
