"""
Student Routes

POST /students/profile - Create student profile
GET /students/profile - Get own profile
PUT /students/profile - Update profile
GET /students/profile/completeness - Which fields still block applying
"""

from fastapi import APIRouter, Depends

from internmatch.api.deps import get_profile_service
from internmatch.core.auth import get_current_student, get_current_user
from internmatch.schemas.schemas import (
    ProfileCompletenessResponse,
    StudentProfileCreate,
    StudentProfileResponse,
    StudentProfileUpdate,
)
from internmatch.services.profile_service import ProfileService

router = APIRouter(prefix="/students", tags=["Students"])


@router.post("/profile", response_model=StudentProfileResponse, status_code=201)
async def create_profile(
    data: StudentProfileCreate,
    user: dict = Depends(get_current_user),
    service: ProfileService = Depends(get_profile_service)
):
    """Create student profile for the signed-in Supabase user."""
    return service.create_student(user, data.model_dump(mode="json"))


@router.get("/profile", response_model=StudentProfileResponse)
async def get_profile(
    student: dict = Depends(get_current_student),
    service: ProfileService = Depends(get_profile_service)
):
    return service.get_student(student["user_id"])


@router.put("/profile", response_model=StudentProfileResponse)
async def update_profile(
    data: StudentProfileUpdate,
    student: dict = Depends(get_current_student),
    service: ProfileService = Depends(get_profile_service)
):
    """Update student profile. Only provided fields are updated."""
    return service.update_student(student["user_id"], data.model_dump(mode="json", exclude_none=True))


@router.get("/profile/completeness", response_model=ProfileCompletenessResponse)
async def profile_completeness(
    student: dict = Depends(get_current_student),
    service: ProfileService = Depends(get_profile_service)
):
    """
    Profile checklist required before applying:
    full_name, bio (50+ chars), university, degree, graduation_year,
    location, skills, phone
    """
    return service.student_completeness(student["user_id"])
