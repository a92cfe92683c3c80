"""
Pydantic Schemas - Request/Response Validation

All API request and response schemas in one file for simplicity.
"""

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator
from typing import Optional, List, Dict
from datetime import datetime
from enum import Enum


# ============================================================
# ENUMS
# ============================================================

class UserRole(str, Enum):
    student = "student"
    company = "company"
    admin = "admin"


class InternshipStatus(str, Enum):
    draft = "draft"
    active = "active"
    closed = "closed"


class ApplicationStatus(str, Enum):
    pending = "pending"
    reviewed = "reviewed"
    shortlisted = "shortlisted"
    accepted = "accepted"
    rejected = "rejected"
    withdrawn = "withdrawn"


class ResumeVisibility(str, Enum):
    private = "private"
    public = "public"
    restricted = "restricted"


class ScanStatus(str, Enum):
    pending = "pending"
    clean = "clean"
    rejected = "rejected"


class AccessType(str, Enum):
    view = "view"
    download = "download"


class CompanySize(str, Enum):
    tiny = "1-10"
    small = "11-50"
    medium = "51-200"
    large = "201-500"
    xlarge = "501-1000"
    enterprise = "1000+"


def _clean_string_list(values: Optional[List[str]], unique: bool = True) -> Optional[List[str]]:
    """Strip entries and drop blanks; with unique, keep first occurrences only."""
    if values is None:
        return None
    cleaned = []
    for value in values:
        value = value.strip()
        if value and not (unique and value in cleaned):
            cleaned.append(value)
    return cleaned


# ============================================================
# PROFILE SCHEMAS
# ============================================================

PHONE_PATTERN = r"^[\+]?[(]?[0-9]{1,4}[)]?[-\s\.]?[(]?[0-9]{1,4}[)]?[-\s\.]?[0-9]{1,9}$"


class StudentProfileCreate(BaseModel):
    full_name: str = Field(..., min_length=2, max_length=100)
    bio: Optional[str] = Field(None, max_length=1000)
    university: Optional[str] = None
    degree: Optional[str] = None
    graduation_year: Optional[int] = Field(None, ge=2020, le=2035)
    location: Optional[str] = None
    skills: List[str] = []
    phone: Optional[str] = Field(None, pattern=PHONE_PATTERN)
    linkedin_url: Optional[str] = Field(None, pattern=r"^https?://(www\.)?linkedin\.com/.*$")
    github_url: Optional[str] = Field(None, pattern=r"^https?://(www\.)?github\.com/.*$")

    @field_validator("skills")
    @classmethod
    def clean_skills(cls, v):
        return _clean_string_list(v)


class StudentProfileUpdate(BaseModel):
    full_name: Optional[str] = Field(None, min_length=2, max_length=100)
    bio: Optional[str] = Field(None, max_length=1000)
    university: Optional[str] = None
    degree: Optional[str] = None
    graduation_year: Optional[int] = Field(None, ge=2020, le=2035)
    location: Optional[str] = None
    skills: Optional[List[str]] = None
    phone: Optional[str] = Field(None, pattern=PHONE_PATTERN)
    linkedin_url: Optional[str] = Field(None, pattern=r"^https?://(www\.)?linkedin\.com/.*$")
    github_url: Optional[str] = Field(None, pattern=r"^https?://(www\.)?github\.com/.*$")

    @field_validator("skills")
    @classmethod
    def clean_skills(cls, v):
        return _clean_string_list(v)


class StudentProfileResponse(BaseModel):
    id: str
    user_id: str
    email: Optional[EmailStr] = None
    full_name: str
    bio: Optional[str] = None
    university: Optional[str] = None
    degree: Optional[str] = None
    graduation_year: Optional[int] = None
    location: Optional[str] = None
    skills: List[str] = []
    phone: Optional[str] = None
    linkedin_url: Optional[str] = None
    github_url: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class CompanyProfileCreate(BaseModel):
    company_name: str = Field(..., min_length=2, max_length=200)
    description: Optional[str] = Field(None, max_length=5000)
    website: Optional[str] = None
    industry: Optional[str] = None
    company_size: Optional[CompanySize] = None
    location: Optional[str] = None
    logo_url: Optional[str] = None


class CompanyProfileUpdate(BaseModel):
    company_name: Optional[str] = Field(None, min_length=2, max_length=200)
    description: Optional[str] = Field(None, max_length=5000)
    website: Optional[str] = None
    industry: Optional[str] = None
    company_size: Optional[CompanySize] = None
    location: Optional[str] = None
    logo_url: Optional[str] = None


class CompanyProfileResponse(BaseModel):
    id: str
    user_id: str
    email: Optional[EmailStr] = None
    company_name: str
    description: Optional[str] = None
    website: Optional[str] = None
    industry: Optional[str] = None
    company_size: Optional[str] = None
    location: Optional[str] = None
    logo_url: Optional[str] = None
    is_verified: bool = False
    created_at: datetime
    updated_at: datetime


class ProfileCompletenessResponse(BaseModel):
    is_complete: bool
    missing_fields: List[str] = []


# ============================================================
# INTERNSHIP SCHEMAS
# ============================================================

class InternshipCreate(BaseModel):
    title: str = Field(..., min_length=5, max_length=200)
    description: str = Field(..., min_length=100, max_length=10000)
    requirements: List[str] = Field(..., min_length=1)
    responsibilities: List[str] = Field(..., min_length=1)
    location: str = Field(..., min_length=1)
    is_remote: bool = False
    stipend_min: float = Field(..., ge=0)
    stipend_max: float = Field(..., ge=0)
    duration_months: int = Field(..., ge=1, le=24)
    skills_required: List[str] = Field(..., min_length=1)
    application_deadline: datetime
    positions_available: int = Field(1, ge=1)
    status: InternshipStatus = InternshipStatus.draft

    @field_validator("requirements", "responsibilities", "skills_required")
    @classmethod
    def non_blank_entries(cls, v, info):
        cleaned = _clean_string_list(v, unique=info.field_name == "skills_required")
        if not cleaned:
            raise ValueError("At least one non-empty entry must be provided")
        return cleaned

    @model_validator(mode="after")
    def check_stipend_range(self):
        if self.stipend_max < self.stipend_min:
            raise ValueError("stipend_max must be greater than or equal to stipend_min")
        return self


class InternshipUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=5, max_length=200)
    description: Optional[str] = Field(None, min_length=100, max_length=10000)
    requirements: Optional[List[str]] = Field(None, min_length=1)
    responsibilities: Optional[List[str]] = Field(None, min_length=1)
    location: Optional[str] = Field(None, min_length=1)
    is_remote: Optional[bool] = None
    stipend_min: Optional[float] = Field(None, ge=0)
    stipend_max: Optional[float] = Field(None, ge=0)
    duration_months: Optional[int] = Field(None, ge=1, le=24)
    skills_required: Optional[List[str]] = Field(None, min_length=1)
    application_deadline: Optional[datetime] = None
    positions_available: Optional[int] = Field(None, ge=1)
    status: Optional[InternshipStatus] = None

    @field_validator("requirements", "responsibilities", "skills_required")
    @classmethod
    def non_blank_entries(cls, v, info):
        if v is None:
            return v
        cleaned = _clean_string_list(v, unique=info.field_name == "skills_required")
        if not cleaned:
            raise ValueError("At least one non-empty entry must be provided")
        return cleaned


class InternshipResponse(BaseModel):
    id: str
    company_id: str
    company_name: Optional[str] = None
    title: str
    description: str
    requirements: List[str]
    responsibilities: List[str]
    location: str
    is_remote: bool
    stipend_min: float
    stipend_max: float
    duration_months: int
    skills_required: List[str]
    application_deadline: datetime
    positions_available: int
    status: str
    views_count: int = 0
    applications_count: int = 0
    created_at: datetime
    updated_at: datetime
    is_saved: Optional[bool] = None
    has_applied: Optional[bool] = None


class InternshipListResponse(BaseModel):
    internships: List[InternshipResponse]
    total: int
    page: int
    limit: int


# ============================================================
# APPLICATION SCHEMAS
# ============================================================

class ApplicationCreate(BaseModel):
    internship_id: str
    resume_id: str
    cover_letter: str = Field(..., max_length=5000)

    @field_validator("cover_letter")
    @classmethod
    def cover_letter_not_blank(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Cover letter is required")
        return v


class ApplicationStatusUpdate(BaseModel):
    status: ApplicationStatus
    feedback: Optional[str] = Field(None, max_length=5000)


class ApplicationResponse(BaseModel):
    id: str
    internship_id: str
    student_id: str
    resume_id: str
    cover_letter: str
    status: str
    applied_at: datetime
    updated_at: datetime
    reviewed_at: Optional[datetime] = None
    feedback: Optional[str] = None
    internship_title: Optional[str] = None
    student_name: Optional[str] = None


class ApplicationMutationResponse(BaseModel):
    application: ApplicationResponse
    applications_count: Optional[int] = None


class ApplicationListResponse(BaseModel):
    applications: List[ApplicationResponse]
    total: int
    page: int
    limit: int


# ============================================================
# RESUME SCHEMAS
# ============================================================

class UploadSlotResponse(BaseModel):
    upload_url: str
    upload_token: str
    file_path: str
    expires_in: int
    max_file_size: int
    allowed_types: List[str]


class ResumeConfirm(BaseModel):
    upload_token: str
    file_name: str
    file_size: int
    mime_type: str
    visibility: ResumeVisibility = ResumeVisibility.private
    is_primary: bool = False


class ResumeVisibilityUpdate(BaseModel):
    visibility: ResumeVisibility


class ResumeShareCreate(BaseModel):
    access_level: AccessType = AccessType.download
    expires_in_days: Optional[int] = Field(None, ge=1, le=365)


class ScanResult(BaseModel):
    scan_status: ScanStatus
    message: Optional[str] = None

    @field_validator("scan_status")
    @classmethod
    def final_status_only(cls, v):
        if v == ScanStatus.pending:
            raise ValueError("Scan result must be 'clean' or 'rejected'")
        return v


class ResumeResponse(BaseModel):
    id: str
    student_id: str
    file_name: str
    file_path: str
    file_size: int
    mime_type: str
    visibility: str
    is_primary: bool = False
    scan_status: str
    scan_message: Optional[str] = None
    views_count: int = 0
    downloads_count: int = 0
    uploaded_at: datetime
    updated_at: datetime
    last_viewed_at: Optional[datetime] = None
    last_downloaded_at: Optional[datetime] = None


class AccessUrlResponse(BaseModel):
    signed_url: str
    expires_in: int
    access_type: str


class ResumeViewerStats(BaseModel):
    company_id: str
    company_name: Optional[str] = None
    view_count: int = 0
    download_count: int = 0
    last_accessed: Optional[datetime] = None


class ResumeStats(BaseModel):
    resume_id: str
    file_name: str
    views_count: int = 0
    downloads_count: int = 0
    unique_company_views: int = 0
    unique_company_downloads: int = 0
    viewers: List[ResumeViewerStats] = []


class ResumeStatsResponse(BaseModel):
    resumes: List[ResumeStats]
    total_views: int
    total_downloads: int


# ============================================================
# SAVED INTERNSHIP SCHEMAS
# ============================================================

class SaveInternshipRequest(BaseModel):
    internship_id: str


class SavedInternshipResponse(BaseModel):
    id: str
    internship_id: str
    saved_at: datetime
    internship: Optional[InternshipResponse] = None


class SavedListResponse(BaseModel):
    saved: List[SavedInternshipResponse]
    total: int
    page: int
    limit: int


class SavedStatusResponse(BaseModel):
    internship_id: str
    is_saved: bool


# ============================================================
# ADMIN SCHEMAS
# ============================================================

class ReconcileRequest(BaseModel):
    internship_ids: Optional[List[str]] = None
    all_internships: bool = False


class ReconcileResponse(BaseModel):
    reconciled: Dict[str, int]


# ============================================================
# GENERIC SCHEMAS
# ============================================================

class MessageResponse(BaseModel):
    message: str
    success: bool = True


class ErrorResponse(BaseModel):
    error: str
