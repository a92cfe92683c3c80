"""
Resume Routes

GET /resume/get-upload-url - Signed upload slot (student)
POST /resume/confirm-upload - Record an uploaded resume (student)
POST /resume/{id}/access - Signed view/download URL (owner or authorized company)
GET /resume/my-resumes - List own resumes
GET /resume/stats - Views/downloads per resume and per company
PATCH /resume/{id}/visibility - private | public | restricted
PATCH /resume/{id}/set-primary - Mark as primary resume
DELETE /resume/{id} - Delete resume (not while attached to a live application)
POST /resume/{id}/share/{company_id} - Share with a company
DELETE /resume/{id}/share/{company_id} - Revoke a share
POST /resume/{id}/scan-result - Security scanner webhook
GET /resume/formats - Supported formats
"""

import secrets
from typing import List, Optional

from fastapi import APIRouter, Depends, Header

from internmatch.api.deps import get_resume_store
from internmatch.core.auth import get_current_user
from internmatch.core.config import get_settings
from internmatch.core.errors import Forbidden, Unauthenticated
from internmatch.schemas.schemas import (
    AccessType,
    AccessUrlResponse,
    MessageResponse,
    ResumeConfirm,
    ResumeResponse,
    ResumeShareCreate,
    ResumeStatsResponse,
    ResumeVisibilityUpdate,
    ScanResult,
    UploadSlotResponse,
)
from internmatch.services.resume_store import ResumeStoreAdapter
from internmatch.utils.file_upload import get_supported_formats

router = APIRouter(prefix="/resume", tags=["Resumes"])


@router.get("/get-upload-url", response_model=UploadSlotResponse)
async def get_upload_url(
    mime_type: Optional[str] = None,
    user: dict = Depends(get_current_user),
    store: ResumeStoreAdapter = Depends(get_resume_store)
):
    """
    Step 1 of an upload: returns a signed URL the browser PUTs the file to,
    plus the token to send back to /confirm-upload within 30 minutes.
    Pass the file's mime_type to get a path with the matching extension.
    """
    return store.request_upload_slot(user["user_id"], mime_type)


@router.post("/confirm-upload", response_model=ResumeResponse, status_code=201)
async def confirm_upload(
    data: ResumeConfirm,
    user: dict = Depends(get_current_user),
    store: ResumeStoreAdapter = Depends(get_resume_store)
):
    """Step 2 of an upload. The resume stays unusable until the scan reports clean."""
    metadata = data.model_dump(mode="json", exclude={"upload_token"})
    return store.confirm_upload(user["user_id"], data.upload_token, metadata)


@router.get("/formats")
async def supported_formats():
    return get_supported_formats()


@router.get("/my-resumes", response_model=List[ResumeResponse])
async def my_resumes(
    user: dict = Depends(get_current_user),
    store: ResumeStoreAdapter = Depends(get_resume_store)
):
    return store.list_resumes(user["user_id"])


@router.get("/stats", response_model=ResumeStatsResponse)
async def resume_stats(
    user: dict = Depends(get_current_user),
    store: ResumeStoreAdapter = Depends(get_resume_store)
):
    return store.resume_stats(user["user_id"])


@router.post("/{resume_id}/access", response_model=AccessUrlResponse)
async def get_access_url(
    resume_id: str,
    access_type: AccessType = AccessType.view,
    user: dict = Depends(get_current_user),
    store: ResumeStoreAdapter = Depends(get_resume_store)
):
    """
    Signed URL for a resume.

    - Owner: 1 hour, not counted
    - Company: 5 minutes, counted and logged, clean resumes only
    """
    return store.get_access_url(resume_id, user["user_id"], access_type.value)


@router.patch("/{resume_id}/visibility", response_model=ResumeResponse)
async def update_visibility(
    resume_id: str,
    data: ResumeVisibilityUpdate,
    user: dict = Depends(get_current_user),
    store: ResumeStoreAdapter = Depends(get_resume_store)
):
    return store.update_visibility(user["user_id"], resume_id, data.visibility.value)


@router.patch("/{resume_id}/set-primary", response_model=ResumeResponse)
async def set_primary(
    resume_id: str,
    user: dict = Depends(get_current_user),
    store: ResumeStoreAdapter = Depends(get_resume_store)
):
    return store.set_primary(user["user_id"], resume_id)


@router.delete("/{resume_id}", response_model=MessageResponse)
async def delete_resume(
    resume_id: str,
    user: dict = Depends(get_current_user),
    store: ResumeStoreAdapter = Depends(get_resume_store)
):
    store.delete_resume(user["user_id"], resume_id)
    return MessageResponse(message="Resume deleted successfully")


@router.post("/{resume_id}/share/{company_id}", response_model=MessageResponse, status_code=201)
async def share_resume(
    resume_id: str,
    company_id: str,
    data: Optional[ResumeShareCreate] = None,
    user: dict = Depends(get_current_user),
    store: ResumeStoreAdapter = Depends(get_resume_store)
):
    data = data or ResumeShareCreate()
    store.share_resume(user["user_id"], resume_id, company_id,
                       data.access_level.value, data.expires_in_days)
    return MessageResponse(message="Resume shared successfully")


@router.delete("/{resume_id}/share/{company_id}", response_model=MessageResponse)
async def revoke_share(
    resume_id: str,
    company_id: str,
    user: dict = Depends(get_current_user),
    store: ResumeStoreAdapter = Depends(get_resume_store)
):
    store.revoke_share(user["user_id"], resume_id, company_id)
    return MessageResponse(message="Share revoked")


@router.post("/{resume_id}/scan-result", response_model=ResumeResponse)
async def record_scan_result(
    resume_id: str,
    data: ScanResult,
    x_scan_webhook_secret: Optional[str] = Header(None),
    store: ResumeStoreAdapter = Depends(get_resume_store)
):
    """Called by the external malware scanner, authenticated by a shared secret."""
    if not x_scan_webhook_secret:
        raise Unauthenticated("Missing webhook secret")
    if not secrets.compare_digest(x_scan_webhook_secret, get_settings().scan_webhook_secret):
        raise Forbidden("Invalid webhook secret")
    return store.record_scan_result(resume_id, data.scan_status.value, data.message)
