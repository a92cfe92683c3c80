"""
Resume Store Adapter

Resume bytes never pass through this service:
1. request_upload_slot()  - student gets a signed upload URL + opaque token
2. browser PUTs the file straight to object storage
3. confirm_upload()       - metadata is validated and the Resume record written
4. get_access_url()       - short-lived signed URL for the owner or a company

New resumes start with scan_status=pending. An external scanner reports
back through record_scan_result(); only clean resumes can be attached to
applications or opened by companies.
"""

import hashlib
import logging
import secrets
import time
from datetime import timedelta
from typing import Dict, List, Optional

from bson import ObjectId

from internmatch.core.config import Settings, get_settings
from internmatch.core.errors import (
    Conflict,
    DependencyFailure,
    Forbidden,
    InvalidMetadata,
    NotFound,
    NotOwner,
    RateLimited,
    TokenExpired,
    Unauthenticated,
    ValidationError,
)
from internmatch.services.documents import (
    ApplicationDocuments,
    CompanyProfileDocuments,
    InternshipDocuments,
    ResumeAccessLogDocuments,
    ResumeDocuments,
    ResumeShareDocuments,
    StudentProfileDocuments,
    UploadTokenDocuments,
    serialize_doc,
    to_object_id,
)
from internmatch.services.notifier import EmailNotifier
from internmatch.services.storage_client import SupabaseStorageClient
from internmatch.utils.dates import utcnow
from internmatch.utils.file_upload import ALLOWED_MIME_TYPES, extension_for, validate_resume_metadata

logger = logging.getLogger(__name__)

VISIBILITIES = ("private", "public", "restricted")
ACCESS_TYPES = ("view", "download")


class ResumeStoreAdapter:

    def __init__(self, storage: SupabaseStorageClient,
                 notifier: Optional[EmailNotifier] = None,
                 settings: Optional[Settings] = None):
        self.storage = storage
        self.notifier = notifier
        self.settings = settings or get_settings()
        self.resumes = ResumeDocuments()
        self.tokens = UploadTokenDocuments()
        self.shares = ResumeShareDocuments()
        self.access_logs = ResumeAccessLogDocuments()
        self.students = StudentProfileDocuments()
        self.companies = CompanyProfileDocuments()
        self.internships = InternshipDocuments()
        self.applications = ApplicationDocuments()

    def _student_for(self, user_id: Optional[str]) -> dict:
        if not user_id:
            raise Unauthenticated()
        student = self.students.get_by_user(user_id)
        if not student:
            raise NotFound("Student profile not found")
        return student

    def _owned_resume(self, resume_id: str, user_id: str) -> dict:
        resume = self.resumes.get(resume_id)
        if not resume:
            raise NotFound("Resume not found")
        if resume["user_id"] != user_id:
            raise NotOwner("You do not own this resume")
        return resume

    # ============================================================
    # UPLOAD
    # ============================================================

    def request_upload_slot(self, owner_id: Optional[str], mime_type: Optional[str] = None) -> dict:
        """
        Issue a signed upload destination plus an opaque confirm token.

        The object path ends in the extension of the declared mime_type
        (.pdf when none is declared).

        Raises:
            Unauthenticated: no caller identity
            NotFound: caller has no student profile
            InvalidMetadata: declared mime_type is not accepted
            RateLimited: daily upload limit reached
        """
        student = self._student_for(owner_id)
        extension = extension_for(mime_type)

        now = utcnow()
        day_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
        if self.resumes.count_uploaded_since(owner_id, day_start) >= self.settings.upload_daily_limit:
            raise RateLimited(
                f"Daily upload limit reached ({self.settings.upload_daily_limit} resumes/day)",
                retry_after=int((day_start + timedelta(days=1) - now).total_seconds()),
            )

        file_path = f"resumes/{owner_id}/{int(time.time() * 1000)}-{secrets.token_hex(8)}.{extension}"
        upload = self.storage.issue_upload_url(file_path)

        ttl = timedelta(minutes=self.settings.upload_token_ttl_minutes)
        token = secrets.token_hex(32)
        self.tokens.store(token, owner_id, student["_id"], file_path, now + ttl)

        logger.info("Upload slot issued to %s for %s", owner_id, file_path)
        return {
            "upload_url": upload["url"],
            "upload_token": token,
            "file_path": file_path,
            "expires_in": int(ttl.total_seconds()),
            "max_file_size": self.settings.max_resume_size_bytes,
            "allowed_types": list(ALLOWED_MIME_TYPES),
        }

    def confirm_upload(self, owner_id: Optional[str], token: str, metadata: dict) -> dict:
        """
        Validate token + metadata and persist the Resume (scan_status=pending).

        On bad metadata the uploaded object is removed and the token consumed.
        """
        student = self._student_for(owner_id)

        slot = self.tokens.get(token)
        if not slot or slot["expires_at"] <= utcnow():
            raise TokenExpired()
        if slot["user_id"] != owner_id:
            raise NotOwner("Upload token belongs to another user")

        try:
            file_name = validate_resume_metadata(
                metadata.get("file_name"), metadata.get("file_size"), metadata.get("mime_type")
            )
        except InvalidMetadata:
            self.tokens.consume(token)
            self._remove_quietly([slot["file_path"]])
            raise

        visibility = metadata.get("visibility") or "private"
        if visibility not in VISIBILITIES:
            raise InvalidMetadata("Invalid visibility option")

        is_primary = bool(metadata.get("is_primary"))
        if is_primary:
            self.resumes.clear_primary(owner_id)

        resume = self.resumes.insert({
            "student_id": student["_id"],
            "user_id": owner_id,
            "file_name": file_name,
            "file_path": slot["file_path"],
            "file_size": metadata["file_size"],
            "mime_type": metadata["mime_type"],
            "visibility": visibility,
            "is_primary": is_primary,
        })
        self.tokens.consume(token)

        logger.info("Resume %s confirmed for %s (scan pending)", resume["_id"], owner_id)
        return serialize_doc(resume)

    def _remove_quietly(self, paths: List[str]) -> None:
        try:
            self.storage.remove(paths)
        except DependencyFailure:
            logger.warning("Could not remove rejected upload %s", paths)

    # ============================================================
    # ACCESS
    # ============================================================

    def _company_can_access(self, resume: dict, company: dict) -> bool:
        company_internships = self.internships.ids_for_company(company["_id"])
        via_application = self.applications.has_active_for_resume(resume["_id"], company_internships)

        visibility = resume.get("visibility", "private")
        if visibility == "public":
            return bool(company.get("is_verified")) or via_application
        if visibility == "restricted":
            return via_application or self.shares.get_active(resume["_id"], company["_id"]) is not None
        return via_application

    def get_access_url(self, resume_id: str, requester_id: Optional[str],
                       access_type: str = "view") -> dict:
        """
        Signed URL for the owner (1 h) or an authorized company (5 min).

        Company access needs a clean scan, is rate limited per resume and
        is counted and logged. The owner's own access is not counted.
        """
        if not requester_id:
            raise Unauthenticated()
        if access_type not in ACCESS_TYPES:
            raise ValidationError("access_type must be 'view' or 'download'")

        resume = self.resumes.get(resume_id)
        if not resume:
            raise NotFound("Resume not found")

        if resume["user_id"] == requester_id:
            ttl = self.settings.student_url_ttl_seconds
            url = self.storage.issue_access_url(resume["file_path"], ttl)
            return {"signed_url": url, "expires_in": ttl, "access_type": access_type}

        company = self.companies.get_by_user(requester_id)
        if not company or not self._company_can_access(resume, company):
            raise Forbidden("You do not have access to this resume")
        if resume.get("scan_status") != "clean":
            raise Forbidden("Resume has not passed the security scan")

        since = utcnow() - timedelta(hours=1)
        recent = self.access_logs.count_since(resume["_id"], company["_id"], since)
        if recent >= self.settings.company_access_hourly_limit:
            raise RateLimited("Too many access attempts. Please try again later.")

        ttl = self.settings.company_url_ttl_seconds
        url = self.storage.issue_access_url(resume["file_path"], ttl)

        self.access_logs.insert(
            resume["_id"], company["_id"], requester_id, access_type,
            hashlib.sha256(url.encode()).hexdigest()
        )
        self.resumes.record_access(resume["_id"], access_type)
        logger.info("Company %s opened resume %s (%s)", company["_id"], resume["_id"], access_type)
        return {"signed_url": url, "expires_in": ttl, "access_type": access_type}

    # ============================================================
    # MANAGEMENT
    # ============================================================

    def list_resumes(self, owner_id: str) -> List[dict]:
        return [serialize_doc(r) for r in self.resumes.list_by_user(owner_id)]

    def update_visibility(self, owner_id: str, resume_id: str, visibility: str) -> dict:
        if visibility not in VISIBILITIES:
            raise ValidationError("Invalid visibility option")
        resume = self._owned_resume(resume_id, owner_id)
        return serialize_doc(self.resumes.update(resume["_id"], {"visibility": visibility}))

    def set_primary(self, owner_id: str, resume_id: str) -> dict:
        resume = self._owned_resume(resume_id, owner_id)
        self.resumes.clear_primary(owner_id)
        return serialize_doc(self.resumes.update(resume["_id"], {"is_primary": True}))

    def delete_resume(self, owner_id: str, resume_id: str) -> None:
        """Remove the object, its shares, logs and metadata."""
        resume = self._owned_resume(resume_id, owner_id)
        if self.applications.has_active_for_resume(resume["_id"]):
            raise Conflict("Resume is attached to an active application")

        self.storage.remove([resume["file_path"]])
        self.shares.delete_for_resume(resume["_id"])
        self.access_logs.delete_for_resume(resume["_id"])
        self.resumes.delete(resume["_id"])
        logger.info("Resume %s deleted by %s", resume["_id"], owner_id)

    def share_resume(self, owner_id: str, resume_id: str, company_id: str,
                     access_level: str = "download", expires_in_days: Optional[int] = None) -> dict:
        resume = self._owned_resume(resume_id, owner_id)
        company = self.companies.get(company_id)
        if not company:
            raise NotFound("Company not found")
        expires_at = utcnow() + timedelta(days=expires_in_days) if expires_in_days else None
        share = self.shares.upsert(resume, company["_id"], access_level, expires_at)
        logger.info("Resume %s shared with company %s", resume["_id"], company["_id"])
        return serialize_doc(share)

    def revoke_share(self, owner_id: str, resume_id: str, company_id: str) -> None:
        resume = self._owned_resume(resume_id, owner_id)
        if not self.shares.delete(resume["_id"], to_object_id(company_id, "Company")):
            raise NotFound("Share not found")

    def record_scan_result(self, resume_id: str, scan_status: str,
                           message: Optional[str] = None) -> dict:
        """Scanner webhook: mark the resume clean or rejected and tell the student."""
        if scan_status not in ("clean", "rejected"):
            raise ValidationError("Scan result must be 'clean' or 'rejected'")
        resume = self.resumes.get(resume_id)
        if not resume:
            raise NotFound("Resume not found")

        updated = self.resumes.update(resume["_id"], {
            "scan_status": scan_status,
            "scan_message": message,
            "malware_check_date": utcnow(),
        })
        logger.info("Resume %s scan result: %s", resume["_id"], scan_status)

        if self.notifier is not None:
            student = self.students.get(resume["student_id"])
            if student:
                self.notifier.notify(
                    student.get("email"),
                    "resume_scan_clean" if scan_status == "clean" else "resume_scan_rejected",
                    {"student_name": student.get("full_name"), "file_name": resume["file_name"],
                     "message": message or ""}
                )
        return serialize_doc(updated)

    def resume_stats(self, owner_id: str) -> dict:
        """Per-resume counters plus per-company breakdown from the access logs."""
        resumes = self.resumes.list_by_user(owner_id)
        logs = self.access_logs.for_resumes(r["_id"] for r in resumes)

        by_resume: Dict[ObjectId, Dict[ObjectId, dict]] = {}
        for log in logs:
            viewers = by_resume.setdefault(log["resume_id"], {})
            entry = viewers.setdefault(log["company_id"], {
                "company_id": str(log["company_id"]),
                "view_count": 0,
                "download_count": 0,
                "last_accessed": None,
            })
            entry["download_count" if log["access_type"] == "download" else "view_count"] += 1
            entry["last_accessed"] = log["timestamp"]

        company_ids = {cid for viewers in by_resume.values() for cid in viewers}
        companies = self.companies.get_many(company_ids)

        stats = []
        for resume in resumes:
            viewers = list(by_resume.get(resume["_id"], {}).values())
            for entry in viewers:
                company = companies.get(ObjectId(entry["company_id"]))
                entry["company_name"] = company.get("company_name") if company else None
            stats.append({
                "resume_id": str(resume["_id"]),
                "file_name": resume["file_name"],
                "views_count": resume.get("views_count", 0),
                "downloads_count": resume.get("downloads_count", 0),
                "unique_company_views": sum(1 for v in viewers if v["view_count"]),
                "unique_company_downloads": sum(1 for v in viewers if v["download_count"]),
                "viewers": viewers,
            })

        return {
            "resumes": stats,
            "total_views": sum(s["views_count"] for s in stats),
            "total_downloads": sum(s["downloads_count"] for s in stats),
        }
