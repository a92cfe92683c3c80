"""
Application Service - submit, withdraw and review internship applications.

Flow:
1. Student submits -> profile, internship and resume are checked,
   Application(status=pending) is inserted, applications_count bumped
2. Company reviews -> status moves along the state machine
3. Student may withdraw while the application is still open

Every mutation returns (application, applications_count) so callers can
update their views of the internship without another request.
"""

import logging
from typing import List, Optional, Tuple

from bson import ObjectId

from internmatch.core.errors import (
    Forbidden,
    InternshipClosed,
    InvalidTransition,
    NotFound,
    NotOwner,
    ProfileIncomplete,
    ResumeNotEligible,
)
from internmatch.services import application_state
from internmatch.services.counters import InternshipCounters
from internmatch.services.documents import (
    ApplicationDocuments,
    CompanyProfileDocuments,
    InternshipDocuments,
    ResumeDocuments,
    StudentProfileDocuments,
    serialize_doc,
    withdrawn_key,
)
from internmatch.services.notifier import EmailNotifier
from internmatch.services.profile_service import missing_student_fields
from internmatch.utils.dates import utcnow

logger = logging.getLogger(__name__)


class ApplicationService:

    def __init__(self, notifier: Optional[EmailNotifier] = None,
                 counters: Optional[InternshipCounters] = None):
        self.notifier = notifier
        self.counters = counters or InternshipCounters()
        self.applications = ApplicationDocuments()
        self.internships = InternshipDocuments()
        self.resumes = ResumeDocuments()
        self.students = StudentProfileDocuments()
        self.companies = CompanyProfileDocuments()

    # ============================================================
    # HELPERS
    # ============================================================

    def _load(self, application_id: str) -> dict:
        application = self.applications.get(application_id)
        if not application:
            raise NotFound("Application not found")
        return application

    def _cas_failed(self, application_id: ObjectId, target: str) -> InvalidTransition:
        """Someone else moved the application first; report against the fresh state."""
        current = self.applications.get(application_id)
        if current is None:
            raise NotFound("Application not found")
        return InvalidTransition(
            f"Cannot change status from '{current['status']}' to '{target}'"
        )

    def _enrich(self, docs: List[dict]) -> List[dict]:
        """Attach internship_title and student_name for display."""
        internships = self.internships.get_many({d["internship_id"] for d in docs})
        students = self.students.get_many({d["student_id"] for d in docs})
        out = []
        for doc in docs:
            item = serialize_doc(doc)
            item.pop("active_key", None)
            internship = internships.get(doc["internship_id"])
            student = students.get(doc["student_id"])
            item["internship_title"] = internship.get("title") if internship else None
            item["student_name"] = student.get("full_name") if student else None
            out.append(item)
        return out

    def _notify(self, recipient: Optional[str], kind: str, context: dict) -> None:
        if self.notifier is not None:
            self.notifier.notify(recipient, kind, context)

    # ============================================================
    # MUTATIONS
    # ============================================================

    def submit(self, student_id: ObjectId, internship_id: str, resume_id: str,
               cover_letter: str) -> Tuple[dict, Optional[int]]:
        """
        Create a pending application.

        Raises:
            ProfileIncomplete: checklist fields missing (listed in missing_fields)
            NotFound: student, internship or resume does not exist
            InternshipClosed: not active or past its deadline
            ResumeNotEligible: resume not owned by the student or not scanned clean
            DuplicateApplication: a non-withdrawn application for the pair exists
        """
        student = self.students.get(student_id)
        if not student:
            raise NotFound("Student profile not found")
        missing = missing_student_fields(student)
        if missing:
            raise ProfileIncomplete(missing)

        internship = self.internships.get(internship_id)
        if not internship:
            raise NotFound("Internship not found")
        now = utcnow()
        deadline = internship.get("application_deadline")
        if internship.get("status") != "active" or (deadline is not None and deadline <= now):
            raise InternshipClosed()

        resume = self.resumes.get(resume_id)
        if not resume:
            raise NotFound("Resume not found")
        if resume["student_id"] != student["_id"]:
            raise ResumeNotEligible("Resume does not belong to you")
        if resume.get("scan_status") != "clean":
            raise ResumeNotEligible("Resume has not passed the security scan")

        application = self.applications.insert({
            "internship_id": internship["_id"],
            "student_id": student["_id"],
            "resume_id": resume["_id"],
            "cover_letter": cover_letter.strip(),
            "status": application_state.PENDING,
            "applied_at": now,
            "updated_at": now,
            "reviewed_at": None,
            "feedback": None,
        })
        count = self.counters.increment_applications(internship["_id"])
        logger.info("Application %s submitted by student %s to internship %s",
                    application["_id"], student["_id"], internship["_id"])

        company = self.companies.get(internship["company_id"])
        if company:
            self._notify(company.get("email"), "application_received", {
                "company_name": company.get("company_name"),
                "student_name": student.get("full_name"),
                "internship_title": internship.get("title"),
            })

        return self._enrich([application])[0], count

    def withdraw(self, student_id: ObjectId, application_id: str) -> Tuple[dict, Optional[int]]:
        """Withdraw an open application and release its uniqueness slot."""
        application = self._load(application_id)
        if application["student_id"] != student_id:
            raise NotOwner("You can only withdraw your own applications")

        target = application_state.WITHDRAWN
        application_state.check_transition(application["status"], target)

        fields = application_state.transition_fields(application, target, utcnow())
        fields["active_key"] = withdrawn_key(application["_id"])
        updated = self.applications.compare_and_set_status(
            application["_id"], application["status"], fields
        )
        if updated is None:
            raise self._cas_failed(application["_id"], target)

        count = self.counters.decrement_applications(application["internship_id"])
        logger.info("Application %s withdrawn by student %s", application["_id"], student_id)
        return self._enrich([updated])[0], count

    def update_status(self, company_id: ObjectId, application_id: str, new_status: str,
                      feedback: Optional[str] = None) -> Tuple[dict, Optional[int]]:
        """
        Move an application along the review pipeline.

        Raises:
            ValidationError: unknown status
            Forbidden: company asked for 'withdrawn'
            NotOwner: the internship belongs to another company
            InvalidTransition: not allowed from the current status
        """
        target = application_state.check_company_target(new_status)
        application = self._load(application_id)
        internship = self.internships.get(application["internship_id"])
        if not internship:
            raise NotFound("Internship not found")
        if internship["company_id"] != company_id:
            raise NotOwner("You can only review applications to your own internships")

        application_state.check_transition(application["status"], target)
        fields = application_state.transition_fields(application, target, utcnow(), feedback)
        updated = self.applications.compare_and_set_status(
            application["_id"], application["status"], fields
        )
        if updated is None:
            raise self._cas_failed(application["_id"], target)

        logger.info("Application %s moved %s -> %s by company %s",
                    application["_id"], application["status"], target, company_id)

        student = self.students.get(application["student_id"])
        if student:
            self._notify(student.get("email"), "application_status_changed", {
                "student_name": student.get("full_name"),
                "internship_title": internship.get("title"),
                "status": target,
                "feedback": feedback,
            })

        count = self.counters.current_applications(internship["_id"])
        return self._enrich([updated])[0], count

    # ============================================================
    # READS
    # ============================================================

    def get_application(self, user: dict, application_id: str) -> dict:
        """Visible to the applying student and the company that posted the internship."""
        application = self._load(application_id)
        if user.get("student_id") is not None and application["student_id"] == user["student_id"]:
            return self._enrich([application])[0]

        if user.get("company_id") is not None:
            internship = self.internships.get(application["internship_id"])
            if internship and internship["company_id"] == user["company_id"]:
                return self._enrich([application])[0]
            raise NotOwner("You can only view applications to your own internships")

        if user.get("student_id") is not None:
            raise NotOwner("You can only view your own applications")
        raise Forbidden()

    def list_student_applications(self, student_id: ObjectId, status: Optional[str] = None,
                                  page: int = 1, limit: int = 20) -> dict:
        query = {"student_id": student_id}
        if status:
            query["status"] = status
        docs, total = self.applications.find(query, page, limit)
        return {"applications": self._enrich(docs), "total": total, "page": page, "limit": limit}

    def list_company_applications(self, company_id: ObjectId, internship_id: Optional[str] = None,
                                  status: Optional[str] = None, page: int = 1,
                                  limit: int = 20) -> dict:
        if internship_id:
            internship = self.internships.get(internship_id)
            if not internship:
                raise NotFound("Internship not found")
            if internship["company_id"] != company_id:
                raise NotOwner("You can only view applications to your own internships")
            internship_ids = [internship["_id"]]
        else:
            internship_ids = self.internships.ids_for_company(company_id)

        query = {"internship_id": {"$in": internship_ids}}
        if status:
            query["status"] = status
        docs, total = self.applications.find(query, page, limit)
        return {"applications": self._enrich(docs), "total": total, "page": page, "limit": limit}

