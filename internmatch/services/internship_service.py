"""
Internship postings: create, browse, view, update.

Postings are never deleted; a company closes one by setting status=closed.
"""

import logging
import re
from typing import List, Optional

from bson import ObjectId

from internmatch.core.errors import NotFound, NotOwner, ValidationError
from internmatch.services.counters import InternshipCounters
from internmatch.services.documents import (
    ApplicationDocuments,
    CompanyProfileDocuments,
    InternshipDocuments,
    SavedInternshipDocuments,
    serialize_doc,
)
from internmatch.utils.dates import as_naive_utc

logger = logging.getLogger(__name__)


class InternshipService:

    def __init__(self, counters: Optional[InternshipCounters] = None):
        self.internships = InternshipDocuments()
        self.companies = CompanyProfileDocuments()
        self.applications = ApplicationDocuments()
        self.saved = SavedInternshipDocuments()
        self.counters = counters or InternshipCounters()

    def _with_company_names(self, docs: List[dict]) -> List[dict]:
        companies = self.companies.get_many({d["company_id"] for d in docs})
        out = []
        for doc in docs:
            item = serialize_doc(doc)
            company = companies.get(doc["company_id"])
            item["company_name"] = company.get("company_name") if company else None
            out.append(item)
        return out

    def _with_student_flags(self, items: List[dict], student_id: Optional[ObjectId]) -> List[dict]:
        if student_id is None or not items:
            return items
        ids = [ObjectId(item["id"]) for item in items]
        saved = self.saved.saved_internship_ids(student_id, ids)
        applied = self.applications.applied_internship_ids(student_id, ids)
        for item, oid in zip(items, ids):
            item["is_saved"] = oid in saved
            item["has_applied"] = oid in applied
        return items

    def create(self, company_id: ObjectId, fields: dict) -> dict:
        fields = {**fields, "application_deadline": as_naive_utc(fields["application_deadline"])}
        doc = self.internships.insert(company_id, fields)
        logger.info("Internship %s created by company %s", doc["_id"], company_id)
        return self._with_company_names([doc])[0]

    def search(self, page: int = 1, limit: int = 10, search: Optional[str] = None,
               location: Optional[str] = None, skills: Optional[str] = None,
               remote: Optional[bool] = None, student_id: Optional[ObjectId] = None) -> dict:
        """Browse active internships, newest first."""
        query = {"status": "active"}
        if search:
            pattern = re.escape(search)
            query["$or"] = [
                {"title": {"$regex": pattern, "$options": "i"}},
                {"description": {"$regex": pattern, "$options": "i"}},
            ]
        if location:
            query["location"] = {"$regex": re.escape(location), "$options": "i"}
        if remote:
            query["is_remote"] = True
        if skills:
            skill_list = [s.strip() for s in skills.split(",") if s.strip()]
            if skill_list:
                query["skills_required"] = {"$in": skill_list}

        docs, total = self.internships.find(query, page, limit)
        items = self._with_student_flags(self._with_company_names(docs), student_id)
        return {"internships": items, "total": total, "page": page, "limit": limit}

    def get(self, internship_id: str, viewer: Optional[dict] = None) -> dict:
        """
        Fetch one internship and count the view.

        Drafts are only visible to the company that owns them.
        """
        doc = self.internships.get(internship_id)
        if not doc:
            raise NotFound("Internship not found")
        is_owner = bool(viewer and viewer.get("company_id") == doc["company_id"])
        if doc.get("status") == "draft" and not is_owner:
            raise NotFound("Internship not found")

        if not is_owner:
            self.counters.record_view(doc["_id"])
            doc["views_count"] = doc.get("views_count", 0) + 1

        items = self._with_company_names([doc])
        student_id = viewer.get("student_id") if viewer else None
        return self._with_student_flags(items, student_id)[0]

    def update(self, company_id: ObjectId, internship_id: str, fields: dict) -> dict:
        doc = self.internships.get(internship_id)
        if not doc:
            raise NotFound("Internship not found")
        if doc["company_id"] != company_id:
            raise NotOwner("You can only update your own internships")
        if not fields:
            return self._with_company_names([doc])[0]

        stipend_min = fields.get("stipend_min", doc.get("stipend_min", 0))
        stipend_max = fields.get("stipend_max", doc.get("stipend_max", 0))
        if stipend_max < stipend_min:
            raise ValidationError("stipend_max must be greater than or equal to stipend_min")
        if "application_deadline" in fields:
            fields["application_deadline"] = as_naive_utc(fields["application_deadline"])

        updated = self.internships.update(doc["_id"], fields)
        logger.info("Internship %s updated (%s)", doc["_id"], ", ".join(sorted(fields)))
        return self._with_company_names([updated])[0]

    def list_for_company(self, company_id: ObjectId, page: int = 1, limit: int = 20,
                         status: Optional[str] = None) -> dict:
        query = {"company_id": company_id}
        if status:
            query["status"] = status
        docs, total = self.internships.find(query, page, limit)
        return {"internships": self._with_company_names(docs), "total": total,
                "page": page, "limit": limit}
