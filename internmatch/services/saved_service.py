"""
Saved internships (student bookmarks).

Save and unsave are idempotent: saving twice returns the existing
bookmark and unsaving something that is not saved is not an error. The
client applies both optimistically.
"""

import logging
from typing import Optional

from bson import ObjectId

from internmatch.core.errors import Conflict, NotFound
from internmatch.services.documents import (
    ApplicationDocuments,
    InternshipDocuments,
    SavedInternshipDocuments,
    serialize_doc,
    to_object_id,
)

logger = logging.getLogger(__name__)


class SavedInternshipService:

    def __init__(self):
        self.saved = SavedInternshipDocuments()
        self.internships = InternshipDocuments()
        self.applications = ApplicationDocuments()

    def _internship_view(self, student_id: ObjectId, internship: Optional[dict],
                         is_saved: bool) -> Optional[dict]:
        if internship is None:
            return None
        item = serialize_doc(internship)
        item["is_saved"] = is_saved
        item["has_applied"] = self.applications.find_active(internship["_id"], student_id) is not None
        return item

    def _saved_view(self, student_id: ObjectId, saved: dict, internship: Optional[dict]) -> dict:
        item = serialize_doc(saved)
        item["internship"] = self._internship_view(student_id, internship, True)
        return item

    def save(self, student_id: ObjectId, internship_id: str) -> dict:
        internship = self.internships.get(internship_id)
        if not internship:
            raise NotFound("Internship not found")
        try:
            saved = self.saved.save(student_id, internship["_id"])
            logger.info("Student %s saved internship %s", student_id, internship["_id"])
        except Conflict:
            saved = self.saved.get(student_id, internship["_id"])
        return self._saved_view(student_id, saved, internship)

    def unsave(self, student_id: ObjectId, internship_id: str) -> dict:
        oid = to_object_id(internship_id, "Internship")
        if self.saved.unsave(student_id, oid):
            logger.info("Student %s unsaved internship %s", student_id, oid)
        return {"internship_id": str(oid), "is_saved": False}

    def is_saved(self, student_id: ObjectId, internship_id: str) -> dict:
        oid = to_object_id(internship_id, "Internship")
        return {"internship_id": str(oid), "is_saved": self.saved.get(student_id, oid) is not None}

    def list(self, student_id: ObjectId, page: int = 1, limit: int = 20) -> dict:
        docs, total = self.saved.find(student_id, page, limit)
        internships = self.internships.get_many(d["internship_id"] for d in docs)
        items = [self._saved_view(student_id, d, internships.get(d["internship_id"])) for d in docs]
        return {"saved": items, "total": total, "page": page, "limit": limit}
