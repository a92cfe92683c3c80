"""
Internship Aggregate Counters

WHY denormalized counters:
- Listing pages show applications_count / views_count for every card
- Counting applications per card on every list request is wasteful

Consistency model:
- The application write is the source of truth
- The counter is bumped with an atomic $inc right after it
- If that write fails the user operation still succeeds; the internship
  is queued in counter_reconciliation and reconcile() recomputes it
  from the applications collection
"""

import logging
from typing import Dict, Iterable, Optional

from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.errors import PyMongoError

from internmatch.db.mongodb import COLLECTIONS, get_collection
from internmatch.services.documents import ApplicationDocuments, InternshipDocuments
from internmatch.utils.dates import utcnow

logger = logging.getLogger(__name__)


class InternshipCounters:

    def __init__(self):
        self.internships = InternshipDocuments()
        self.applications = ApplicationDocuments()
        self.queue = get_collection(COLLECTIONS["counter_reconciliation"])

    # ==================== APPLICATIONS ====================

    def increment_applications(self, internship_id: ObjectId) -> Optional[int]:
        """Returns the new count, or None if the write failed and was queued."""
        try:
            doc = self.internships.collection.find_one_and_update(
                {"_id": internship_id},
                {"$inc": {"applications_count": 1}},
                projection={"applications_count": 1},
                return_document=ReturnDocument.AFTER
            )
        except PyMongoError as e:
            logger.warning("applications_count increment failed for %s: %s", internship_id, e)
            self.queue_reconciliation(internship_id, "increment_failed")
            return None
        return doc["applications_count"] if doc else None

    def decrement_applications(self, internship_id: ObjectId) -> Optional[int]:
        """Decrement, never below zero. Returns the count after the write."""
        try:
            doc = self.internships.collection.find_one_and_update(
                {"_id": internship_id, "applications_count": {"$gt": 0}},
                {"$inc": {"applications_count": -1}},
                projection={"applications_count": 1},
                return_document=ReturnDocument.AFTER
            )
            if doc is None:
                # already at zero, so the stored count had drifted
                self.queue_reconciliation(internship_id, "decrement_below_zero")
                doc = self.internships.collection.find_one(
                    {"_id": internship_id}, {"applications_count": 1}
                )
        except PyMongoError as e:
            logger.warning("applications_count decrement failed for %s: %s", internship_id, e)
            self.queue_reconciliation(internship_id, "decrement_failed")
            return None
        return doc.get("applications_count", 0) if doc else None

    def current_applications(self, internship_id: ObjectId) -> Optional[int]:
        doc = self.internships.collection.find_one({"_id": internship_id}, {"applications_count": 1})
        return doc.get("applications_count", 0) if doc else None

    # ==================== VIEWS ====================

    def record_view(self, internship_id: ObjectId) -> None:
        try:
            self.internships.collection.update_one({"_id": internship_id}, {"$inc": {"views_count": 1}})
        except PyMongoError as e:
            logger.warning("views_count increment failed for %s: %s", internship_id, e)

    # ==================== RECONCILIATION ====================

    def queue_reconciliation(self, internship_id: ObjectId, reason: str) -> None:
        try:
            self.queue.update_one(
                {"internship_id": internship_id},
                {"$set": {"reason": reason, "requested_at": utcnow()}},
                upsert=True
            )
        except PyMongoError:
            logger.exception("Could not queue counter reconciliation for %s", internship_id)

    def pending_reconciliations(self) -> list:
        return [doc["internship_id"] for doc in self.queue.find({}, {"internship_id": 1})]

    def reconcile(self, internship_ids: Optional[Iterable[ObjectId]] = None,
                  all_internships: bool = False) -> Dict[str, int]:
        """
        Recompute applications_count from the applications collection.

        Args:
            internship_ids: specific internships to recount
            all_internships: recount every internship

        With neither argument, the queued internships are recounted.

        Returns:
            {internship_id: recomputed count}
        """
        if all_internships:
            targets = [doc["_id"] for doc in self.internships.collection.find({}, {"_id": 1})]
        elif internship_ids is not None:
            targets = list(internship_ids)
        else:
            targets = self.pending_reconciliations()

        result = {}
        for internship_id in targets:
            count = self.applications.count_active(internship_id)
            updated = self.internships.collection.update_one(
                {"_id": internship_id},
                {"$set": {"applications_count": count}}
            )
            self.queue.delete_one({"internship_id": internship_id})
            if updated.matched_count:
                result[str(internship_id)] = count

        logger.info("Reconciled applications_count for %d internship(s)", len(result))
        return result
