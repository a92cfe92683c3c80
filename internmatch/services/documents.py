"""
MongoDB document access - one small class per collection.

Collections in this database:
1. student_profiles / company_profiles - one profile per identity subject
2. internships            - postings with views/applications counters
3. applications           - one student's application to one internship
4. resumes                - metadata of files kept in object storage
5. saved_internships      - student bookmarks
6. resume_upload_tokens   - short-lived upload slots (TTL indexed)
7. resume_shares          - explicit resume grants to companies
8. resume_access_logs     - company views/downloads of resumes

References between documents are ObjectIds. Everything leaving this
module goes through serialize_doc, which turns them into strings.
"""

from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import DESCENDING, ReturnDocument
from pymongo.collection import Collection
from pymongo.errors import DuplicateKeyError

from internmatch.core.errors import Conflict, DuplicateApplication, NotFound
from internmatch.db.mongodb import COLLECTIONS, get_collection
from internmatch.utils.dates import utcnow


# ============================================================
# HELPERS: ObjectId conversion and JSON-friendly documents
# ============================================================

def to_object_id(value: Any, entity: str = "Resource") -> ObjectId:
    """Parse an id from the API; malformed ids are reported as missing."""
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        raise NotFound(f"{entity} not found")


def _stringify(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, list):
        return [_stringify(v) for v in value]
    return value


def serialize_doc(doc: Optional[dict]) -> Optional[dict]:
    """Convert MongoDB document to a JSON-serializable dict with an `id` key."""
    if doc is None:
        return None
    out = {key: _stringify(value) for key, value in doc.items() if key != "_id"}
    if "_id" in doc:
        out["id"] = str(doc["_id"])
    return out


def _page(cursor, page: int, limit: int):
    return cursor.skip((page - 1) * limit).limit(limit)


# ============================================================
# PROFILES
# ============================================================

class _ProfileDocuments:
    collection_key = ""
    entity = "Profile"

    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS[self.collection_key])

    def insert(self, user_id: str, fields: dict) -> dict:
        now = utcnow()
        doc = {**fields, "user_id": user_id, "created_at": now, "updated_at": now}
        try:
            result = self.collection.insert_one(doc)
        except DuplicateKeyError:
            raise Conflict("Profile already exists. Use PUT to update.")
        doc["_id"] = result.inserted_id
        return doc

    def get(self, profile_id: Any) -> Optional[dict]:
        return self.collection.find_one({"_id": to_object_id(profile_id, self.entity)})

    def get_by_user(self, user_id: str) -> Optional[dict]:
        return self.collection.find_one({"user_id": user_id})

    def update(self, profile_id: Any, fields: dict) -> Optional[dict]:
        return self.collection.find_one_and_update(
            {"_id": to_object_id(profile_id, self.entity)},
            {"$set": {**fields, "updated_at": utcnow()}},
            return_document=ReturnDocument.AFTER
        )

    def get_many(self, ids: Iterable[ObjectId]) -> Dict[ObjectId, dict]:
        return {doc["_id"]: doc for doc in self.collection.find({"_id": {"$in": list(ids)}})}


class StudentProfileDocuments(_ProfileDocuments):
    collection_key = "students"
    entity = "Student profile"


class CompanyProfileDocuments(_ProfileDocuments):
    collection_key = "companies"
    entity = "Company profile"


# ============================================================
# INTERNSHIPS
# ============================================================

class InternshipDocuments:
    """Internship postings. Counters are changed through InternshipCounters."""

    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS["internships"])

    def insert(self, company_id: ObjectId, fields: dict) -> dict:
        now = utcnow()
        doc = {
            **fields,
            "company_id": company_id,
            "views_count": 0,
            "applications_count": 0,
            "created_at": now,
            "updated_at": now,
        }
        result = self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        return doc

    def get(self, internship_id: Any) -> Optional[dict]:
        return self.collection.find_one({"_id": to_object_id(internship_id, "Internship")})

    def update(self, internship_id: Any, fields: dict) -> Optional[dict]:
        return self.collection.find_one_and_update(
            {"_id": to_object_id(internship_id, "Internship")},
            {"$set": {**fields, "updated_at": utcnow()}},
            return_document=ReturnDocument.AFTER
        )

    def find(self, query: dict, page: int = 1, limit: int = 20) -> Tuple[List[dict], int]:
        total = self.collection.count_documents(query)
        cursor = self.collection.find(query).sort("created_at", DESCENDING)
        return list(_page(cursor, page, limit)), total

    def ids_for_company(self, company_id: ObjectId) -> List[ObjectId]:
        return [doc["_id"] for doc in self.collection.find({"company_id": company_id}, {"_id": 1})]

    def get_many(self, ids: Iterable[ObjectId]) -> Dict[ObjectId, dict]:
        return {doc["_id"]: doc for doc in self.collection.find({"_id": {"$in": list(ids)}})}


# ============================================================
# APPLICATIONS
# ============================================================

def active_key(internship_id: ObjectId, student_id: ObjectId) -> str:
    """Key held by the single non-withdrawn application of a pair."""
    return f"{internship_id}:{student_id}"


def withdrawn_key(application_id: ObjectId) -> str:
    return f"withdrawn:{application_id}"


class ApplicationDocuments:
    """
    Applications are never deleted. Status changes go through
    compare_and_set_status so two writers cannot both move the same
    application out of the state they observed.
    """

    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS["applications"])

    def insert(self, doc: dict) -> dict:
        """Insert a new application; a live duplicate for the pair is rejected."""
        doc = {**doc, "active_key": active_key(doc["internship_id"], doc["student_id"])}
        try:
            result = self.collection.insert_one(doc)
        except DuplicateKeyError:
            raise DuplicateApplication()
        doc["_id"] = result.inserted_id
        return doc

    def get(self, application_id: Any) -> Optional[dict]:
        return self.collection.find_one({"_id": to_object_id(application_id, "Application")})

    def find_active(self, internship_id: ObjectId, student_id: ObjectId) -> Optional[dict]:
        return self.collection.find_one({"active_key": active_key(internship_id, student_id)})

    def compare_and_set_status(self, application_id: ObjectId, expected_status: str,
                               fields: dict) -> Optional[dict]:
        """Apply `fields` only if the status is still `expected_status`."""
        return self.collection.find_one_and_update(
            {"_id": application_id, "status": expected_status},
            {"$set": fields},
            return_document=ReturnDocument.AFTER
        )

    def find(self, query: dict, page: int = 1, limit: int = 20) -> Tuple[List[dict], int]:
        total = self.collection.count_documents(query)
        cursor = self.collection.find(query).sort("applied_at", DESCENDING)
        return list(_page(cursor, page, limit)), total

    def count_active(self, internship_id: ObjectId) -> int:
        return self.collection.count_documents({
            "internship_id": internship_id,
            "status": {"$ne": "withdrawn"}
        })

    def has_active_for_resume(self, resume_id: ObjectId,
                              internship_ids: Optional[List[ObjectId]] = None) -> bool:
        query = {"resume_id": resume_id, "status": {"$ne": "withdrawn"}}
        if internship_ids is not None:
            query["internship_id"] = {"$in": internship_ids}
        return self.collection.find_one(query, {"_id": 1}) is not None

    def applied_internship_ids(self, student_id: ObjectId,
                               internship_ids: Iterable[ObjectId]) -> set:
        cursor = self.collection.find(
            {"student_id": student_id, "internship_id": {"$in": list(internship_ids)},
             "status": {"$ne": "withdrawn"}},
            {"internship_id": 1}
        )
        return {doc["internship_id"] for doc in cursor}


# ============================================================
# RESUMES
# ============================================================

class ResumeDocuments:
    """Resume metadata; the bytes live in object storage under file_path."""

    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS["resumes"])

    def insert(self, doc: dict) -> dict:
        now = utcnow()
        doc = {
            **doc,
            "scan_status": "pending",
            "views_count": 0,
            "downloads_count": 0,
            "uploaded_at": now,
            "updated_at": now,
        }
        try:
            result = self.collection.insert_one(doc)
        except DuplicateKeyError:
            raise Conflict("Upload already confirmed")
        doc["_id"] = result.inserted_id
        return doc

    def get(self, resume_id: Any) -> Optional[dict]:
        return self.collection.find_one({"_id": to_object_id(resume_id, "Resume")})

    def get_owned(self, resume_id: Any, user_id: str) -> Optional[dict]:
        return self.collection.find_one({"_id": to_object_id(resume_id, "Resume"), "user_id": user_id})

    def list_by_user(self, user_id: str) -> List[dict]:
        return list(self.collection.find({"user_id": user_id}).sort("uploaded_at", DESCENDING))

    def count_uploaded_since(self, user_id: str, since: datetime) -> int:
        return self.collection.count_documents({"user_id": user_id, "uploaded_at": {"$gte": since}})

    def update(self, resume_id: ObjectId, fields: dict) -> Optional[dict]:
        return self.collection.find_one_and_update(
            {"_id": resume_id},
            {"$set": {**fields, "updated_at": utcnow()}},
            return_document=ReturnDocument.AFTER
        )

    def clear_primary(self, user_id: str) -> None:
        self.collection.update_many({"user_id": user_id}, {"$set": {"is_primary": False}})

    def record_access(self, resume_id: ObjectId, access_type: str) -> Optional[dict]:
        """Bump the view or download counter atomically."""
        if access_type == "download":
            counter, stamp = "downloads_count", "last_downloaded_at"
        else:
            counter, stamp = "views_count", "last_viewed_at"
        return self.collection.find_one_and_update(
            {"_id": resume_id},
            {"$inc": {counter: 1}, "$set": {stamp: utcnow()}},
            return_document=ReturnDocument.AFTER
        )

    def delete(self, resume_id: ObjectId) -> bool:
        return self.collection.delete_one({"_id": resume_id}).deleted_count > 0


class UploadTokenDocuments:
    """Upload slots handed out by the resume store; consumed on confirm."""

    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS["upload_tokens"])

    def store(self, token: str, user_id: str, student_id: ObjectId,
              file_path: str, expires_at: datetime) -> None:
        self.collection.insert_one({
            "token": token,
            "user_id": user_id,
            "student_id": student_id,
            "file_path": file_path,
            "expires_at": expires_at,
            "created_at": utcnow(),
        })

    def get(self, token: str) -> Optional[dict]:
        return self.collection.find_one({"token": token})

    def consume(self, token: str) -> None:
        self.collection.delete_one({"token": token})


class ResumeShareDocuments:
    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS["resume_shares"])

    def upsert(self, resume: dict, company_id: ObjectId, access_level: str,
               expires_at: Optional[datetime]) -> dict:
        return self.collection.find_one_and_update(
            {"resume_id": resume["_id"], "company_id": company_id},
            {
                "$set": {
                    "student_id": resume["student_id"],
                    "access_level": access_level,
                    "expires_at": expires_at,
                },
                "$setOnInsert": {"created_at": utcnow()},
            },
            upsert=True,
            return_document=ReturnDocument.AFTER
        )

    def get_active(self, resume_id: ObjectId, company_id: ObjectId) -> Optional[dict]:
        share = self.collection.find_one({"resume_id": resume_id, "company_id": company_id})
        if share and share.get("expires_at") and share["expires_at"] <= utcnow():
            return None
        return share

    def delete(self, resume_id: ObjectId, company_id: ObjectId) -> bool:
        result = self.collection.delete_one({"resume_id": resume_id, "company_id": company_id})
        return result.deleted_count > 0

    def delete_for_resume(self, resume_id: ObjectId) -> None:
        self.collection.delete_many({"resume_id": resume_id})


class ResumeAccessLogDocuments:
    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS["resume_access_logs"])

    def insert(self, resume_id: ObjectId, company_id: ObjectId, company_user_id: str,
               access_type: str, signed_url_token: str) -> None:
        self.collection.insert_one({
            "resume_id": resume_id,
            "company_id": company_id,
            "company_user_id": company_user_id,
            "access_type": access_type,
            "signed_url_token": signed_url_token,
            "timestamp": utcnow(),
        })

    def count_since(self, resume_id: ObjectId, company_id: ObjectId, since: datetime) -> int:
        return self.collection.count_documents({
            "resume_id": resume_id,
            "company_id": company_id,
            "timestamp": {"$gte": since}
        })

    def for_resumes(self, resume_ids: Iterable[ObjectId]) -> List[dict]:
        cursor = self.collection.find({"resume_id": {"$in": list(resume_ids)}}).sort("timestamp", 1)
        return list(cursor)

    def delete_for_resume(self, resume_id: ObjectId) -> None:
        self.collection.delete_many({"resume_id": resume_id})


# ============================================================
# SAVED INTERNSHIPS
# ============================================================

class SavedInternshipDocuments:
    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS["saved"])

    def save(self, student_id: ObjectId, internship_id: ObjectId) -> dict:
        doc = {"student_id": student_id, "internship_id": internship_id, "saved_at": utcnow()}
        try:
            result = self.collection.insert_one(doc)
        except DuplicateKeyError:
            raise Conflict("Already saved this internship")
        doc["_id"] = result.inserted_id
        return doc

    def unsave(self, student_id: ObjectId, internship_id: ObjectId) -> bool:
        result = self.collection.delete_one({"student_id": student_id, "internship_id": internship_id})
        return result.deleted_count > 0

    def get(self, student_id: ObjectId, internship_id: ObjectId) -> Optional[dict]:
        return self.collection.find_one({"student_id": student_id, "internship_id": internship_id})

    def find(self, student_id: ObjectId, page: int = 1, limit: int = 20) -> Tuple[List[dict], int]:
        query = {"student_id": student_id}
        total = self.collection.count_documents(query)
        cursor = self.collection.find(query).sort("saved_at", DESCENDING)
        return list(_page(cursor, page, limit)), total

    def saved_internship_ids(self, student_id: ObjectId, internship_ids: Iterable[ObjectId]) -> set:
        cursor = self.collection.find(
            {"student_id": student_id, "internship_id": {"$in": list(internship_ids)}},
            {"internship_id": 1}
        )
        return {doc["internship_id"] for doc in cursor}
