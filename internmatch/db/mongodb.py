"""
MongoDB Connection Utility

MongoDB stores every marketplace entity:
- Student and company profiles
- Internships (with denormalized views/applications counters)
- Applications and saved internships
- Resume metadata, upload tokens, shares and access logs

Resume bytes never land here; they live in Supabase Storage.
"""
import logging

from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.collection import Collection
from pymongo.database import Database

from internmatch.core.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()

# Global client (connection pooling handled internally by pymongo)
_client: MongoClient = None
_db: Database = None


def get_mongo_client() -> MongoClient:
    """Get or create MongoDB client (singleton pattern)"""
    global _client
    if _client is None:
        _client = MongoClient(settings.mongodb_uri)
    return _client


def get_mongo_db() -> Database:
    """Get the marketplace database"""
    global _db
    if _db is None:
        client = get_mongo_client()
        _db = client[settings.mongodb_db]
    return _db


def get_collection(name: str) -> Collection:
    """Get a specific collection by its real name (see COLLECTIONS)."""
    db = get_mongo_db()
    return db[name]


def test_mongo_connection() -> bool:
    """
    Test if MongoDB is reachable.
    Returns True if connection successful, False otherwise.
    """
    try:
        client = get_mongo_client()
        # ping command checks connection
        client.admin.command('ping')
        return True
    except Exception as e:
        logger.warning("MongoDB connection failed: %s", e)
        return False


# Collection name constants (avoid typos)
COLLECTIONS = {
    "internships": "internships",
    "applications": "applications",
    "resumes": "resumes",
    "students": "student_profiles",
    "companies": "company_profiles",
    "saved": "saved_internships",
    "upload_tokens": "resume_upload_tokens",
    "resume_shares": "resume_shares",
    "resume_access_logs": "resume_access_logs",
    "counter_reconciliation": "counter_reconciliation",
}


def init_mongo_indexes():
    """
    Create indexes for uniqueness guarantees and query performance.
    Call this once during app startup.
    """
    db = get_mongo_db()

    # One profile per identity subject
    db[COLLECTIONS["students"]].create_index("user_id", unique=True)
    db[COLLECTIONS["companies"]].create_index("user_id", unique=True)

    internships = db[COLLECTIONS["internships"]]
    internships.create_index([("company_id", ASCENDING), ("status", ASCENDING)])
    internships.create_index([("status", ASCENDING), ("application_deadline", ASCENDING)])
    internships.create_index([("skills_required", ASCENDING), ("status", ASCENDING)])

    # active_key holds "<internship>:<student>" only while the application
    # is not withdrawn, so this is the one-live-application-per-pair guard
    applications = db[COLLECTIONS["applications"]]
    applications.create_index("active_key", unique=True)
    applications.create_index([("student_id", ASCENDING), ("status", ASCENDING)])
    applications.create_index([("internship_id", ASCENDING), ("status", ASCENDING)])
    applications.create_index("resume_id")

    resumes = db[COLLECTIONS["resumes"]]
    resumes.create_index("file_path", unique=True)
    resumes.create_index([("student_id", ASCENDING), ("visibility", ASCENDING)])
    resumes.create_index([("user_id", ASCENDING), ("scan_status", ASCENDING)])

    saved = db[COLLECTIONS["saved"]]
    saved.create_index([("student_id", ASCENDING), ("internship_id", ASCENDING)], unique=True)
    saved.create_index([("student_id", ASCENDING), ("saved_at", DESCENDING)])

    tokens = db[COLLECTIONS["upload_tokens"]]
    tokens.create_index("token", unique=True)
    tokens.create_index("expires_at", expireAfterSeconds=0)

    db[COLLECTIONS["resume_shares"]].create_index(
        [("resume_id", ASCENDING), ("company_id", ASCENDING)], unique=True
    )
    db[COLLECTIONS["resume_access_logs"]].create_index([
        ("resume_id", ASCENDING),
        ("company_id", ASCENDING),
        ("timestamp", DESCENDING)
    ])
    db[COLLECTIONS["counter_reconciliation"]].create_index("internship_id", unique=True)

    logger.info("MongoDB indexes created successfully")
