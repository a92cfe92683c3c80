from datetime import datetime, timedelta, timezone

import mongomock
import pytest
from fastapi.testclient import TestClient
from jose import jwt

from internmatch.api.deps import get_notifier, get_storage_client
from internmatch.core.config import get_settings
from internmatch.core.errors import DependencyFailure
from internmatch.db import mongodb
from internmatch.services.documents import (
    CompanyProfileDocuments,
    InternshipDocuments,
    ResumeDocuments,
    StudentProfileDocuments,
)
from internmatch.utils.dates import utcnow


# ============================================================
# FAKE COLLABORATORS
# ============================================================

class FakeStorage:
    def __init__(self):
        self.removed = []
        self.signed = []
        self.fail = False

    def issue_upload_url(self, path):
        if self.fail:
            raise DependencyFailure("Storage service unavailable")
        return {"url": f"https://storage.test/upload/{path}?token=up&upsert=true", "token": "up"}

    def issue_access_url(self, path, expires_in):
        if self.fail:
            raise DependencyFailure("Storage service unavailable")
        self.signed.append((path, expires_in))
        return f"https://storage.test/sign/{path}?expires={expires_in}&n={len(self.signed)}"

    def remove(self, paths):
        if self.fail:
            raise DependencyFailure("Storage service unavailable")
        self.removed.extend(paths)


class FakeNotifier:
    def __init__(self):
        self.sent = []

    def notify(self, recipient_email, kind, context):
        self.sent.append((recipient_email, kind, context))

    def kinds(self):
        return [kind for _, kind, _ in self.sent]


# ============================================================
# FIXTURES
# ============================================================

@pytest.fixture(autouse=True)
def mongo(monkeypatch):
    """Every test gets a fresh in-memory database with the real indexes."""
    client = mongomock.MongoClient()
    db = client["internmatch_test"]
    monkeypatch.setattr(mongodb, "_client", client)
    monkeypatch.setattr(mongodb, "_db", db)
    mongodb.init_mongo_indexes()
    return db


@pytest.fixture
def settings():
    return get_settings()


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def app(storage, notifier):
    from internmatch.main import app as fastapi_app

    fastapi_app.dependency_overrides[get_storage_client] = lambda: storage
    fastapi_app.dependency_overrides[get_notifier] = lambda: notifier
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    return TestClient(app)


# ============================================================
# TOKENS
# ============================================================

def make_token(sub, email=None, admin=False, expires_in=3600):
    settings = get_settings()
    payload = {
        "sub": sub,
        "email": email or f"{sub}@example.com",
        "aud": settings.supabase_jwt_audience,
        "exp": datetime.now(timezone.utc) + timedelta(seconds=expires_in),
        "app_metadata": {"role": "admin"} if admin else {},
    }
    return jwt.encode(payload, settings.supabase_jwt_secret, algorithm=settings.jwt_algorithm)


def auth(sub, **kwargs):
    return {"Authorization": f"Bearer {make_token(sub, **kwargs)}"}


# ============================================================
# DATA BUILDERS
# ============================================================

COMPLETE_STUDENT = {
    "full_name": "Ana Lima",
    "bio": "Third-year computer science student who enjoys building backend services.",
    "university": "State University",
    "degree": "BSc Computer Science",
    "graduation_year": 2026,
    "location": "Lisbon",
    "skills": ["python", "mongodb"],
    "phone": "+351 912345678",
}

INTERNSHIP_DESCRIPTION = (
    "Join our platform team to build and operate the APIs behind our marketplace. "
    "You will work on Python services, MongoDB data models and the tooling around them."
)


def create_student(user_id="student-1", **overrides):
    fields = {**COMPLETE_STUDENT, "email": f"{user_id}@example.com", **overrides}
    return StudentProfileDocuments().insert(user_id, fields)


def create_company(user_id="company-1", verified=False, **overrides):
    fields = {
        "company_name": f"{user_id} Inc",
        "email": f"{user_id}@example.com",
        "is_verified": verified,
        **overrides,
    }
    return CompanyProfileDocuments().insert(user_id, fields)


def internship_fields(**overrides):
    fields = {
        "title": "Backend Engineering Intern",
        "description": INTERNSHIP_DESCRIPTION,
        "requirements": ["Python basics"],
        "responsibilities": ["Build APIs"],
        "location": "Remote",
        "is_remote": True,
        "stipend_min": 500,
        "stipend_max": 1000,
        "duration_months": 6,
        "skills_required": ["python"],
        "application_deadline": utcnow() + timedelta(days=30),
        "positions_available": 2,
        "status": "active",
    }
    fields.update(overrides)
    return fields


def create_internship(company, **overrides):
    return InternshipDocuments().insert(company["_id"], internship_fields(**overrides))


def create_resume(student, scan_status="clean", visibility="private", **overrides):
    resumes = ResumeDocuments()
    resume = resumes.insert({
        "student_id": student["_id"],
        "user_id": student["user_id"],
        "file_name": "cv.pdf",
        "file_path": f"resumes/{student['user_id']}/{len(list(resumes.collection.find()))}-cv.pdf",
        "file_size": 1024,
        "mime_type": "application/pdf",
        "visibility": visibility,
        "is_primary": False,
        **overrides,
    })
    if scan_status != "pending":
        resume = resumes.update(resume["_id"], {"scan_status": scan_status})
    return resume
