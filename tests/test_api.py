from datetime import timedelta

import pytest

from conftest import COMPLETE_STUDENT, INTERNSHIP_DESCRIPTION, auth, create_resume, make_token
from internmatch.services.documents import StudentProfileDocuments
from internmatch.utils.dates import utcnow

STUDENT = auth("student-1")
COMPANY = auth("company-1")


def create_profiles(client):
    r = client.post("/api/students/profile", json=COMPLETE_STUDENT, headers=STUDENT)
    assert r.status_code == 201, r.text
    r = client.post("/api/companies/profile", json={"company_name": "Acme Corp"}, headers=COMPANY)
    assert r.status_code == 201, r.text
    return r.json()


def post_internship(client, **overrides):
    body = {
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
        "application_deadline": (utcnow() + timedelta(days=30)).isoformat(),
        "status": "active",
    }
    body.update(overrides)
    r = client.post("/api/internships", json=body, headers=COMPANY)
    assert r.status_code == 201, r.text
    return r.json()


def clean_resume():
    student = StudentProfileDocuments().get_by_user("student-1")
    return str(create_resume(student)["_id"])


@pytest.fixture
def marketplace(client):
    company = create_profiles(client)
    internship = post_internship(client)
    return {"company": company, "internship": internship, "resume_id": clean_resume()}


def apply(client, marketplace):
    return client.post("/api/applications", json={
        "internship_id": marketplace["internship"]["id"],
        "resume_id": marketplace["resume_id"],
        "cover_letter": "I would love to join.",
    }, headers=STUDENT)


# ============================================================
# AUTH + ERROR FORMAT
# ============================================================

def test_missing_token_is_401(client):
    r = client.get("/api/students/profile")
    assert r.status_code == 401
    assert r.json() == {"error": "No authentication token"}


def test_expired_token_is_401(client):
    r = client.get("/api/students/profile",
                   headers={"Authorization": f"Bearer {make_token('student-1', expires_in=-60)}"})
    assert r.status_code == 401
    assert r.json()["error"] == "Invalid or expired token"


def test_missing_profile_is_404(client):
    r = client.get("/api/students/profile", headers=STUDENT)
    assert r.status_code == 404
    assert r.json() == {"error": "Student profile not found. Create profile first."}


def test_request_validation_is_400_with_error_body(client):
    create_profiles(client)
    r = client.post("/api/internships", json={"title": "Hi"}, headers=COMPANY)
    assert r.status_code == 400
    assert set(r.json()) == {"error"}


def test_duplicate_profile_is_409(client):
    create_profiles(client)
    r = client.post("/api/students/profile", json=COMPLETE_STUDENT, headers=STUDENT)
    assert r.status_code == 409


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "healthy"


# ============================================================
# APPLICATIONS
# ============================================================

def test_apply_and_review_flow(client, marketplace, notifier):
    r = apply(client, marketplace)
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["applications_count"] == 1
    application = body["application"]
    assert application["status"] == "pending"
    assert application["internship_title"] == "Backend Engineering Intern"

    r = client.get("/api/applications/company", headers=COMPANY)
    assert r.json()["total"] == 1

    r = client.patch(f"/api/applications/{application['id']}/status",
                     json={"status": "reviewed"}, headers=COMPANY)
    assert r.status_code == 200
    assert r.json()["application"]["status"] == "reviewed"
    assert notifier.kinds() == ["application_received", "application_status_changed"]

    r = client.get(f"/api/applications/{application['id']}", headers=STUDENT)
    assert r.json()["status"] == "reviewed"


def test_duplicate_application_is_409(client, marketplace):
    assert apply(client, marketplace).status_code == 201
    r = apply(client, marketplace)
    assert r.status_code == 409
    assert r.json()["error"]


def test_incomplete_profile_reports_missing_fields(client, marketplace):
    client.put("/api/students/profile", json={"bio": "Short bio"}, headers=STUDENT)
    r = apply(client, marketplace)
    assert r.status_code == 400
    assert r.json()["missing_fields"] == ["bio"]

    r = client.get("/api/students/profile/completeness", headers=STUDENT)
    assert r.json() == {"is_complete": False, "missing_fields": ["bio"]}


def test_withdraw_then_company_cannot_move_it(client, marketplace):
    application = apply(client, marketplace).json()["application"]

    r = client.patch(f"/api/applications/{application['id']}/withdraw", headers=STUDENT)
    assert r.status_code == 200
    assert r.json()["applications_count"] == 0
    assert r.json()["application"]["status"] == "withdrawn"

    r = client.patch(f"/api/applications/{application['id']}/status",
                     json={"status": "accepted"}, headers=COMPANY)
    assert r.status_code == 409


def test_company_cannot_set_withdrawn(client, marketplace):
    application = apply(client, marketplace).json()["application"]
    r = client.patch(f"/api/applications/{application['id']}/status",
                     json={"status": "withdrawn"}, headers=COMPANY)
    assert r.status_code == 403


def test_internship_shows_student_flags(client, marketplace):
    apply(client, marketplace)
    r = client.get(f"/api/internships/{marketplace['internship']['id']}", headers=STUDENT)
    body = r.json()
    assert body["has_applied"] is True
    assert body["is_saved"] is False
    assert body["applications_count"] == 1
    assert body["views_count"] == 1


def test_draft_internship_hidden_from_students(client, marketplace):
    draft = post_internship(client, status="draft")
    assert client.get(f"/api/internships/{draft['id']}", headers=STUDENT).status_code == 404
    assert client.get(f"/api/internships/{draft['id']}", headers=COMPANY).status_code == 200

    listing = client.get("/api/internships").json()
    assert [i["id"] for i in listing["internships"]] == [marketplace["internship"]["id"]]


# ============================================================
# RESUMES
# ============================================================

def test_upload_scan_and_apply(client, storage, notifier, settings):
    company = create_profiles(client)
    internship = post_internship(client)

    slot = client.get("/api/resume/get-upload-url", headers=STUDENT).json()
    r = client.post("/api/resume/confirm-upload", json={
        "upload_token": slot["upload_token"],
        "file_name": "cv.pdf",
        "file_size": 4096,
        "mime_type": "application/pdf",
    }, headers=STUDENT)
    assert r.status_code == 201, r.text
    resume = r.json()
    assert resume["scan_status"] == "pending"

    # not usable before the scanner reports clean
    marketplace = {"company": company, "internship": internship, "resume_id": resume["id"]}
    assert apply(client, marketplace).status_code == 400

    r = client.post(f"/api/resume/{resume['id']}/scan-result", json={"scan_status": "clean"},
                    headers={"X-Scan-Webhook-Secret": settings.scan_webhook_secret})
    assert r.status_code == 200
    assert r.json()["scan_status"] == "clean"
    assert "resume_scan_clean" in notifier.kinds()

    assert apply(client, marketplace).status_code == 201

    r = client.post(f"/api/resume/{resume['id']}/access?access_type=download", headers=COMPANY)
    assert r.status_code == 200
    assert r.json()["expires_in"] == 300

    stats = client.get("/api/resume/stats", headers=STUDENT).json()
    assert stats["total_downloads"] == 1
    assert stats["resumes"][0]["viewers"][0]["company_name"] == "Acme Corp"


def test_scan_webhook_requires_secret(client, marketplace):
    url = f"/api/resume/{marketplace['resume_id']}/scan-result"
    assert client.post(url, json={"scan_status": "clean"}).status_code == 401
    r = client.post(url, json={"scan_status": "clean"}, headers={"X-Scan-Webhook-Secret": "nope"})
    assert r.status_code == 403


def test_storage_outage_is_502(client, marketplace, storage):
    storage.fail = True
    r = client.post(f"/api/resume/{marketplace['resume_id']}/access", headers=STUDENT)
    assert r.status_code == 502
    assert r.json() == {"error": "Storage service unavailable"}


def test_private_resume_forbidden_to_unrelated_company(client, marketplace):
    r = client.post(f"/api/resume/{marketplace['resume_id']}/access", headers=COMPANY)
    assert r.status_code == 403


def test_formats(client):
    formats = client.get("/api/resume/formats").json()
    assert formats["max_size_mb"] == 10
    assert {"mime_type": "application/pdf", "name": "PDF"} in formats["supported_formats"]


# ============================================================
# SAVED + ADMIN
# ============================================================

def test_save_is_idempotent(client, marketplace):
    internship_id = marketplace["internship"]["id"]
    first = client.post("/api/saved", json={"internship_id": internship_id}, headers=STUDENT)
    second = client.post("/api/saved", json={"internship_id": internship_id}, headers=STUDENT)
    assert first.status_code == second.status_code == 201
    assert first.json()["id"] == second.json()["id"]
    assert first.json()["internship"]["is_saved"] is True

    listing = client.get("/api/saved", headers=STUDENT).json()
    assert listing["total"] == 1

    r = client.delete(f"/api/saved/{internship_id}", headers=STUDENT)
    assert r.json() == {"internship_id": internship_id, "is_saved": False}
    r = client.delete(f"/api/saved/{internship_id}", headers=STUDENT)
    assert r.status_code == 200
    assert client.get(f"/api/saved/{internship_id}", headers=STUDENT).json()["is_saved"] is False


def test_reconcile_requires_admin(client, marketplace, mongo):
    apply(client, marketplace)
    mongo["internships"].update_many({}, {"$set": {"applications_count": 9}})

    assert client.post("/api/admin/reconcile-counters", json={"all_internships": True},
                       headers=STUDENT).status_code == 403

    r = client.post("/api/admin/reconcile-counters", json={"all_internships": True},
                    headers=auth("ops", admin=True))
    assert r.status_code == 200
    assert r.json()["reconciled"][marketplace["internship"]["id"]] == 1


def test_admin_verifies_company(client, marketplace):
    r = client.patch(f"/api/admin/companies/{marketplace['company']['id']}/verify",
                     headers=auth("ops", admin=True))
    assert r.status_code == 200
    assert r.json()["is_verified"] is True
