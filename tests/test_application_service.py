from datetime import timedelta

import pytest
from pymongo.errors import PyMongoError

from conftest import create_company, create_internship, create_resume, create_student
from internmatch.core.errors import (
    DuplicateApplication,
    Forbidden,
    InternshipClosed,
    InvalidTransition,
    NotOwner,
    ProfileIncomplete,
    ResumeNotEligible,
)
from internmatch.db.mongodb import COLLECTIONS
from internmatch.services.application_service import ApplicationService
from internmatch.services.counters import InternshipCounters
from internmatch.utils.dates import utcnow


@pytest.fixture
def service(notifier):
    return ApplicationService(notifier=notifier)


@pytest.fixture
def world():
    company = create_company()
    internship = create_internship(company)
    student = create_student()
    resume = create_resume(student)
    return {"company": company, "internship": internship, "student": student, "resume": resume}


def submit(service, world, student=None, resume=None, internship=None):
    student = student or world["student"]
    return service.submit(
        student["_id"],
        str((internship or world["internship"])["_id"]),
        str((resume or world["resume"])["_id"]),
        "  I would love to join the team.  ",
    )


def test_submit_creates_pending_application_and_counts(service, world, mongo):
    application, count = submit(service, world)

    assert application["status"] == "pending"
    assert application["cover_letter"] == "I would love to join the team."
    assert application["internship_title"] == "Backend Engineering Intern"
    assert application["student_name"] == "Ana Lima"
    assert "active_key" not in application
    assert count == 1
    assert mongo[COLLECTIONS["internships"]].find_one()["applications_count"] == 1


def test_submit_response_matches_stored_record(service, world):
    application, _ = submit(service, world)
    stored = service.get_application({"student_id": world["student"]["_id"]}, application["id"])

    assert stored["applied_at"] == application["applied_at"]
    assert stored["updated_at"] == application["updated_at"]
    assert application["applied_at"].microsecond % 1000 == 0


def test_submit_notifies_company(service, world, notifier):
    submit(service, world)
    assert notifier.sent[0][0] == "company-1@example.com"
    assert notifier.sent[0][1] == "application_received"


def test_incomplete_profile_lists_missing_fields(service, world, mongo):
    student = create_student("student-2", bio="Too short", phone=None, skills=[])
    resume = create_resume(student)

    with pytest.raises(ProfileIncomplete) as exc:
        submit(service, world, student=student, resume=resume)

    assert exc.value.missing_fields == ["bio", "skills", "phone"]
    assert exc.value.to_dict()["missing_fields"] == ["bio", "skills", "phone"]
    assert mongo[COLLECTIONS["applications"]].count_documents({}) == 0


@pytest.mark.parametrize("scan_status", ["pending", "rejected"])
def test_unscanned_resume_is_not_eligible(service, world, scan_status):
    resume = create_resume(world["student"], scan_status=scan_status)
    with pytest.raises(ResumeNotEligible):
        submit(service, world, resume=resume)


def test_someone_elses_resume_is_not_eligible(service, world):
    other = create_student("student-2")
    with pytest.raises(ResumeNotEligible):
        submit(service, world, resume=create_resume(other))


@pytest.mark.parametrize("overrides", [
    {"status": "closed"},
    {"status": "draft"},
    {"application_deadline": utcnow() - timedelta(minutes=1)},
])
def test_closed_internship_rejects_applications(service, world, overrides):
    internship = create_internship(world["company"], **overrides)
    with pytest.raises(InternshipClosed):
        submit(service, world, internship=internship)


def test_second_submission_is_duplicate(service, world, mongo):
    submit(service, world)
    with pytest.raises(DuplicateApplication):
        submit(service, world)

    assert mongo[COLLECTIONS["applications"]].count_documents({}) == 1
    assert mongo[COLLECTIONS["internships"]].find_one()["applications_count"] == 1


def test_unique_index_guards_the_pair(service, world):
    """Two submits that both passed validation: the datastore lets one through."""
    first, _ = submit(service, world)
    doc = service.applications.get(first["id"])
    duplicate = {k: v for k, v in doc.items() if k not in ("_id", "active_key")}

    with pytest.raises(DuplicateApplication):
        service.applications.insert(duplicate)


def test_submit_withdraw_resubmit_creates_new_record(service, world, mongo):
    first, _ = submit(service, world)
    withdrawn, count = service.withdraw(world["student"]["_id"], first["id"])
    assert withdrawn["status"] == "withdrawn"
    assert count == 0

    second, count = submit(service, world)
    assert second["id"] != first["id"]
    assert count == 1
    assert service.applications.get(first["id"])["status"] == "withdrawn"
    assert mongo[COLLECTIONS["applications"]].count_documents({}) == 2


def test_withdraw_sets_reviewed_at_and_updated_at(service, world):
    application, _ = submit(service, world)
    withdrawn, _ = service.withdraw(world["student"]["_id"], application["id"])
    assert withdrawn["reviewed_at"] is not None
    assert withdrawn["updated_at"] >= application["applied_at"]


@pytest.mark.parametrize("final", ["accepted", "rejected"])
def test_withdrawing_a_decided_application_fails(service, world, final):
    application, _ = submit(service, world)
    service.update_status(world["company"]["_id"], application["id"], final)

    with pytest.raises(InvalidTransition):
        service.withdraw(world["student"]["_id"], application["id"])


def test_withdraw_twice_fails(service, world):
    application, _ = submit(service, world)
    service.withdraw(world["student"]["_id"], application["id"])
    with pytest.raises(InvalidTransition):
        service.withdraw(world["student"]["_id"], application["id"])


def test_only_owner_can_withdraw(service, world):
    application, _ = submit(service, world)
    other = create_student("student-2")
    with pytest.raises(NotOwner):
        service.withdraw(other["_id"], application["id"])


def test_company_status_update(service, world, notifier):
    application, _ = submit(service, world)
    updated, count = service.update_status(
        world["company"]["_id"], application["id"], "shortlisted", "Strong profile"
    )

    assert updated["status"] == "shortlisted"
    assert updated["feedback"] == "Strong profile"
    assert updated["reviewed_at"] is not None
    assert count == 1
    assert notifier.sent[-1][1] == "application_status_changed"
    assert notifier.sent[-1][2]["status"] == "shortlisted"


def test_other_company_cannot_update_status(service, world):
    application, _ = submit(service, world)
    other = create_company("company-2")

    with pytest.raises(NotOwner):
        service.update_status(other["_id"], application["id"], "accepted")
    assert service.applications.get(application["id"])["status"] == "pending"


def test_company_cannot_withdraw(service, world):
    application, _ = submit(service, world)
    with pytest.raises(Forbidden):
        service.update_status(world["company"]["_id"], application["id"], "withdrawn")


def test_stale_status_loses_compare_and_set(service, world):
    application, _ = submit(service, world)
    doc = service.applications.get(application["id"])
    service.update_status(world["company"]["_id"], application["id"], "rejected")

    # a second writer that still believes the application is pending
    assert service.applications.compare_and_set_status(doc["_id"], "pending", {"status": "accepted"}) is None
    assert service.applications.get(application["id"])["status"] == "rejected"


def test_count_matches_n_submissions(service, world, mongo):
    for i in range(5):
        student = create_student(f"student-{i + 10}")
        submit(service, world, student=student, resume=create_resume(student))

    assert mongo[COLLECTIONS["internships"]].find_one()["applications_count"] == 5


def test_failed_counter_write_is_queued_and_reconciled(service, world, mongo, monkeypatch):
    def broken(*args, **kwargs):
        raise PyMongoError("write concern timeout")

    monkeypatch.setattr(service.counters.internships.collection, "find_one_and_update", broken)
    application, count = submit(service, world)

    assert application["status"] == "pending"
    assert count is None
    assert mongo[COLLECTIONS["internships"]].find_one()["applications_count"] == 0
    assert mongo[COLLECTIONS["counter_reconciliation"]].count_documents({}) == 1

    result = InternshipCounters().reconcile()
    assert result == {str(world["internship"]["_id"]): 1}
    assert mongo[COLLECTIONS["internships"]].find_one()["applications_count"] == 1
    assert mongo[COLLECTIONS["counter_reconciliation"]].count_documents({}) == 0


def test_reconcile_all_ignores_withdrawn(service, world, mongo):
    first, _ = submit(service, world)
    service.withdraw(world["student"]["_id"], first["id"])
    other = create_student("student-2")
    submit(service, world, student=other, resume=create_resume(other))
    mongo[COLLECTIONS["internships"]].update_one({}, {"$set": {"applications_count": 42}})

    result = InternshipCounters().reconcile(all_internships=True)
    assert result == {str(world["internship"]["_id"]): 1}


def test_decrement_never_goes_below_zero(world, mongo):
    counters = InternshipCounters()
    assert counters.decrement_applications(world["internship"]["_id"]) == 0
    assert mongo[COLLECTIONS["counter_reconciliation"]].count_documents({}) == 1


def test_get_application_visibility(service, world):
    application, _ = submit(service, world)
    student_user = {"user_id": "student-1", "student_id": world["student"]["_id"]}
    company_user = {"user_id": "company-1", "company_id": world["company"]["_id"]}
    other_company = create_company("company-2")

    assert service.get_application(student_user, application["id"])["id"] == application["id"]
    assert service.get_application(company_user, application["id"])["id"] == application["id"]
    with pytest.raises(NotOwner):
        service.get_application({"user_id": "company-2", "company_id": other_company["_id"]},
                                application["id"])


def test_listing_for_student_and_company(service, world):
    application, _ = submit(service, world)
    other_internship = create_internship(world["company"], title="Data Engineering Intern")
    submit(service, world, internship=other_internship)

    mine = service.list_student_applications(world["student"]["_id"])
    assert mine["total"] == 2

    pending = service.list_company_applications(world["company"]["_id"], status="pending")
    assert pending["total"] == 2

    one = service.list_company_applications(world["company"]["_id"],
                                            internship_id=str(world["internship"]["_id"]))
    assert [a["id"] for a in one["applications"]] == [application["id"]]

    other = create_company("company-2")
    assert service.list_company_applications(other["_id"])["total"] == 0
    with pytest.raises(NotOwner):
        service.list_company_applications(other["_id"], internship_id=str(world["internship"]["_id"]))
