import httpx
import pytest

from conftest import create_company, create_internship, create_resume, create_student, make_token
from internmatch.client import APIError, CacheSync, InternMatchAPI, NormalizedStore
from internmatch.client.store import (
    merge_patch,
    reconcile_application,
    select_applications,
    select_dashboard_cards,
    select_internship,
    select_saved_internships,
    set_patch,
)
from internmatch.client.sync import is_data_route

INTERNSHIP = {"id": "i1", "title": "Backend Intern", "applications_count": 3, "views_count": 10}


class Toasts(list):
    def __call__(self, message):
        self.append(message)


def mock_api(handler):
    http = httpx.Client(transport=httpx.MockTransport(handler), base_url="http://api.test")
    return InternMatchAPI(http, token="t")


@pytest.fixture
def store():
    store = NormalizedStore()
    store.apply(set_patch("internships", "i1", INTERNSHIP))
    return store


# ============================================================
# STORE
# ============================================================

def test_apply_returns_inverse(store):
    undo = store.apply(merge_patch("internships", "i1", {"title": "Changed"})
                       + set_patch("saved", "i1", {"internship_id": "i1"}))
    assert store.get("internships", "i1")["title"] == "Changed"

    store.apply(undo)
    assert store.get("internships", "i1") == INTERNSHIP
    assert store.get("saved", "i1") is None


def test_composed_merges_do_not_clobber(store):
    store.apply(merge_patch("internships", "i1", {"is_saved": True})
                + merge_patch("internships", "i1", {"has_applied": True}))
    entity = store.get("internships", "i1")
    assert entity["is_saved"] is True
    assert entity["has_applied"] is True


def test_subscribers_see_patches(store):
    seen = []
    unsubscribe = store.subscribe(seen.append)
    store.apply(merge_patch("internships", "i1", {"views_count": 11}))
    unsubscribe()
    store.apply(merge_patch("internships", "i1", {"views_count": 12}))
    assert len(seen) == 1


def test_application_reconcile_updates_every_view(store):
    store.apply(set_patch("saved", "i1", {"internship_id": "i1"}))
    application = {"id": "a1", "internship_id": "i1", "status": "pending"}

    store.apply(reconcile_application(store, application, applications_count=4))

    assert select_dashboard_cards(store)[0]["applications_count"] == 4
    assert select_saved_internships(store)[0]["applications_count"] == 4
    detail = select_internship(store, "i1")
    assert detail["applications_count"] == 4
    assert detail["has_applied"] is True
    assert select_applications(store, "pending") == [application]


def test_application_for_uncached_internship_adds_no_card():
    store = NormalizedStore()
    application = {"id": "a1", "internship_id": "i-uncached", "status": "pending"}

    store.apply(reconcile_application(store, application, applications_count=3))

    assert select_dashboard_cards(store) == []
    assert store.get("internships", "i-uncached") is None
    assert select_applications(store) == [application]


def test_withdrawn_application_clears_has_applied(store):
    store.apply(reconcile_application(store, {"id": "a1", "internship_id": "i1", "status": "pending"}))
    store.apply(reconcile_application(store, {"id": "a1", "internship_id": "i1", "status": "withdrawn"}, 3))
    assert select_internship(store, "i1")["has_applied"] is False


# ============================================================
# OPTIMISTIC UPDATES
# ============================================================

def test_failed_save_rolls_back_and_notifies(store):
    toasts = Toasts()
    api = mock_api(lambda request: httpx.Response(500, json={"error": "Internal server error"}))
    sync = CacheSync(api, store, toasts)

    assert sync.save_internship("i1") is None

    assert store.get("saved", "i1") is None
    assert store.get("internships", "i1") == INTERNSHIP
    assert toasts == ["Could not save internship: Internal server error"]


def test_failed_unsave_restores_bookmark(store):
    store.apply(set_patch("saved", "i1", {"internship_id": "i1", "id": "s1"})
                + merge_patch("internships", "i1", {"is_saved": True}))
    toasts = Toasts()

    def handler(request):
        raise httpx.ConnectError("offline", request=request)

    sync = CacheSync(mock_api(handler), store, toasts)
    sync.toggle_saved("i1")

    assert store.get("saved", "i1") == {"internship_id": "i1", "id": "s1"}
    assert store.get("internships", "i1")["is_saved"] is True
    assert toasts == ["Could not remove saved internship: Network error, please try again"]


def test_successful_save_replaces_placeholder(store):
    def handler(request):
        return httpx.Response(201, json={
            "id": "s1", "internship_id": "i1", "saved_at": "2026-01-01T00:00:00",
            "internship": {**INTERNSHIP, "applications_count": 5, "is_saved": True},
        })

    sync = CacheSync(mock_api(handler), store, Toasts())
    sync.save_internship("i1")

    assert store.get("saved", "i1") == {"id": "s1", "internship_id": "i1", "saved_at": "2026-01-01T00:00:00"}
    assert select_internship(store, "i1")["applications_count"] == 5


def test_failed_application_mutation_leaves_store_alone(store):
    toasts = Toasts()
    api = mock_api(lambda request: httpx.Response(409, json={"error": "You have already applied"}))
    sync = CacheSync(api, store, toasts)

    assert sync.submit_application("i1", "r1", "Hello") is None
    assert store.all("applications") == []
    assert toasts == ["Could not submit application: You have already applied"]


def test_api_error_carries_body():
    api = mock_api(lambda request: httpx.Response(
        400, json={"error": "Complete your profile", "missing_fields": ["bio"]}
    ))
    with pytest.raises(APIError) as exc:
        api.submit_application("i1", "r1", "Hi")
    assert exc.value.status_code == 400
    assert exc.value.body["missing_fields"] == ["bio"]


# ============================================================
# REFETCH POLICY
# ============================================================

class RecordingSync(CacheSync):
    def __init__(self):
        super().__init__(api=None, store=NormalizedStore(), notify=Toasts())
        self.refreshed = []

    def refresh(self, route, role):
        self.refreshed.append(route)


@pytest.mark.parametrize("route,expected", [
    ("/", True),
    ("/dashboard", True),
    ("/applications/abc", True),
    ("/internship/123", True),
    ("/company/applicants", True),
    ("/login", False),
    ("/settings", False),
])
def test_data_routes(route, expected):
    assert is_data_route(route) is expected


def test_client_navigation_never_refetches():
    sync = RecordingSync()
    assert sync.on_navigation("/dashboard", "student", "navigate") is False
    assert sync.on_navigation("/saved", "student", "back_forward") is False
    assert sync.refreshed == []


def test_reload_refetches_once_per_visit():
    sync = RecordingSync()
    assert sync.on_navigation("/dashboard", "student", "reload") is True
    assert sync.on_navigation("/dashboard", "student", "reload") is False
    assert sync.on_navigation("/saved", "student", "navigate") is False
    assert sync.on_navigation("/dashboard", "student", "reload") is True
    assert sync.refreshed == ["/dashboard", "/dashboard"]


def test_reload_needs_data_route_and_role():
    sync = RecordingSync()
    assert sync.on_navigation("/login", "student", "reload") is False
    assert sync.on_navigation("/dashboard", None, "reload") is False
    assert sync.refreshed == []


def test_refresh_failure_notifies(store):
    toasts = Toasts()
    sync = CacheSync(mock_api(lambda request: httpx.Response(503, json={"error": "Down"})), store, toasts)
    sync.refresh("/saved", "student")
    assert toasts == ["Could not refresh: Down"]


# ============================================================
# AGAINST THE REAL API
# ============================================================

def test_student_session_against_api(client):
    student = create_student()
    company = create_company()
    internship = create_internship(company)
    resume = create_resume(student)
    internship_id = str(internship["_id"])

    store = NormalizedStore()
    toasts = Toasts()
    sync = CacheSync(InternMatchAPI(client, token=make_token("student-1")), store, toasts)

    assert sync.on_navigation("/dashboard", "student", "reload") is True
    assert select_internship(store, internship_id)["has_applied"] is False
    assert store.get("profile", "me")["full_name"] == "Ana Lima"

    sync.toggle_saved(internship_id)
    assert select_internship(store, internship_id)["is_saved"] is True

    result = sync.submit_application(internship_id, str(resume["_id"]), "Hello there")
    assert result["applications_count"] == 1
    card = select_dashboard_cards(store)[0]
    assert card["has_applied"] is True
    assert card["applications_count"] == 1

    sync.withdraw_application(result["application"]["id"])
    detail = select_internship(store, internship_id)
    assert detail["has_applied"] is False
    assert detail["applications_count"] == 0

    assert sync.submit_application(internship_id, "not-an-id", "Again") is None
    assert toasts == ["Could not submit application: Resume not found"]
