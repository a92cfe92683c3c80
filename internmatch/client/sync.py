"""
Cache synchronization: when to refetch and how mutations reach the store.

Refetching happens only on
1. an explicit refresh by the user, or
2. a full page reload landing on a data-bearing route, once per visit.
Client-side navigation never refetches; the store already holds the
entities and every mutation response is reconciled into it.

Save/unsave are idempotent on the server, so they are applied
optimistically. Application mutations are not; the store is patched from
the server response instead.
"""

import logging
import re
from typing import Callable, Optional

from internmatch.client.api import APIError, InternMatchAPI
from internmatch.client.commands import Notify, OptimisticCommand
from internmatch.client.store import (
    NormalizedStore,
    Patch,
    merge_patch,
    reconcile_application,
    reconcile_internship,
    reconcile_internship_list,
    reconcile_saved,
    reconcile_unsaved,
    replace_slice_patch,
    set_patch,
)

logger = logging.getLogger(__name__)

DATA_ROUTES = (
    re.compile(r"^/$"),
    re.compile(r"^/dashboard$"),
    re.compile(r"^/saved$"),
    re.compile(r"^/applications$"),
    re.compile(r"^/applications/(?P<application_id>[^/]+)$"),
    re.compile(r"^/company/applicants$"),
    re.compile(r"^/profile$"),
    re.compile(r"^/company/profile$"),
    re.compile(r"^/internship/(?P<internship_id>[^/]+)$"),
    re.compile(r"^/search$"),
    re.compile(r"^/explore$"),
)

LIST_LIMIT = 100


def is_data_route(route: str) -> bool:
    path = route.split("?", 1)[0].rstrip("/") or "/"
    return any(pattern.match(path) for pattern in DATA_ROUTES)


class CacheSync:

    def __init__(self, api: InternMatchAPI, store: NormalizedStore, notify: Notify):
        self.api = api
        self.store = store
        self.notify = notify
        self._visit_route: Optional[str] = None
        self._refreshed_this_visit = False

    # ============================================================
    # REFETCH
    # ============================================================

    def on_navigation(self, route: str, role: Optional[str], navigation_type: str) -> bool:
        """
        Called whenever a route renders. navigation_type is the browser's
        navigation kind for the page load ("navigate", "reload",
        "back_forward"). Returns True if a refetch was made.
        """
        if route != self._visit_route:
            self._visit_route = route
            self._refreshed_this_visit = False

        if navigation_type != "reload" or not role or self._refreshed_this_visit:
            return False
        if not is_data_route(route):
            return False

        self._refreshed_this_visit = True
        logger.info("Full reload detected on %s, refetching", route)
        self.refresh(route, role)
        return True

    def refresh(self, route: str, role: str) -> None:
        """Refetch the data a route shows. Failures go to the notification sink."""
        path = route.split("?", 1)[0].rstrip("/") or "/"
        try:
            self._refetch(path, role)
        except APIError as e:
            self.notify(f"Could not refresh: {e.message}")

    def _refetch(self, path: str, role: str) -> None:
        if path in ("/", "/dashboard"):
            if role == "student":
                self.load_internships()
                self.load_saved()
                self.load_applications(role)
                self.load_profile(role)
            elif role == "company":
                self.load_applications(role)
                self.load_profile(role)
        elif path == "/saved" and role == "student":
            self.load_saved()
        elif path in ("/applications", "/company/applicants"):
            self.load_applications(role)
        elif path in ("/profile", "/company/profile"):
            self.load_profile(role)
        elif path.startswith("/applications/"):
            self.load_application(path.rsplit("/", 1)[1])
        elif path.startswith("/internship/"):
            self.load_internship(path.rsplit("/", 1)[1])
        elif path in ("/search", "/explore"):
            self.load_internships()

    # ==================== LOADERS ====================

    def load_internships(self, **params) -> None:
        params.setdefault("limit", 50)
        data = self.api.list_internships(**params)
        self.store.apply(reconcile_internship_list(self.store, data["internships"]))

    def load_internship(self, internship_id: str) -> None:
        self.store.apply(reconcile_internship(self.store, self.api.get_internship(internship_id)))

    def load_saved(self) -> None:
        data = self.api.list_saved(limit=LIST_LIMIT)
        fresh = {s["internship_id"]: s for s in data["saved"]}
        patch = Patch()
        for internship_id in self.store.ids("saved"):
            if internship_id not in fresh:
                patch = patch + reconcile_unsaved(self.store, internship_id)
        for saved in fresh.values():
            patch = patch + reconcile_saved(self.store, saved)
        self.store.apply(patch)

    def load_applications(self, role: str) -> None:
        if role == "company":
            data = self.api.company_applications(limit=LIST_LIMIT)
        else:
            data = self.api.student_applications(limit=LIST_LIMIT)
        apps = {a["id"]: a for a in data["applications"]}
        patch = replace_slice_patch(self.store, "applications", apps)
        for application in apps.values():
            patch = patch + reconcile_application(self.store, application)
        self.store.apply(patch)

    def load_application(self, application_id: str) -> None:
        self.store.apply(reconcile_application(self.store, self.api.get_application(application_id)))

    def load_profile(self, role: str) -> None:
        profile = self.api.company_profile() if role == "company" else self.api.student_profile()
        self.store.apply(set_patch("profile", "me", profile))

    # ============================================================
    # MUTATIONS
    # ============================================================

    def save_internship(self, internship_id: str) -> Optional[dict]:
        forward = set_patch("saved", internship_id, {"internship_id": internship_id, "pending": True})
        if self.store.get("internships", internship_id) is not None:
            forward = forward + merge_patch("internships", internship_id, {"is_saved": True})
        command = OptimisticCommand(
            forward,
            lambda: self.api.save_internship(internship_id),
            on_success=lambda saved: reconcile_saved(self.store, saved),
            failure_message="Could not save internship",
        )
        return command.execute(self.store, self.notify)

    def unsave_internship(self, internship_id: str) -> Optional[dict]:
        command = OptimisticCommand(
            reconcile_unsaved(self.store, internship_id),
            lambda: self.api.unsave_internship(internship_id),
            failure_message="Could not remove saved internship",
        )
        return command.execute(self.store, self.notify)

    def toggle_saved(self, internship_id: str) -> Optional[dict]:
        if self.store.get("saved", internship_id) is not None:
            return self.unsave_internship(internship_id)
        return self.save_internship(internship_id)

    def _mutate(self, request: Callable[[], dict], failure_message: str) -> Optional[dict]:
        """Send a non-idempotent mutation and reconcile the {application, applications_count} reply."""
        try:
            result = request()
        except APIError as e:
            self.notify(f"{failure_message}: {e.message}")
            return None
        self.store.apply(reconcile_application(
            self.store, result["application"], result.get("applications_count")
        ))
        return result

    def submit_application(self, internship_id: str, resume_id: str,
                           cover_letter: str) -> Optional[dict]:
        return self._mutate(
            lambda: self.api.submit_application(internship_id, resume_id, cover_letter),
            "Could not submit application",
        )

    def withdraw_application(self, application_id: str) -> Optional[dict]:
        return self._mutate(
            lambda: self.api.withdraw_application(application_id),
            "Could not withdraw application",
        )

    def update_application_status(self, application_id: str, status: str,
                                  feedback: Optional[str] = None) -> Optional[dict]:
        return self._mutate(
            lambda: self.api.update_application_status(application_id, status, feedback),
            "Could not update application",
        )
