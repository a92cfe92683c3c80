"""
Normalized client-side store.

Every entity lives exactly once, keyed by id, in one of the slices:

    internships   internship id -> internship
    applications  application id -> application
    saved         internship id -> saved bookmark
    profile       "me" -> the signed-in user's profile

Views read through selectors, so updating an entity once updates every
view that shows it. All writes go through apply(), which takes a Patch
and returns the Patch that undoes it.

The store is a plain object handed to whoever needs it; there is no
module-level instance.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, NamedTuple, Optional, Tuple

SLICES = ("internships", "applications", "saved", "profile")


class Change(NamedTuple):
    slice_name: str
    entity_id: str
    value: Optional[dict]  # None removes the entity
    merge: bool = False    # shallow-merge into the entity as it is at apply time


@dataclass(frozen=True)
class Patch:
    changes: Tuple[Change, ...] = field(default_factory=tuple)

    def __add__(self, other: "Patch") -> "Patch":
        return Patch(self.changes + other.changes)

    def __bool__(self) -> bool:
        return bool(self.changes)


class NormalizedStore:

    def __init__(self):
        self._slices: Dict[str, Dict[str, dict]] = {name: {} for name in SLICES}
        self._subscribers: List[Callable[[Patch], None]] = []

    # ==================== READ ====================

    def get(self, slice_name: str, entity_id: str) -> Optional[dict]:
        entity = self._slices[slice_name].get(entity_id)
        return dict(entity) if entity is not None else None

    def all(self, slice_name: str) -> List[dict]:
        return [dict(e) for e in self._slices[slice_name].values()]

    def ids(self, slice_name: str) -> List[str]:
        return list(self._slices[slice_name])

    # ==================== WRITE ====================

    def apply(self, patch: Patch) -> Patch:
        """Apply every change in order; returns the inverse patch."""
        inverse = []
        for change in patch.changes:
            entities = self._slices[change.slice_name]
            previous = entities.get(change.entity_id)
            inverse.append(Change(change.slice_name, change.entity_id, previous))
            if change.value is None:
                entities.pop(change.entity_id, None)
            elif change.merge:
                entities[change.entity_id] = {**(previous or {}), **change.value}
            else:
                entities[change.entity_id] = dict(change.value)
        undo = Patch(tuple(reversed(inverse)))
        if patch:
            for callback in list(self._subscribers):
                callback(patch)
        return undo

    def subscribe(self, callback: Callable[[Patch], None]) -> Callable[[], None]:
        """Call `callback(patch)` after every applied patch. Returns an unsubscribe function."""
        self._subscribers.append(callback)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)
        return unsubscribe


# ============================================================
# PATCH BUILDERS
# ============================================================

def set_patch(slice_name: str, entity_id: str, value: Optional[dict]) -> Patch:
    return Patch((Change(slice_name, entity_id, value),))


def merge_patch(slice_name: str, entity_id: str, fields: dict) -> Patch:
    """Shallow-merge `fields` into the entity (creating it if absent)."""
    return Patch((Change(slice_name, entity_id, dict(fields), merge=True),))


def replace_slice_patch(store: NormalizedStore, slice_name: str,
                        entities: Dict[str, dict]) -> Patch:
    """Make the slice hold exactly `entities`, as after a full refetch."""
    stale = [Change(slice_name, eid, None) for eid in store.ids(slice_name) if eid not in entities]
    fresh = [Change(slice_name, eid, value) for eid, value in entities.items()]
    return Patch(tuple(stale + fresh))


# ============================================================
# RECONCILIATION (server payload -> patch), one per entity type
# ============================================================

def reconcile_internship(store: NormalizedStore, internship: dict) -> Patch:
    """
    Merge a server internship into the store.

    Flags the server omits (is_saved / has_applied are only sent to
    students) keep their cached values.
    """
    fields = {k: v for k, v in internship.items() if not (k in ("is_saved", "has_applied") and v is None)}
    return merge_patch("internships", internship["id"], fields)


def reconcile_application(store: NormalizedStore, application: dict,
                          applications_count: Optional[int] = None) -> Patch:
    """
    Store the application and fold its effects into the internship:
    has_applied and the applications_count badge. An internship that is
    not cached is left alone.
    """
    patch = set_patch("applications", application["id"], application)
    internship_id = application["internship_id"]
    if store.get("internships", internship_id) is None:
        return patch
    fields: Dict[str, Any] = {"has_applied": application.get("status") != "withdrawn"}
    if applications_count is not None:
        fields["applications_count"] = applications_count
    return patch + merge_patch("internships", internship_id, fields)


def reconcile_saved(store: NormalizedStore, saved: dict) -> Patch:
    internship_id = saved["internship_id"]
    bookmark = {k: v for k, v in saved.items() if k != "internship"}
    patch = set_patch("saved", internship_id, bookmark)
    if saved.get("internship"):
        return patch + reconcile_internship(store, {**saved["internship"], "is_saved": True})
    return patch + _saved_flag(store, internship_id, True)


def reconcile_unsaved(store: NormalizedStore, internship_id: str) -> Patch:
    return set_patch("saved", internship_id, None) + _saved_flag(store, internship_id, False)


def _saved_flag(store: NormalizedStore, internship_id: str, is_saved: bool) -> Patch:
    if store.get("internships", internship_id) is None:
        return Patch()
    return merge_patch("internships", internship_id, {"is_saved": is_saved})


def reconcile_internship_list(store: NormalizedStore, internships: Iterable[dict]) -> Patch:
    patch = Patch()
    for internship in internships:
        patch = patch + reconcile_internship(store, internship)
    return patch


# ============================================================
# SELECTORS
# ============================================================

def select_internship(store: NormalizedStore, internship_id: str) -> Optional[dict]:
    """Internship as a detail page shows it, with saved/applied flags from the store."""
    internship = store.get("internships", internship_id)
    if internship is None:
        return None
    internship["is_saved"] = store.get("saved", internship_id) is not None or bool(internship.get("is_saved"))
    applications = [a for a in store.all("applications") if a["internship_id"] == internship_id]
    if applications:
        internship["has_applied"] = any(a.get("status") != "withdrawn" for a in applications)
    else:
        internship["has_applied"] = bool(internship.get("has_applied"))
    return internship


def select_dashboard_cards(store: NormalizedStore) -> List[dict]:
    return [select_internship(store, iid) for iid in store.ids("internships")]


def select_saved_internships(store: NormalizedStore) -> List[dict]:
    out = []
    for internship_id in store.ids("saved"):
        internship = select_internship(store, internship_id)
        if internship is not None:
            out.append(internship)
    return out


def select_applications(store: NormalizedStore, status: Optional[str] = None) -> List[dict]:
    apps = store.all("applications")
    if status:
        apps = [a for a in apps if a.get("status") == status]
    return apps
