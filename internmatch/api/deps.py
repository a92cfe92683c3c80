"""
API Dependencies
Service factories injected into route handlers. Tests swap the external
collaborators (storage, email) through app.dependency_overrides.
"""

from functools import lru_cache

from fastapi import BackgroundTasks, Depends

from internmatch.services.application_service import ApplicationService
from internmatch.services.counters import InternshipCounters
from internmatch.services.internship_service import InternshipService
from internmatch.services.notifier import EmailNotifier
from internmatch.services.profile_service import ProfileService
from internmatch.services.resume_store import ResumeStoreAdapter
from internmatch.services.saved_service import SavedInternshipService
from internmatch.services.storage_client import SupabaseStorageClient


@lru_cache()
def get_storage_client() -> SupabaseStorageClient:
    return SupabaseStorageClient()


def get_notifier(background_tasks: BackgroundTasks) -> EmailNotifier:
    """Emails go out after the response has been sent."""
    return EmailNotifier(schedule=background_tasks.add_task)


def get_counters() -> InternshipCounters:
    return InternshipCounters()


def get_application_service(
    notifier: EmailNotifier = Depends(get_notifier),
    counters: InternshipCounters = Depends(get_counters)
) -> ApplicationService:
    return ApplicationService(notifier=notifier, counters=counters)


def get_resume_store(
    storage: SupabaseStorageClient = Depends(get_storage_client),
    notifier: EmailNotifier = Depends(get_notifier)
) -> ResumeStoreAdapter:
    return ResumeStoreAdapter(storage, notifier)


def get_internship_service(counters: InternshipCounters = Depends(get_counters)) -> InternshipService:
    return InternshipService(counters=counters)


def get_profile_service() -> ProfileService:
    return ProfileService()


def get_saved_service() -> SavedInternshipService:
    return SavedInternshipService()
