"""
Client state cache for the InternMatch API.

Usage:
    store = NormalizedStore()
    sync = CacheSync(InternMatchAPI(httpx.Client(base_url=...), token), store, toast)
    sync.on_navigation("/dashboard", "student", "reload")
"""

from internmatch.client.api import APIError, InternMatchAPI
from internmatch.client.commands import OptimisticCommand
from internmatch.client.store import NormalizedStore, Patch
from internmatch.client.sync import CacheSync

__all__ = [
    "APIError",
    "CacheSync",
    "InternMatchAPI",
    "NormalizedStore",
    "OptimisticCommand",
    "Patch",
]
