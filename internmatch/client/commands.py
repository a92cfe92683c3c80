"""
Optimistic commands.

A command carries a forward patch (what the UI should show right away)
and the request that makes it true on the server. The inverse patch is
taken from the store when the forward patch is applied, so rolling back
restores exactly what was there before.
"""

import logging
from typing import Any, Callable, Optional

from internmatch.client.api import APIError
from internmatch.client.store import NormalizedStore, Patch

logger = logging.getLogger(__name__)

Notify = Callable[[str], None]


class OptimisticCommand:

    def __init__(self, forward: Patch, request: Callable[[], Any],
                 on_success: Optional[Callable[[Any], Patch]] = None,
                 failure_message: str = "Something went wrong"):
        self.forward = forward
        self.request = request
        self.on_success = on_success
        self.failure_message = failure_message
        self.inverse: Optional[Patch] = None

    def execute(self, store: NormalizedStore, notify: Notify) -> Optional[Any]:
        """
        Apply forward, send the request, then either fold the server
        response in or roll back and notify. Returns the server response,
        or None after a rollback.
        """
        self.inverse = store.apply(self.forward)
        try:
            result = self.request()
        except APIError as e:
            self.rollback(store)
            logger.info("Optimistic update rolled back: %s", e)
            notify(f"{self.failure_message}: {e.message}")
            return None
        if self.on_success is not None:
            store.apply(self.on_success(result))
        return result

    def rollback(self, store: NormalizedStore) -> None:
        if self.inverse is not None:
            store.apply(self.inverse)
            self.inverse = None
