"""
Request tokens for discarding superseded results.

A ViewSession belongs to one view (one chart or table on one page). Each
parameter change (period, filter, sort, zoom) calls begin(); when the
fetch for that change completes, the caller computes the view only if
accept() still recognises the token as the newest. Sessions are plain
objects owned by their caller, never module-level registries.
"""

import logging
import threading
import uuid
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RequestToken:
    view_id: str
    generation: int
    params: dict[str, Any] = field(default_factory=dict)


class ViewSession:
    """Generation counter for one view's in-flight requests."""

    def __init__(self, view_id: str | None = None):
        self.view_id = view_id or uuid.uuid4().hex
        self._generation = 0
        self._lock = threading.Lock()

    def begin(self, **params: Any) -> RequestToken:
        """Issue a token for a new parameter set; older tokens become stale."""
        with self._lock:
            self._generation += 1
            return RequestToken(view_id=self.view_id, generation=self._generation, params=dict(params))

    def is_current(self, token: RequestToken) -> bool:
        with self._lock:
            return token.view_id == self.view_id and token.generation == self._generation

    def accept(self, token: RequestToken) -> bool:
        """True if the result for token should reach the engine."""
        current = self.is_current(token)
        if not current:
            logger.debug(f"Discarding superseded result {token.generation} for view {self.view_id}")
        return current

    def cancel(self) -> None:
        """Invalidate every outstanding token."""
        with self._lock:
            self._generation += 1
