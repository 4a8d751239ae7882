"""
In-Memory Storage

Used by tests and as the fallback when no file storage can be set up.
Nothing survives the process.
"""

import copy
from typing import Any, Optional

from money_planner.models.audit import AuditEvent
from money_planner.services.storage.interface import (
    AuditStorageInterface,
    DocumentStorageInterface,
)


class InMemoryDocumentStorage(DocumentStorageInterface):
    """Keeps a private deep copy of the last stored document."""

    name = "memory"

    def __init__(self, document: Optional[dict[str, Any]] = None):
        self._document = copy.deepcopy(document)
        self.store_count = 0

    def store(self, document: dict[str, Any]) -> None:
        self._document = copy.deepcopy(document)
        self.store_count += 1

    def load(self) -> Optional[dict[str, Any]]:
        return copy.deepcopy(self._document)

    def clear(self) -> None:
        self._document = None


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of events."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return list(reversed(self._events))[:limit]
