"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for persistence.
This allows us to:
1. Keep the ledger and codec free of any I/O
2. Use in-memory storage for testing
3. Swap the local JSON file for something else later

The interface is intentionally tiny: the whole ledger is one document,
so all we need is "store it" and "give it back".
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from money_planner.models.audit import AuditEvent


class DocumentStorageInterface(ABC):
    """
    Abstract interface for saving the serialized ledger document.

    Implementations must treat store() as all-or-nothing: after a failed
    store the previously saved document is still readable.
    """

    name: str = "storage"

    @abstractmethod
    def store(self, document: dict[str, Any]) -> None:
        """
        Save the document, replacing whatever was saved before.

        Raises:
            StorageWriteError: If the document could not be saved
        """
        pass

    @abstractmethod
    def load(self) -> Optional[dict[str, Any]]:
        """
        Return the saved document, or None if nothing was saved yet.

        Raises:
            StorageReadError: If something was saved but cannot be read
        """
        pass

    @abstractmethod
    def clear(self) -> None:
        """Forget the saved document."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class StorageReadError(StorageError):
    """Saved data exists but could not be read."""
    pass


class StorageWriteError(StorageError):
    """Data could not be written."""
    pass
