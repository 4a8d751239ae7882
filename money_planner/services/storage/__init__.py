"""
Storage Services Package

Provides the abstract persistence interfaces and their implementations:
a local JSON file for real use and in-memory storage for tests.
"""

from money_planner.services.storage.interface import (
    AuditStorageInterface,
    DocumentStorageInterface,
    StorageError,
    StorageReadError,
    StorageWriteError,
)
from money_planner.services.storage.json_file import (
    JsonFileDocumentStorage,
    JsonLinesAuditStorage,
)
from money_planner.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryDocumentStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "DocumentStorageInterface",
    # Exceptions
    "StorageError",
    "StorageReadError",
    "StorageWriteError",
    # Implementations
    "InMemoryAuditStorage",
    "InMemoryDocumentStorage",
    "JsonFileDocumentStorage",
    "JsonLinesAuditStorage",
]
