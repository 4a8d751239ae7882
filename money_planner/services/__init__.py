"""Services package."""

from money_planner.services.storage import (
    AuditStorageInterface,
    DocumentStorageInterface,
    InMemoryAuditStorage,
    InMemoryDocumentStorage,
    JsonFileDocumentStorage,
    JsonLinesAuditStorage,
    StorageError,
    StorageReadError,
    StorageWriteError,
)

__all__ = [
    "AuditStorageInterface",
    "DocumentStorageInterface",
    "InMemoryAuditStorage",
    "InMemoryDocumentStorage",
    "JsonFileDocumentStorage",
    "JsonLinesAuditStorage",
    "StorageError",
    "StorageReadError",
    "StorageWriteError",
]
