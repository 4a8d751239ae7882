"""
Local JSON File Storage

DESIGN DECISION: A single JSON file is the default backend because:
1. The state is one small document
2. Users can open, back up and hand-edit the file
3. The file has the same shape as a JSON export, so an export
   can be dropped in place of the saved data

TRADEOFFS:
- One writer only (fine for a single local session)
- Each save rewrites the whole file (fine for personal-scale data)

Writes go to a temporary file first and are moved into place, so a crash
mid-write never leaves a half-written document behind.
"""

import json
import os
from pathlib import Path
from typing import Any, Optional

from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from money_planner.config import get_settings
from money_planner.models.audit import AuditEvent
from money_planner.services.storage.interface import (
    AuditStorageInterface,
    DocumentStorageInterface,
    StorageReadError,
    StorageWriteError,
)


class JsonFileDocumentStorage(DocumentStorageInterface):
    """
    Stores the ledger document as pretty-printed JSON on disk.

    Transient OS errors on write are retried with exponential backoff.
    """

    name = "json_file"

    def __init__(
        self,
        path: Optional[Path] = None,
        write_attempts: Optional[int] = None,
    ):
        settings = get_settings().storage
        self._path = Path(path) if path is not None else settings.data_file
        self._write_attempts = write_attempts or settings.write_attempts

    @property
    def path(self) -> Path:
        return self._path

    def store(self, document: dict[str, Any]) -> None:
        """Write the document atomically."""
        try:
            payload = json.dumps(document, indent=2, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise StorageWriteError(f"Document is not JSON serializable: {e}")

        try:
            for attempt in Retrying(
                stop=stop_after_attempt(self._write_attempts),
                wait=wait_exponential(multiplier=0.1, min=0.1, max=2),
                retry=retry_if_exception_type(OSError),
                reraise=True,
            ):
                with attempt:
                    self._write_atomically(payload)
        except OSError as e:
            raise StorageWriteError(f"Failed to write {self._path}: {e}")

    def _write_atomically(self, payload: str) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self._path.with_name(self._path.name + ".tmp")
        temp_path.write_text(payload, encoding="utf-8")
        os.replace(temp_path, self._path)

    def load(self) -> Optional[dict[str, Any]]:
        if not self._path.exists():
            return None

        try:
            text = self._path.read_text(encoding="utf-8")
        except OSError as e:
            raise StorageReadError(f"Failed to read {self._path}: {e}")

        try:
            document = json.loads(text)
        except json.JSONDecodeError as e:
            raise StorageReadError(f"{self._path} is not valid JSON: {e}")

        if not isinstance(document, dict):
            raise StorageReadError(f"{self._path} does not contain a JSON object")
        return document

    def clear(self) -> None:
        self._path.unlink(missing_ok=True)


class JsonLinesAuditStorage(AuditStorageInterface):
    """
    Append-only audit log, one JSON object per line.

    Reading back is for display only, so unreadable lines are skipped.
    """

    def __init__(self, path: Path):
        self._path = Path(path)

    def append_event(self, event: AuditEvent) -> bool:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("a", encoding="utf-8") as handle:
                handle.write(event.to_json_line() + "\n")
        except OSError as e:
            raise StorageWriteError(f"Failed to append to {self._path}: {e}")
        return True

    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        if not self._path.exists():
            return []

        events = []
        with self._path.open(encoding="utf-8") as handle:
            for line in handle:
                line = line.strip()
                if not line:
                    continue
                try:
                    events.append(AuditEvent.model_validate_json(line))
                except ValueError:
                    continue  # Skip malformed lines

        events.reverse()
        return events[:limit]
