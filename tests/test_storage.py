"""Tests for storage backends and the audit logger."""

import json
import pytest

from money_planner.audit import AuditLogger
from money_planner.config import AppSettings, StorageSettings, validate_all_settings
from money_planner.models.audit import AuditEventBuilder, AuditEventType
from money_planner.models.finance import CurrencyCode
from money_planner.services.storage import (
    AuditStorageInterface,
    InMemoryAuditStorage,
    InMemoryDocumentStorage,
    JsonFileDocumentStorage,
    JsonLinesAuditStorage,
    StorageReadError,
    StorageWriteError,
)


class TestInMemoryDocumentStorage:
    """Tests for InMemoryDocumentStorage."""

    def test_empty_storage_loads_none(self):
        assert InMemoryDocumentStorage().load() is None

    def test_store_and_load_are_copies(self):
        storage = InMemoryDocumentStorage()
        document = {"transactions": [{"id": 1}]}
        storage.store(document)
        document["transactions"].clear()

        loaded = storage.load()
        assert loaded == {"transactions": [{"id": 1}]}
        loaded["transactions"].clear()
        assert storage.load() == {"transactions": [{"id": 1}]}
        assert storage.store_count == 1

    def test_clear(self):
        storage = InMemoryDocumentStorage({"currentBalance": 1})
        storage.clear()
        assert storage.load() is None


class TestJsonFileDocumentStorage:
    """Tests for JsonFileDocumentStorage."""

    def test_missing_file_loads_none(self, tmp_path):
        storage = JsonFileDocumentStorage(tmp_path / "missing.json")
        assert storage.load() is None

    def test_store_and_load(self, tmp_path):
        path = tmp_path / "nested" / "money-planner.json"
        storage = JsonFileDocumentStorage(path)
        document = {"currentBalance": 12.5, "transactions": [], "expenses": {"food": 3}}

        storage.store(document)

        assert storage.load() == document
        assert json.loads(path.read_text(encoding="utf-8")) == document
        assert not (tmp_path / "nested" / "money-planner.json.tmp").exists()

    def test_store_replaces_previous_document(self, tmp_path):
        storage = JsonFileDocumentStorage(tmp_path / "data.json")
        storage.store({"currentBalance": 1})
        storage.store({"currentBalance": 2})
        assert storage.load() == {"currentBalance": 2}

    def test_invalid_json_raises_read_error(self, tmp_path):
        path = tmp_path / "data.json"
        path.write_text("{broken", encoding="utf-8")
        with pytest.raises(StorageReadError):
            JsonFileDocumentStorage(path).load()

    def test_non_object_raises_read_error(self, tmp_path):
        path = tmp_path / "data.json"
        path.write_text("[1, 2]", encoding="utf-8")
        with pytest.raises(StorageReadError):
            JsonFileDocumentStorage(path).load()

    def test_unwritable_location_raises_write_error(self, tmp_path):
        blocker = tmp_path / "not-a-directory"
        blocker.write_text("", encoding="utf-8")
        storage = JsonFileDocumentStorage(blocker / "data.json", write_attempts=1)

        with pytest.raises(StorageWriteError):
            storage.store({"currentBalance": 1})

    def test_unserializable_document_raises_write_error(self, tmp_path):
        storage = JsonFileDocumentStorage(tmp_path / "data.json")
        with pytest.raises(StorageWriteError):
            storage.store({"bad": object()})
        assert storage.load() is None

    def test_clear(self, tmp_path):
        storage = JsonFileDocumentStorage(tmp_path / "data.json")
        storage.store({})
        storage.clear()
        storage.clear()
        assert storage.load() is None

    def test_path_from_settings(self, tmp_path, monkeypatch):
        monkeypatch.setenv("MONEY_PLANNER_STORAGE_DATA_FILE", str(tmp_path / "env.json"))
        storage = JsonFileDocumentStorage()
        assert storage.path == tmp_path / "env.json"


class TestJsonLinesAuditStorage:
    """Tests for the append-only audit file."""

    def test_append_and_read_newest_first(self, tmp_path):
        storage = JsonLinesAuditStorage(tmp_path / "audit.log")
        storage.append_event(AuditEventBuilder.ledger_reset())
        storage.append_event(AuditEventBuilder.state_saved("memory", 0))

        events = storage.get_recent_events()
        assert [e.event_type for e in events] == [
            AuditEventType.STATE_SAVED,
            AuditEventType.LEDGER_RESET,
        ]
        assert len(storage.get_recent_events(limit=1)) == 1

    def test_malformed_lines_are_skipped(self, tmp_path):
        path = tmp_path / "audit.log"
        storage = JsonLinesAuditStorage(path)
        storage.append_event(AuditEventBuilder.ledger_reset())
        with path.open("a", encoding="utf-8") as handle:
            handle.write("garbage\n\n")

        assert len(storage.get_recent_events()) == 1

    def test_missing_file(self, tmp_path):
        assert JsonLinesAuditStorage(tmp_path / "none.log").get_recent_events() == []


class BrokenAuditStorage(AuditStorageInterface):
    def append_event(self, event):
        raise RuntimeError("audit backend down")

    def get_recent_events(self, limit=100):
        return []


class TestAuditLogger:
    """Tests for AuditLogger."""

    def test_logs_to_storage(self):
        storage = InMemoryAuditStorage()
        logger = AuditLogger(storage)

        assert logger.log(AuditEventBuilder.ledger_reset()) is True
        logger.log_validation_failed("add_income", "invalid-amount", "bad")

        events = logger.recent_events()
        assert events[0].event_type == AuditEventType.VALIDATION_FAILED
        assert events[0].error_code == "invalid-amount"
        assert events[1].event_type == AuditEventType.LEDGER_RESET

    def test_local_only_logger(self):
        logger = AuditLogger()
        assert logger.log(AuditEventBuilder.ledger_reset()) is True
        assert logger.recent_events() == []

    def test_storage_failure_does_not_raise(self):
        logger = AuditLogger(BrokenAuditStorage())
        assert logger.log(AuditEventBuilder.ledger_reset()) is False

    def test_log_error(self):
        storage = InMemoryAuditStorage()
        AuditLogger(storage).log_error("io", "boom", {"path": "x"})

        event = storage.get_recent_events()[0]
        assert event.event_type == AuditEventType.SYSTEM_ERROR
        assert event.details == {"path": "x"}


class TestSettings:
    """Tests for pydantic-settings configuration."""

    def test_defaults(self):
        settings = AppSettings(_env_file=None)
        assert settings.default_currency == CurrencyCode.USD
        assert settings.autosave_interval_seconds == 30
        assert settings.recent_transactions_limit == 10
        assert settings.app_version == "1.0"

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("MONEY_PLANNER_DEFAULT_CURRENCY", "EUR")
        monkeypatch.setenv("MONEY_PLANNER_STORAGE_WRITE_ATTEMPTS", "5")
        assert AppSettings(_env_file=None).default_currency == CurrencyCode.EUR
        assert StorageSettings().write_attempts == 5

    def test_validate_all_settings(self):
        assert validate_all_settings() == {"storage": True, "app": True}

    def test_invalid_storage_settings_are_reported(self, monkeypatch):
        monkeypatch.setenv("MONEY_PLANNER_STORAGE_WRITE_ATTEMPTS", "0")
        status = validate_all_settings()
        assert status["storage"] is False
        assert "write_attempts" in status["storage_error"]
        assert status["app"] is True


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
