"""Tests for the manual parameter entry store."""

import pytest

from cmdprobe.core.exceptions import ResourceNotFoundError, StorageError
from cmdprobe.models.manual import ManualParameterEntry
from cmdprobe.models.operation import Parameter, ParameterSource
from cmdprobe.signatures.manual_store import ManualEntryStore


def _entry(name: str, type_: str = "string", **kwargs) -> ManualParameterEntry:
    return ManualParameterEntry(
        command_id="files.open", parameter=Parameter(name=name, type=type_), **kwargs
    )


class TestManualEntryStore:
    """Test in-memory entry management."""

    def test_entries_are_marked_manual(self) -> None:
        """Stored parameters carry the manual source."""
        store = ManualEntryStore()
        stored = store.add_entry(_entry("path"))
        assert stored.parameter.source is ParameterSource.MANUAL

    def test_add_replaces_same_name(self) -> None:
        """Adding an existing name replaces it and keeps created_at."""
        store = ManualEntryStore()
        first = store.add_entry(_entry("path"))
        second = store.add_entry(_entry("path", "number"))
        entries = store.get_entries("files.open")
        assert len(entries) == 1
        assert entries[0].parameter.type == "number"
        assert second.created_at == first.created_at
        assert second.modified_at >= first.modified_at

    def test_update_parameter_and_entry_fields(self) -> None:
        """Updates can touch both the parameter and the entry."""
        store = ManualEntryStore()
        store.add_entry(_entry("count", "number"))
        updated = store.update_entry(
            "files.open", "count", required=True, validation_rules=("value > 0",), notes="positive"
        )
        assert updated.parameter.required is True
        assert updated.validation_rules == ("value > 0",)
        assert updated.notes == "positive"

    def test_rename_replaces_existing_name(self) -> None:
        """Renaming onto an existing name leaves a single entry."""
        store = ManualEntryStore()
        store.add_entry(_entry("a"))
        store.add_entry(_entry("b"))
        store.update_entry("files.open", "a", name="b")
        assert [e.name for e in store.get_entries("files.open")] == ["b"]

    def test_update_missing(self) -> None:
        """Updating an unknown entry raises ResourceNotFoundError."""
        with pytest.raises(ResourceNotFoundError):
            ManualEntryStore().update_entry("files.open", "path", notes="x")

    def test_remove(self) -> None:
        """Removing the last entry drops the command."""
        store = ManualEntryStore()
        store.add_entry(_entry("path"))
        assert store.remove_entry("files.open", "path") is True
        assert store.remove_entry("files.open", "path") is False
        assert store.operation_ids() == []


class TestPersistence:
    """Test write-through persistence."""

    def test_reload(self, storage) -> None:
        """Entries survive a new store instance."""
        store = ManualEntryStore(storage)
        store.add_entry(_entry("path", examples=("a.txt",), validation_rules=("value != ''",)))
        reloaded = ManualEntryStore(storage)
        entries = reloaded.get_entries("files.open")
        assert entries == store.get_entries("files.open")
        assert entries[0].examples == ("a.txt",)

    def test_malformed_document(self, storage) -> None:
        """A corrupt entries document raises StorageError."""
        storage.write("manual-parameters.json", {"files.open": [{"commandId": "files.open"}]})
        with pytest.raises(StorageError):
            ManualEntryStore(storage)

    def test_failed_write_leaves_memory_unchanged(self, storage, monkeypatch) -> None:
        """Memory only changes once the document was written."""
        store = ManualEntryStore(storage)
        store.add_entry(_entry("path"))

        def refuse(name, document):
            raise StorageError(name, "disk full")

        monkeypatch.setattr(storage, "write", refuse)
        with pytest.raises(StorageError, match="disk full"):
            store.add_entry(_entry("mode"))
        with pytest.raises(StorageError):
            store.update_entry("files.open", "path", type="number")
        with pytest.raises(StorageError):
            store.remove_entry("files.open", "path")

        entries = store.get_entries("files.open")
        assert [e.name for e in entries] == ["path"]
        assert entries[0].parameter.type == "string"
        monkeypatch.undo()
        assert ManualEntryStore(storage).get_entries("files.open") == entries
